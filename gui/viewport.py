"""
2D viewport showing both channel toolpaths and the animated tool markers.
"""
import math
from PySide6.QtWidgets import QWidget
from PySide6.QtGui import QPainter, QPen, QColor, QBrush, QPainterPath
from PySide6.QtCore import Qt, QPoint, QPointF


CHANNEL_COLORS = {1: QColor('#4dabf7'), 2: QColor('#ff922b')}


class Viewport(QWidget):
    """Plan view of the compiled motion of both channels."""

    PLANES = {'XY': ('x', 'y'), 'XZ': ('x', 'z'), 'ZX': ('z', 'x')}

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setMinimumSize(300, 300)

        # Per-channel data
        self.toolpaths = {}       # channel -> list of Position
        self.tool_positions = {}  # channel -> position dict
        self.spindle_phase = {}
        self.channel_names = {}

        # View controls
        self.plane = 'XY'
        self.scale = 4.0
        self.offset = QPointF(0, 0)
        self.last_pos = QPoint()

        # Display settings
        self.show_grid = True
        self.show_axes = True

    def set_toolpath(self, channel, positions):
        """Update one channel's toolpath (positions after each line)."""
        self.toolpaths[channel] = list(positions)
        self.auto_fit_view()
        self.update()

    def update_state(self, snapshot):
        """Take tool markers from a simulator snapshot."""
        self.tool_positions = snapshot.get('tool_position', {})
        self.spindle_phase = snapshot.get('spindle_phase', {})
        self.channel_names = snapshot.get('channel_names', {})
        self.update()

    def set_plane(self, plane):
        if plane in self.PLANES:
            self.plane = plane
            self.auto_fit_view()
            self.update()

    def _project(self, values):
        h, v = self.PLANES[self.plane]
        return values[h], values[v]

    def auto_fit_view(self):
        """Fit the scale to show every toolpath point."""
        points = [self._project(p.to_dict()) for path in self.toolpaths.values() for p in path]
        if not points:
            return

        xs = [p[0] for p in points]
        ys = [p[1] for p in points]
        size = max(max(xs) - min(xs), max(ys) - min(ys), 10.0)
        self.scale = 0.8 * min(self.width(), self.height()) / size
        center_x = (max(xs) + min(xs)) / 2
        center_y = (max(ys) + min(ys)) / 2
        self.offset = QPointF(-center_x * self.scale, center_y * self.scale)

    def to_screen(self, h, v):
        return QPointF(self.width() / 2 + self.offset.x() + h * self.scale,
                       self.height() / 2 + self.offset.y() - v * self.scale)

    def paintEvent(self, event):
        """Main render."""
        painter = QPainter(self)
        painter.setRenderHint(QPainter.Antialiasing)
        painter.fillRect(self.rect(), QColor(26, 26, 38))

        if self.show_grid:
            self.draw_grid(painter)
        if self.show_axes:
            self.draw_axes(painter)

        for channel, path in self.toolpaths.items():
            self.draw_toolpath(painter, channel, path)
        for channel, position in self.tool_positions.items():
            self.draw_tool(painter, channel, position)

        painter.setPen(QColor('#adb5bd'))
        painter.drawText(8, 16, f"Plane {self.plane}")
        painter.end()

    def draw_grid(self, painter):
        """Draw reference grid."""
        painter.setPen(QPen(QColor(60, 60, 60), 1))
        for i in range(-50, 51, 5):
            painter.drawLine(self.to_screen(i * 10, -500), self.to_screen(i * 10, 500))
            painter.drawLine(self.to_screen(-500, i * 10), self.to_screen(500, i * 10))

    def draw_axes(self, painter):
        """Draw the two plane axes through the origin."""
        h_name, v_name = self.PLANES[self.plane]
        origin = self.to_screen(0, 0)
        painter.setPen(QPen(QColor('#fa5252'), 2))
        painter.drawLine(origin, self.to_screen(20, 0))
        painter.drawText(self.to_screen(22, 0), h_name.upper())
        painter.setPen(QPen(QColor('#51cf66'), 2))
        painter.drawLine(origin, self.to_screen(0, 20))
        painter.drawText(self.to_screen(0, 22), v_name.upper())

    def draw_toolpath(self, painter, channel, path):
        if not path:
            return
        color = QColor(CHANNEL_COLORS.get(channel, QColor('white')))
        color.setAlpha(160)
        painter.setPen(QPen(color, 1.5))

        route = QPainterPath()
        route.moveTo(self.to_screen(*self._project(path[0].to_dict())))
        for position in path[1:]:
            route.lineTo(self.to_screen(*self._project(position.to_dict())))
        painter.setBrush(Qt.NoBrush)
        painter.drawPath(route)

    def draw_tool(self, painter, channel, position):
        """Tool marker with a spoke showing the spindle phase."""
        color = CHANNEL_COLORS.get(channel, QColor('white'))
        center = self.to_screen(*self._project(position))
        radius = 7

        painter.setPen(QPen(color.lighter(140), 2))
        painter.setBrush(QBrush(color))
        painter.drawEllipse(center, radius, radius)

        phase = self.spindle_phase.get(channel, 0.0)
        spoke = QPointF(center.x() + radius * math.cos(phase),
                        center.y() - radius * math.sin(phase))
        painter.setPen(QPen(QColor('white'), 2))
        painter.drawLine(center, spoke)

        label = self.channel_names.get(channel, f"CH{channel}")
        painter.drawText(QPointF(center.x() + radius + 3, center.y() - radius), label)

    def mousePressEvent(self, event):
        """Start panning."""
        self.last_pos = event.position().toPoint()

    def mouseMoveEvent(self, event):
        """Pan with the left button."""
        pos = event.position().toPoint()
        if event.buttons() & Qt.LeftButton:
            self.offset += QPointF(pos - self.last_pos)
            self.update()
        self.last_pos = pos

    def wheelEvent(self, event):
        """Handle mouse wheel for zooming."""
        delta = event.angleDelta().y() / 120.0
        self.scale = max(0.05, self.scale * (1.15 ** delta))
        self.update()

    def toggle_display_option(self, option):
        """Toggle display options."""
        if option == 'grid':
            self.show_grid = not self.show_grid
        elif option == 'axes':
            self.show_axes = not self.show_axes
        self.update()

    def reset_view(self):
        """Refit the view to the toolpaths."""
        self.offset = QPointF(0, 0)
        self.scale = 4.0
        self.auto_fit_view()
        self.update()
