"""
Channel program editor widget with breakpoint gutter and dark mode.
"""
from PySide6.QtWidgets import QPlainTextEdit, QWidget, QTextEdit
from PySide6.QtGui import (QColor, QTextFormat, QPainter, QFont, QSyntaxHighlighter,
                           QTextCharFormat, QPalette)
from PySide6.QtCore import Qt, QRect, Signal, QSize
import re


class ChannelHighlighter(QSyntaxHighlighter):
    """Highlights the words the simulator tracks, dark mode colors."""

    def __init__(self, document):
        super().__init__(document)

        def char_format(color, bold=False, italic=False):
            fmt = QTextCharFormat()
            fmt.setForeground(QColor(color))
            if bold:
                fmt.setFontWeight(QFont.Weight.Bold)
            fmt.setFontItalic(italic)
            return fmt

        # Order matters: later rules win over earlier ones
        self.rules = [
            (re.compile(r'\bG\d+', re.IGNORECASE), char_format('#74c0fc')),
            (re.compile(r'\bX[-+.\d]*', re.IGNORECASE), char_format('#ff9999')),
            (re.compile(r'\bY[-+.\d]*', re.IGNORECASE), char_format('#99ff99')),
            (re.compile(r'\bZ[-+.\d]*', re.IGNORECASE), char_format('#9999ff')),
            (re.compile(r'\b[AB][-+.\d]*', re.IGNORECASE), char_format('#ffcc99')),
            (re.compile(r'\b[FS][.\d]*', re.IGNORECASE), char_format('#ffff99')),
            (re.compile(r'\bM\d+', re.IGNORECASE), char_format('#ff8cc8')),
            (re.compile(r'\bM0*9[89]\b(\s*P\d+)?', re.IGNORECASE), char_format('#20c997', bold=True)),
            (re.compile(r'#\d+'), char_format('#ffa500')),
            (re.compile(r'\bWAIT\b', re.IGNORECASE), char_format('#ff6b6b', bold=True)),
            (re.compile(r'\([^)]*\)?|;.*$'), char_format('#6c757d', italic=True)),
        ]

    def highlightBlock(self, text):
        """Apply syntax highlighting to a block of text."""
        for pattern, fmt in self.rules:
            for match in pattern.finditer(text):
                self.setFormat(match.start(), match.end() - match.start(), fmt)


class LineNumberArea(QWidget):
    """Line number gutter; clicking a number toggles its breakpoint."""

    def __init__(self, editor):
        super().__init__(editor)
        self.editor = editor

    def sizeHint(self):
        return QSize(self.editor.lineNumberAreaWidth(), 0)

    def paintEvent(self, event):
        self.editor.lineNumberAreaPaintEvent(event)

    def mousePressEvent(self, event):
        block = self.editor.cursorForPosition(event.position().toPoint()).block()
        if block.isValid():
            self.editor.breakpointToggled.emit(block.blockNumber())


class ChannelEditor(QPlainTextEdit):
    """Editor for one channel program with execution line and breakpoint markers."""

    breakpointToggled = Signal(int)

    def __init__(self, parent=None):
        super().__init__(parent)

        self.setup_dark_mode()
        self.lineNumberArea = LineNumberArea(self)

        # Zero-based line indices
        self.breakpoints = set()
        self.execution_line = None

        self.setup_editor()
        self.highlighter = ChannelHighlighter(self.document())

        self.blockCountChanged.connect(self.updateLineNumberAreaWidth)
        self.updateRequest.connect(self.updateLineNumberArea)
        self.cursorPositionChanged.connect(self.update_extra_selections)

    def setup_dark_mode(self):
        """Configure dark mode appearance."""
        palette = self.palette()
        palette.setColor(QPalette.Base, QColor('#2b2b2b'))
        palette.setColor(QPalette.Text, QColor('#f8f8f2'))
        palette.setColor(QPalette.Highlight, QColor('#44475a'))
        palette.setColor(QPalette.HighlightedText, QColor('#f8f8f2'))
        self.setPalette(palette)

    def setup_editor(self):
        """Configure the editor appearance and behavior."""
        self.setLineWrapMode(QPlainTextEdit.NoWrap)

        font = QFont("Consolas", 11)
        if not font.exactMatch():
            font = QFont("Courier New", 11)
        font.setStyleHint(QFont.StyleHint.Monospace)
        font.setFixedPitch(True)
        self.setFont(font)

        self.updateLineNumberAreaWidth(0)

    def set_breakpoints(self, lines):
        self.breakpoints = set(lines)
        self.lineNumberArea.update()

    def set_execution_line(self, line):
        """Mark the line the channel cursor points at (None when finished)."""
        if line == self.execution_line:
            return
        self.execution_line = line
        self.update_extra_selections()
        # Leave the caret alone while the user is typing
        if line is not None and not self.hasFocus():
            block = self.document().findBlockByNumber(line)
            if block.isValid():
                cursor = self.textCursor()
                cursor.setPosition(block.position())
                self.setTextCursor(cursor)
                self.ensureCursorVisible()

    def update_extra_selections(self):
        """Update line highlighting (editing cursor line, execution line)."""
        selections = []

        if not self.isReadOnly():
            selection = QTextEdit.ExtraSelection()
            selection.format.setBackground(QColor('#383a46'))
            selection.format.setProperty(QTextFormat.FullWidthSelection, True)
            selection.cursor = self.textCursor()
            selection.cursor.clearSelection()
            selections.append(selection)

        if self.execution_line is not None:
            block = self.document().findBlockByNumber(self.execution_line)
            if block.isValid():
                selection = QTextEdit.ExtraSelection()
                selection.format.setBackground(QColor('#1e3a8a'))
                selection.format.setProperty(QTextFormat.FullWidthSelection, True)
                selection.cursor = self.textCursor()
                selection.cursor.setPosition(block.position())
                selection.cursor.clearSelection()
                selections.append(selection)

        self.setExtraSelections(selections)

    # Line number area methods
    def lineNumberAreaWidth(self):
        """Width for line numbers plus the breakpoint marker."""
        digits = len(str(max(1, self.blockCount())))
        return 16 + self.fontMetrics().horizontalAdvance('9') * digits

    def updateLineNumberAreaWidth(self, _):
        self.setViewportMargins(self.lineNumberAreaWidth(), 0, 0, 0)

    def updateLineNumberArea(self, rect, dy):
        if dy:
            self.lineNumberArea.scroll(0, dy)
        else:
            self.lineNumberArea.update(0, rect.y(), self.lineNumberArea.width(), rect.height())

        if rect.contains(self.viewport().rect()):
            self.updateLineNumberAreaWidth(0)

    def resizeEvent(self, event):
        super().resizeEvent(event)
        cr = self.contentsRect()
        self.lineNumberArea.setGeometry(QRect(cr.left(), cr.top(), self.lineNumberAreaWidth(), cr.height()))

    def lineNumberAreaPaintEvent(self, event):
        """Paint line numbers and breakpoint dots."""
        painter = QPainter(self.lineNumberArea)
        painter.fillRect(event.rect(), QColor('#383838'))

        block = self.firstVisibleBlock()
        blockNumber = block.blockNumber()
        top = self.blockBoundingGeometry(block).translated(self.contentOffset()).top()
        bottom = top + self.blockBoundingRect(block).height()
        height = self.fontMetrics().height()

        while block.isValid() and top <= event.rect().bottom():
            if block.isVisible() and bottom >= event.rect().top():
                if blockNumber in self.breakpoints:
                    painter.setBrush(QColor('#e03131'))
                    painter.setPen(Qt.NoPen)
                    painter.drawEllipse(3, int(top) + (height - 9) // 2, 9, 9)

                painter.setPen(QColor('#f8f8f2') if blockNumber == self.execution_line
                               else QColor('#6c757d'))
                painter.drawText(0, int(top), self.lineNumberArea.width() - 3,
                                 height, Qt.AlignRight, str(blockNumber + 1))

            block = block.next()
            top = bottom
            bottom = top + self.blockBoundingRect(block).height()
            blockNumber += 1
