"""
The main window of the dual-channel G-code simulator.
Two channel editors, the run controls, a debug panel and the toolpath viewport.
"""
from functools import partial

from PySide6.QtWidgets import (QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
                               QPushButton, QFileDialog, QMessageBox, QTextEdit,
                               QSplitter, QLabel, QComboBox, QDoubleSpinBox)
from PySide6.QtCore import Qt, QTimer
from PySide6.QtGui import QFont

from .editor import ChannelEditor
from .viewport import Viewport
from core.machine_state import CHANNELS
from core.simulation_controller import SimulationController
from utils.events import EventSeverity


SAMPLE_PROGRAMS = {
    1: """; Main spindle
G0 X0 Y0 Z5
#100=25
G1 Z0 F400 S1200
G1 X40 Y0
M98 P1000
G1 X40 Y20
WAIT
G1 X0 Y20
M99
G0 Z5""",
    2: """; Sub spindle
G0 X60 Y-10 Z5
G1 Z0 F250 S800
G1 X60 Y-30
(rendezvous with main spindle)
WAIT
M98 P2000
G1 X90 Y-30
M99
G0 Z5""",
}


class MainWindow(QMainWindow):
    def __init__(self, controller: SimulationController = None):
        super().__init__()
        self.setWindowTitle("Dual-Channel G-Code Simulator")
        self.setGeometry(100, 100, 1600, 1000)

        self.controller = controller or SimulationController()
        self.editors = {}

        # Push editor text into the store shortly after typing stops
        self.edit_timers = {}
        for channel in CHANNELS:
            timer = QTimer(self)
            timer.setSingleShot(True)
            timer.setInterval(400)
            timer.timeout.connect(partial(self.commit_editor_text, channel))
            self.edit_timers[channel] = timer

        self.setup_ui()
        self.connect_signals()

        # Load sample programs for demonstration
        self.load_sample_programs()

    def setup_ui(self):
        """Set up the user interface."""
        main_widget = QWidget()
        self.setCentralWidget(main_widget)
        main_layout = QVBoxLayout(main_widget)

        # Top toolbar
        toolbar_layout = QHBoxLayout()

        self.step_button = QPushButton("Step")
        self.run_button = QPushButton("Run")
        self.play_button = QPushButton("Play")
        self.pause_button = QPushButton("Pause")
        self.stop_button = QPushButton("Stop")
        self.reset_button = QPushButton("Reset")
        self.clear_button = QPushButton("Clear State")

        self.speed_box = QDoubleSpinBox()
        self.speed_box.setRange(self.controller.config.min_speed, self.controller.config.max_speed)
        self.speed_box.setSingleStep(0.5)
        self.speed_box.setValue(self.controller.state.speed)
        self.speed_box.setSuffix("x")

        self.plane_selector = QComboBox()
        self.plane_selector.addItems(list(Viewport.PLANES))

        self.status_label = QLabel("Ready")

        for button in (self.step_button, self.run_button, self.play_button, self.pause_button,
                       self.stop_button, self.reset_button, self.clear_button):
            toolbar_layout.addWidget(button)
        toolbar_layout.addStretch()
        toolbar_layout.addWidget(QLabel("Speed:"))
        toolbar_layout.addWidget(self.speed_box)
        toolbar_layout.addWidget(QLabel("Plane:"))
        toolbar_layout.addWidget(self.plane_selector)
        toolbar_layout.addWidget(self.status_label)

        main_layout.addLayout(toolbar_layout)

        # Main content area
        main_splitter = QSplitter(Qt.Vertical)
        main_layout.addWidget(main_splitter)

        workspace_splitter = QSplitter(Qt.Horizontal)

        # One editor per channel, each with its own load/save buttons
        self.load_buttons = {}
        self.save_buttons = {}
        for channel in CHANNELS:
            pane = QWidget()
            pane_layout = QVBoxLayout(pane)
            pane_layout.setContentsMargins(0, 0, 0, 0)

            header = QHBoxLayout()
            header.addWidget(QLabel(self.controller.config.channel_names.get(channel, f"Channel {channel}")))
            header.addStretch()
            self.load_buttons[channel] = QPushButton("Load")
            self.save_buttons[channel] = QPushButton("Save")
            header.addWidget(self.load_buttons[channel])
            header.addWidget(self.save_buttons[channel])
            pane_layout.addLayout(header)

            self.editors[channel] = ChannelEditor()
            pane_layout.addWidget(self.editors[channel])
            workspace_splitter.addWidget(pane)

        self.viewport = Viewport()
        workspace_splitter.addWidget(self.viewport)

        # Debug panel
        info_panel = QWidget()
        info_layout = QVBoxLayout(info_panel)
        info_layout.setContentsMargins(5, 5, 5, 5)

        self.debug_label = QLabel("Debug:\nNo program loaded")
        self.debug_label.setFont(QFont("Courier", 9))
        self.debug_label.setAlignment(Qt.AlignTop | Qt.AlignLeft)
        self.debug_label.setStyleSheet("QLabel { background-color: #f0f0f0; padding: 5px; }")
        info_layout.addWidget(self.debug_label)
        workspace_splitter.addWidget(info_panel)

        # Event console
        console_widget = QWidget()
        console_layout = QVBoxLayout(console_widget)
        console_layout.setContentsMargins(0, 0, 0, 0)
        console_layout.addWidget(QLabel("Events:"))

        self.console = QTextEdit()
        self.console.setReadOnly(True)
        self.console.setMaximumHeight(150)
        console_layout.addWidget(self.console)

        main_splitter.addWidget(workspace_splitter)
        main_splitter.addWidget(console_widget)

        # Set initial sizes
        workspace_splitter.setSizes([400, 400, 500, 250])
        main_splitter.setSizes([800, 200])

    def connect_signals(self):
        """Connect all signal handlers."""
        self.step_button.clicked.connect(self.controller.step)
        self.run_button.clicked.connect(self.controller.run)
        self.play_button.clicked.connect(self.controller.play)
        self.pause_button.clicked.connect(self.controller.pause)
        self.stop_button.clicked.connect(self.controller.stop)
        self.reset_button.clicked.connect(self.controller.reset)
        self.clear_button.clicked.connect(self.controller.clear_debug_state)
        self.speed_box.valueChanged.connect(self.controller.set_speed)
        self.plane_selector.currentTextChanged.connect(self.viewport.set_plane)

        for channel in CHANNELS:
            editor = self.editors[channel]
            editor.textChanged.connect(self.edit_timers[channel].start)
            editor.breakpointToggled.connect(partial(self.controller.toggle_breakpoint, channel))
            self.load_buttons[channel].clicked.connect(lambda checked=False, ch=channel: self.load_channel_file(ch))
            self.save_buttons[channel].clicked.connect(lambda checked=False, ch=channel: self.save_channel_file(ch))

        self.controller.state_changed.connect(self.on_state_changed)
        self.controller.playback_changed.connect(self.on_playback_changed)
        self.controller.events.subscribe(self.on_event)

    def load_sample_programs(self):
        """Load sample programs for demonstration."""
        for channel, text in SAMPLE_PROGRAMS.items():
            self.editors[channel].setPlainText(text)
            self.commit_editor_text(channel)

    def commit_editor_text(self, channel):
        """Hand the editor text to the simulator and refresh the toolpath."""
        self.edit_timers[channel].stop()
        text = self.editors[channel].toPlainText()
        if text != self.controller.program_text(channel):
            self.controller.set_program(channel, text)
        self.update_toolpath(channel)

    def update_toolpath(self, channel):
        interpolator = self.controller.interpolators[channel]
        positions = [interpolator.home] + [segment.position for segment in interpolator.segments]
        self.viewport.set_toolpath(channel, positions)

    def load_channel_file(self, channel):
        """Load one channel's program from a file."""
        file_path, _ = QFileDialog.getOpenFileName(
            self, "Open G-Code File", "",
            "G-Code Files (*.ngc *.gcode *.nc *.txt);;All Files (*)"
        )
        if not file_path:
            return

        success, error = self.controller.load_channel_file(channel, file_path)
        if not success:
            QMessageBox.warning(self, "Load failed", error)
            return
        self.editors[channel].setPlainText(self.controller.program_text(channel))
        self.commit_editor_text(channel)

    def save_channel_file(self, channel):
        """Save one channel's program to a file."""
        file_path, _ = QFileDialog.getSaveFileName(
            self, "Save G-Code File", "",
            "G-Code Files (*.ngc);;All Files (*)"
        )
        if not file_path:
            return

        self.commit_editor_text(channel)
        success, error = self.controller.save_channel_file(channel, file_path)
        if success:
            self.console.append(f"Saved: {file_path}")
        else:
            QMessageBox.warning(self, "Save failed", error)

    def on_state_changed(self, snapshot):
        """Refresh editors, viewport and debug panel from a snapshot."""
        for channel in CHANNELS:
            editor = self.editors[channel]
            editor.set_breakpoints(snapshot['breakpoints'][channel])
            if snapshot['finished'][channel]:
                editor.set_execution_line(None)
            else:
                editor.set_execution_line(snapshot['current_line'][channel])

        self.viewport.update_state(snapshot)
        self.update_debug_panel(snapshot)

    def update_debug_panel(self, snapshot):
        """Update the stacks, variables, syncs and positions display."""
        lines = ["Call stacks:"]
        for channel in CHANNELS:
            lines.append(f"  CH{channel}: {' → '.join(snapshot['stacks'][channel])}")

        lines.append("")
        lines.append("Variables:")
        variables = snapshot['variables']
        if variables:
            lines.extend(f"  {name} = {value:g}" for name, value in variables.items())
        else:
            lines.append("  (none)")

        lines.append("")
        lines.append("Sync points:")
        if snapshot['sync_points']:
            for point in snapshot['sync_points']:
                lines.append(f"  CH{point['channel']} line {point['line'] + 1}: {point['type']}")
        else:
            lines.append("  (none)")

        lines.append("")
        lines.append("Positions:")
        for channel in CHANNELS:
            pos = snapshot['tool_position'][channel]
            lines.append(f"  CH{channel}: X{pos['x']:.3f} Y{pos['y']:.3f} Z{pos['z']:.3f}")
            lines.append(f"        A{pos['a']:.3f} B{pos['b']:.3f}")
            state = "done" if snapshot['finished'][channel] else f"line {snapshot['current_line'][channel] + 1}"
            lines.append(f"        {state}")

        lines.append("")
        lines.append("Estimated run time:")
        for channel in CHANNELS:
            seconds = self.controller.interpolators[channel].total_time()
            lines.append(f"  CH{channel}: {seconds:.1f} s")

        self.debug_label.setText("\n".join(lines))

    def on_playback_changed(self, playback):
        self.status_label.setText(playback.capitalize())
        playing = playback == "playing"
        for editor in self.editors.values():
            editor.setReadOnly(playing)
        self.step_button.setEnabled(not playing)

    def on_event(self, event):
        """Append an engine event to the console."""
        severity = event.severity.value.upper()
        if event.severity == EventSeverity.INFO:
            self.console.append(str(event))
        else:
            self.console.append(f"[{severity}] {event}")

    def closeEvent(self, event):
        self.controller.shutdown()
        super().closeEvent(event)
