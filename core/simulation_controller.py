"""
This class acts as the main controller for the simulation, bridging the GUI
and the execution backend.

It owns the two tick sources: a step timer that drives discrete execution and
an animation timer that drives feed-timed motion interpolation. Both run on
the Qt event loop; the interpolator only proposes line advances and this
controller commits them through the ExecutionController.
"""
import logging
from typing import Dict, Optional, Tuple

from PySide6.QtCore import QObject, QTimer, QElapsedTimer, Signal

from config.simulator_config import SimulatorConfig, ConfigManager
from core.execution_controller import ExecutionController, StepResult
from core.execution_state import ExecutionState, PlaybackState, SetPlayback, SetSpeed
from core.line_parser import LineParser
from core.machine_state import CHANNELS, Position
from core.motion_interpolator import MotionInterpolator
from core.program_store import ProgramStore
from utils.events import EventChannel, EngineEvent, EventKind, EventSeverity

logger = logging.getLogger(__name__)


class SimulationController(QObject):
    """Commands and output surface of the dual-channel simulator."""

    state_changed = Signal(object)
    playback_changed = Signal(str)

    INTERVAL_MODE = "interval"
    FEED_MODE = "feed"

    def __init__(self, config: Optional[SimulatorConfig] = None,
                 events: Optional[EventChannel] = None, parent=None):
        super().__init__(parent)
        self.config = config or ConfigManager.swiss_lathe()
        self.events = events if events is not None else EventChannel(self.config.max_events)

        self.parser = LineParser()
        self.program_store = ProgramStore(self.events)
        self.state = ExecutionState(Position(*self.config.home_position))
        self.execution = ExecutionController(self.program_store, self.state,
                                             self.events, self.parser)
        self.interpolators: Dict[int, MotionInterpolator] = {
            channel: MotionInterpolator(self.config, self.parser) for channel in CHANNELS
        }

        self.tool_positions: Dict[int, Position] = {
            channel: self.execution.position(channel) for channel in CHANNELS
        }
        self.run_mode: Optional[str] = None

        # Discrete stepping tick
        self.step_timer = QTimer(self)
        self.step_timer.timeout.connect(self._on_step_tick)

        # Animation tick
        self.animation_timer = QTimer(self)
        self.animation_timer.setInterval(self.config.animation_interval_ms)
        self.animation_timer.timeout.connect(self._on_animation_tick)
        self.frame_clock = QElapsedTimer()

    # Program text

    def set_program(self, channel: int, text: str):
        """Replace a channel's program and recompile its motion."""
        self.program_store.set_text(channel, text)
        self._program_changed(channel)

    def program_text(self, channel: int) -> str:
        return self.program_store.get_text(channel)

    def edit_line(self, channel: int, index: int, text: str) -> bool:
        """Edit one line of a channel program."""
        if not self.program_store.edit_line(channel, index, text):
            return False
        self._program_changed(channel)
        return True

    def load_channel_file(self, channel: int, file_path: str) -> Tuple[bool, Optional[str]]:
        """Load raw program text for one channel from a file."""
        try:
            with open(file_path, 'r') as f:
                text = f.read()
        except OSError as e:
            self.events.post(EngineEvent(EventKind.FILE_ERROR, f"Cannot open {file_path}: {e}",
                                         channel=channel, severity=EventSeverity.ERROR))
            return False, str(e)

        self.set_program(channel, text)
        logger.info("Loaded %s into channel %d", file_path, channel)
        return True, None

    def save_channel_file(self, channel: int, file_path: str) -> Tuple[bool, Optional[str]]:
        """Write one channel's program text to a file."""
        try:
            with open(file_path, 'w') as f:
                f.write(self.program_text(channel))
        except OSError as e:
            self.events.post(EngineEvent(EventKind.FILE_ERROR, f"Cannot save {file_path}: {e}",
                                         channel=channel, severity=EventSeverity.ERROR))
            return False, str(e)
        return True, None

    # Debug commands

    def toggle_breakpoint(self, channel: int, line: int) -> bool:
        has_breakpoint = self.execution.toggle_breakpoint(channel, line)
        self._emit_state()
        return has_breakpoint

    def step(self) -> StepResult:
        """Single step both channels. Ignored while playback is running."""
        if self.state.playback == PlaybackState.PLAYING:
            return StepResult()

        result = self.execution.step()
        for interpolator in self.interpolators.values():
            interpolator.reset()
        self._sync_tool_positions()
        self._emit_state()
        return result

    def run(self) -> bool:
        """Auto-step at the configured interval until the end or a breakpoint."""
        return self.run_to_completion(self.config.step_interval_ms, self.state.speed)

    def run_to_completion(self, interval_ms: int, speed_multiplier: float) -> bool:
        """
        Repeatedly step on a fixed timer tick.

        Args:
            interval_ms: Base tick interval at speed 1.0
            speed_multiplier: Divides the interval

        Returns:
            False if both programs are already finished
        """
        if self.execution.is_finished():
            return False

        self._stop_timers()
        self.state.dispatch(SetSpeed(self.config.clamp_speed(speed_multiplier)))
        self.run_mode = self.INTERVAL_MODE
        self.step_timer.setInterval(self._step_interval(interval_ms))
        self.step_timer.start()
        self._start_animation()
        self._set_playback(PlaybackState.PLAYING)
        return True

    def play(self) -> bool:
        """Feed-timed playback: lines advance as the tool reaches them."""
        if self.execution.is_finished():
            return False

        self._stop_timers()
        self.run_mode = self.FEED_MODE
        for interpolator in self.interpolators.values():
            interpolator.play()
        self._start_animation()
        self._set_playback(PlaybackState.PLAYING)
        return True

    def pause(self):
        """Stop both ticks; cursors, stores and any partial move stay where they are."""
        if self.state.playback != PlaybackState.PLAYING:
            return
        self._stop_timers()
        for interpolator in self.interpolators.values():
            interpolator.pause()
        if self.run_mode != self.FEED_MODE:
            self._sync_tool_positions()
        self._set_playback(PlaybackState.PAUSED)

    def stop(self):
        """Cancel playback, drop any partial move and return to line 0."""
        self._stop_timers()
        for interpolator in self.interpolators.values():
            interpolator.stop()
        self.execution.reset()
        self._sync_tool_positions()
        self._set_playback(PlaybackState.STOPPED)

    def reset(self):
        """Cursors to line 0. Stacks, variables, syncs and breakpoints are kept."""
        self._stop_timers()
        for interpolator in self.interpolators.values():
            interpolator.stop()
            interpolator.reset()
        self.execution.reset()
        self._sync_tool_positions()
        self._set_playback(PlaybackState.IDLE)

    def clear_debug_state(self):
        """Empty call stacks, variables and the sync log."""
        self.execution.clear_debug_state()
        self._emit_state()

    def set_speed(self, multiplier: float) -> float:
        """Set the playback speed multiplier, clamped to the configured range."""
        speed = self.state.dispatch(SetSpeed(self.config.clamp_speed(multiplier)))
        if self.step_timer.isActive():
            self.step_timer.setInterval(self._step_interval(self.config.step_interval_ms))
        self._emit_state()
        return speed

    def shutdown(self):
        """Tear down timers and the event channel."""
        self._stop_timers()
        self.events.close()

    # Output surface

    def snapshot(self) -> Dict:
        snapshot = self.state.snapshot()
        snapshot['tool_position'] = {ch: pos.to_dict() for ch, pos in self.tool_positions.items()}
        snapshot['spindle_phase'] = {ch: interp.spindle_phase
                                     for ch, interp in self.interpolators.items()}
        snapshot['finished'] = {ch: self.execution.is_channel_finished(ch) for ch in CHANNELS}
        snapshot['channel_names'] = dict(self.config.channel_names)
        return snapshot

    # Tick handlers

    def _on_step_tick(self):
        result = self.execution.step()
        self._sync_tool_positions()
        if result.hit_breakpoint:
            self.pause()
        elif self.execution.is_finished():
            self._finish()
        self._emit_state()

    def _on_animation_tick(self):
        if not self.frame_clock.isValid():
            self.frame_clock.start()
            delta_seconds = 0.0
        else:
            delta_seconds = self.frame_clock.restart() / 1000.0
        self.advance_animation(delta_seconds)

    def advance_animation(self, delta_seconds: float):
        """
        Move the animation forward by one frame.

        In feed mode the interpolators' advance proposals are committed to the
        execution cursors here; in interval mode the step timer owns the
        cursors and the tool simply follows the executed position. A
        breakpoint on any proposed line commits nothing on either channel.
        """
        proposals = {}
        for channel, interpolator in self.interpolators.items():
            current_line = self.execution.cursor(channel) - 1
            frame = interpolator.update(current_line, delta_seconds, self.state.speed)

            if self.run_mode != self.FEED_MODE:
                self.tool_positions[channel] = self.execution.position(channel)
                continue

            self.tool_positions[channel] = frame.position
            target = frame.advance_to
            if target is None and interpolator.next_motion_index(current_line) is None:
                # Only comment lines remain; consume them
                target = self.execution.line_count(channel) - 1
            if target is not None and not self.execution.is_channel_finished(channel):
                proposals[channel] = target

        if self.run_mode != self.FEED_MODE:
            self._emit_state()
            return

        hits = {}
        for channel, target in proposals.items():
            line = self.execution.pending_breakpoint(channel, target)
            if line is not None:
                hits[channel] = line

        if hits:
            for channel, line in hits.items():
                self.execution.report_breakpoint(channel, line)
            self._sync_tool_positions()
            self.pause()
        else:
            for channel, target in proposals.items():
                self.execution.advance_channel(channel, target)
            if self.execution.is_finished():
                self._finish()
        self._emit_state()

    # Internals

    def _program_changed(self, channel: int):
        self.interpolators[channel].compile(self.program_store.get_text(channel))
        self.execution.clamp_cursors()
        if self.state.playback != PlaybackState.PLAYING:
            self._sync_tool_positions()
        self._emit_state()

    def _step_interval(self, interval_ms: int) -> int:
        return max(1, int(interval_ms / self.state.speed))

    def _start_animation(self):
        self.frame_clock.invalidate()
        self.animation_timer.start()

    def _stop_timers(self):
        self.step_timer.stop()
        self.animation_timer.stop()

    def _finish(self):
        self._stop_timers()
        for interpolator in self.interpolators.values():
            interpolator.stop()
        self._sync_tool_positions()
        self.run_mode = None
        self._set_playback(PlaybackState.IDLE)
        logger.info("Both channels finished")

    def _sync_tool_positions(self):
        for channel in CHANNELS:
            self.tool_positions[channel] = self.execution.position(channel)

    def _set_playback(self, playback: PlaybackState):
        if self.state.playback == playback:
            self._emit_state()
            return
        self.state.dispatch(SetPlayback(playback))
        self.events.post(EngineEvent(EventKind.PLAYBACK_CHANGED, f"Playback {playback.value}"))
        self.playback_changed.emit(playback.value)
        self._emit_state()

    def _emit_state(self):
        self.state_changed.emit(self.snapshot())
