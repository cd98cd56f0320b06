"""
The authoritative execution state of the dual-channel simulator.

Every mutation of cursors, positions, call stacks, breakpoints, variables and
the sync log goes through `ExecutionState.dispatch()` with one of the action
records below. Readers use `snapshot()` and never touch the stores directly.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from core.effects import SyncKind
from core.machine_state import CHANNELS, CallFrame, ChannelState, Position
from core.sync_tracker import SyncTracker
from utils.variables import VariableStore

logger = logging.getLogger(__name__)


class PlaybackState(Enum):
    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"
    STOPPED = "stopped"


@dataclass(frozen=True)
class Action:
    """Base class for all state updates."""


@dataclass(frozen=True)
class AdvanceCursor(Action):
    channel: int


@dataclass(frozen=True)
class ClampCursor(Action):
    """Keep a cursor within a program that was edited shorter."""
    channel: int
    line_count: int


@dataclass(frozen=True)
class MoveTool(Action):
    channel: int
    position: Position


@dataclass(frozen=True)
class PushFrame(Action):
    channel: int
    frame: CallFrame


@dataclass(frozen=True)
class PopFrame(Action):
    channel: int


@dataclass(frozen=True)
class WriteVariable(Action):
    index: int
    value: float


@dataclass(frozen=True)
class RecordSync(Action):
    channel: int
    line: int
    kind: SyncKind = SyncKind.WAIT


@dataclass(frozen=True)
class ToggleBreakpoint(Action):
    channel: int
    line: int


@dataclass(frozen=True)
class RewindChannels(Action):
    """Cursors to line 0, tools home. Stacks, variables and syncs survive."""
    pass


@dataclass(frozen=True)
class ClearDebugState(Action):
    """Empty call stacks, variables and the sync log."""
    pass


@dataclass(frozen=True)
class SetPlayback(Action):
    state: PlaybackState


@dataclass(frozen=True)
class SetSpeed(Action):
    multiplier: float


class ExecutionState:
    """Single state record shared by the stepper, the animator and the panels."""

    def __init__(self, home: Optional[Position] = None):
        home = home or Position()
        self.channels: Dict[int, ChannelState] = {
            channel: ChannelState(channel, home=home.copy()) for channel in CHANNELS
        }
        self.variables = VariableStore()
        self.sync = SyncTracker()
        self.playback = PlaybackState.IDLE
        self.speed = 1.0

        # Action handler mapping
        self.handlers = {
            AdvanceCursor: self._advance_cursor,
            ClampCursor: self._clamp_cursor,
            MoveTool: self._move_tool,
            PushFrame: self._push_frame,
            PopFrame: self._pop_frame,
            WriteVariable: self._write_variable,
            RecordSync: self._record_sync,
            ToggleBreakpoint: self._toggle_breakpoint,
            RewindChannels: self._rewind_channels,
            ClearDebugState: self._clear_debug_state,
            SetPlayback: self._set_playback,
            SetSpeed: self._set_speed,
        }

    def dispatch(self, action: Action) -> Any:
        """Apply one action. Unknown actions are logged and ignored."""
        handler = self.handlers.get(type(action))
        if handler is None:
            logger.warning("Unhandled action %r", action)
            return None
        return handler(action)

    def channel(self, channel: int) -> ChannelState:
        return self.channels[channel]

    # Action handlers

    def _advance_cursor(self, action: AdvanceCursor) -> int:
        state = self.channels[action.channel]
        state.cursor += 1
        return state.cursor

    def _clamp_cursor(self, action: ClampCursor) -> int:
        state = self.channels[action.channel]
        state.cursor = max(0, min(state.cursor, action.line_count))
        return state.cursor

    def _move_tool(self, action: MoveTool) -> Position:
        self.channels[action.channel].position = action.position.copy()
        return action.position

    def _push_frame(self, action: PushFrame) -> int:
        state = self.channels[action.channel]
        state.push_frame(action.frame)
        return len(state.call_stack)

    def _pop_frame(self, action: PopFrame) -> bool:
        popped = self.channels[action.channel].pop_frame()
        if not popped:
            logger.debug("M99 on channel %d with empty stack ignored", action.channel)
        return popped

    def _write_variable(self, action: WriteVariable) -> bool:
        return self.variables.set_numbered_parameter(action.index, action.value)

    def _record_sync(self, action: RecordSync):
        return self.sync.record(action.channel, action.line, action.kind)

    def _toggle_breakpoint(self, action: ToggleBreakpoint) -> bool:
        breakpoints = self.channels[action.channel].breakpoints
        if action.line in breakpoints:
            breakpoints.discard(action.line)
            return False
        breakpoints.add(action.line)
        return True

    def _rewind_channels(self, action: RewindChannels):
        for state in self.channels.values():
            state.rewind()

    def _clear_debug_state(self, action: ClearDebugState):
        for state in self.channels.values():
            state.call_stack.clear()
        self.variables.clear()
        self.sync.clear()

    def _set_playback(self, action: SetPlayback) -> PlaybackState:
        self.playback = action.state
        return self.playback

    def _set_speed(self, action: SetSpeed) -> float:
        self.speed = action.multiplier
        return self.speed

    # Read accessors

    def snapshot(self) -> Dict[str, Any]:
        """Output surface read by the viewport and panels."""
        return {
            'tool_position': {ch: s.position.to_dict() for ch, s in self.channels.items()},
            'current_line': {ch: s.cursor for ch, s in self.channels.items()},
            'stacks': {ch: s.stack_labels() or ['MAIN'] for ch, s in self.channels.items()},
            'variables': self.variables.get_all_variables(),
            'sync_points': self.sync.as_dicts(),
            'breakpoints': {ch: sorted(s.breakpoints) for ch, s in self.channels.items()},
            'playback': self.playback.value,
            'speed': self.speed,
        }
