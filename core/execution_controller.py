"""
Discrete execution of the two channel programs.

The controller owns the per-channel cursors, call stacks and breakpoints (kept
in the shared ExecutionState) and advances both channels one line per step,
debugger style. Nothing here raises: malformed input degrades to zero values,
stack underflow to a no-op and out-of-range cursors to "finished".
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Set, Tuple

from core.effects import Effect, SetVariable, SyncRequest, CallSubroutine, ReturnSubroutine
from core.execution_state import (ExecutionState, AdvanceCursor, ClampCursor, MoveTool,
                                  PushFrame, PopFrame, WriteVariable, RecordSync,
                                  ToggleBreakpoint, RewindChannels, ClearDebugState)
from core.line_parser import LineParser
from core.machine_state import CHANNELS, CallFrame, Position
from core.program_store import ProgramStore
from utils.events import EventChannel, EngineEvent, EventKind

logger = logging.getLogger(__name__)


@dataclass
class StepResult:
    """Outcome of one step (or one channel advance)."""
    executed: List[Tuple[int, int]] = field(default_factory=list)  # (channel, line)
    breakpoint_channels: List[int] = field(default_factory=list)
    finished: bool = False

    @property
    def hit_breakpoint(self) -> bool:
        return bool(self.breakpoint_channels)

    @property
    def advanced(self) -> bool:
        return bool(self.executed)


class ExecutionController:
    """Steps both channels over a shared variable store and sync log."""

    def __init__(self, program_store: ProgramStore,
                 state: Optional[ExecutionState] = None,
                 events: Optional[EventChannel] = None,
                 parser: Optional[LineParser] = None):
        self.program_store = program_store
        self.state = state or ExecutionState()
        self.events = events
        self.parser = parser or LineParser()

        # Breakpoints already reported at the current cursor; the next
        # explicit advance passes them once
        self._acknowledged: Set[Tuple[int, int]] = set()

    # Queries

    def line_count(self, channel: int) -> int:
        return self.program_store.line_count(channel)

    def cursor(self, channel: int) -> int:
        return self.state.channel(channel).cursor

    def position(self, channel: int) -> Position:
        return self.state.channel(channel).position.copy()

    def stack_depth(self, channel: int) -> int:
        return len(self.state.channel(channel).call_stack)

    def is_channel_finished(self, channel: int) -> bool:
        return self.state.channel(channel).is_finished(self.line_count(channel))

    def is_finished(self) -> bool:
        """True once both channels have run off the end of their programs."""
        return all(self.is_channel_finished(channel) for channel in CHANNELS)

    # Commands

    def step(self) -> StepResult:
        """
        Advance both channels by one line.

        If either channel's cursor sits on one of its breakpoints the whole
        step is aborted and no channel moves. Channel 1 executes before
        channel 2, so a variable written by channel 1 is already visible when
        channel 2's line runs in the same step.

        Returns:
            StepResult describing what ran or which channels hit a breakpoint
        """
        result = StepResult()

        hits = [channel for channel in CHANNELS if self._at_breakpoint(channel)]
        if hits:
            for channel in hits:
                self._report_breakpoint(channel)
            result.breakpoint_channels = hits
            return result

        for channel in CHANNELS:
            if not self.is_channel_finished(channel):
                result.executed.append((channel, self._execute_line(channel)))

        result.finished = self.is_finished()
        return result

    def advance_channel(self, channel: int, target_line: int) -> StepResult:
        """
        Execute one channel up to and including `target_line`.

        Used to commit motion playback proposals. Stops early, without
        executing the line, when the cursor reaches one of the channel's
        breakpoints.
        """
        result = StepResult()
        while not self.is_channel_finished(channel) and self.cursor(channel) <= target_line:
            if self._at_breakpoint(channel):
                self._report_breakpoint(channel)
                result.breakpoint_channels.append(channel)
                break
            result.executed.append((channel, self._execute_line(channel)))

        result.finished = self.is_finished()
        return result

    def pending_breakpoint(self, channel: int, target_line: int) -> Optional[int]:
        """First unreported breakpoint met running the channel up to `target_line`."""
        if self.is_channel_finished(channel):
            return None
        breakpoints = self.state.channel(channel).breakpoints
        last_line = min(target_line, self.line_count(channel) - 1)
        for line in range(self.cursor(channel), last_line + 1):
            if line in breakpoints and (channel, line) not in self._acknowledged:
                return line
        return None

    def report_breakpoint(self, channel: int, line: int):
        """Post a hit and let the next explicit advance pass the line once."""
        self._report_breakpoint(channel, line)

    def toggle_breakpoint(self, channel: int, line: int) -> bool:
        """Flip a breakpoint. Returns True if the line now has one."""
        if line < 0:
            return False
        has_breakpoint = self.state.dispatch(ToggleBreakpoint(channel, line))
        self._acknowledged.discard((channel, line))
        return has_breakpoint

    def reset(self):
        """Back to line 0 on both channels. Stacks, variables and syncs are kept."""
        self.state.dispatch(RewindChannels())
        self._acknowledged.clear()
        logger.debug("Cursors reset to line 0")

    def clear_debug_state(self):
        """Empty the call stacks, the variable store and the sync log."""
        self.state.dispatch(ClearDebugState())

    def clamp_cursors(self):
        """Keep cursors inside programs after an edit shortened them."""
        for channel in CHANNELS:
            self.state.dispatch(ClampCursor(channel, self.line_count(channel)))

    # Internals

    def _at_breakpoint(self, channel: int) -> bool:
        if self.is_channel_finished(channel):
            return False
        cursor = self.cursor(channel)
        return (cursor in self.state.channel(channel).breakpoints
                and (channel, cursor) not in self._acknowledged)

    def _report_breakpoint(self, channel: int, line: Optional[int] = None):
        if line is None:
            line = self.cursor(channel)
        self._acknowledged.add((channel, line))
        if self.events:
            self.events.post(EngineEvent(EventKind.BREAKPOINT_HIT, "Breakpoint hit",
                                         channel=channel, line=line))

    def _execute_line(self, channel: int) -> int:
        """Run the line under the cursor and move the cursor on. Returns the line index."""
        line_index = self.cursor(channel)
        line = self.program_store.line(channel, line_index) or ''
        self._acknowledged.discard((channel, line_index))

        if not self.parser.is_comment(line):
            position, effects = self.parser.parse(line, self.state.channel(channel).position)
            for effect in effects:
                self._apply_effect(channel, line_index, effect)
            self.state.dispatch(MoveTool(channel, position))

        self.state.dispatch(AdvanceCursor(channel))

        if self.is_channel_finished(channel) and self.events:
            self.events.post(EngineEvent(EventKind.PROGRAM_FINISHED, "Program finished",
                                         channel=channel, line=line_index))
        return line_index

    def _apply_effect(self, channel: int, line_index: int, effect: Effect):
        if isinstance(effect, SetVariable):
            self.state.dispatch(WriteVariable(effect.index, effect.value))
        elif isinstance(effect, SyncRequest):
            self.state.dispatch(RecordSync(channel, line_index, effect.kind))
            if self.events:
                self.events.post(EngineEvent(EventKind.SYNC_RECORDED,
                                             f"{effect.kind.value} requested",
                                             channel=channel, line=line_index))
        elif isinstance(effect, CallSubroutine):
            self.state.dispatch(PushFrame(channel, CallFrame(effect.program_id)))
        elif isinstance(effect, ReturnSubroutine):
            self.state.dispatch(PopFrame(channel))
