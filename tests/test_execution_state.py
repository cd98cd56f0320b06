"""
Tests for the authoritative execution state and its actions.
"""
from core.execution_state import (ExecutionState, PlaybackState, Action, AdvanceCursor,
                                  ClampCursor, MoveTool, PushFrame, PopFrame,
                                  WriteVariable, RecordSync, ToggleBreakpoint,
                                  RewindChannels, ClearDebugState, SetPlayback, SetSpeed)
from core.machine_state import CallFrame, Position


def test_initial_snapshot():
    snapshot = ExecutionState(Position(1.0, 2.0, 3.0)).snapshot()
    assert snapshot['tool_position'][1] == {'x': 1.0, 'y': 2.0, 'z': 3.0, 'a': 0.0, 'b': 0.0}
    assert snapshot['current_line'] == {1: 0, 2: 0}
    assert snapshot['stacks'] == {1: ['MAIN'], 2: ['MAIN']}
    assert snapshot['variables'] == {}
    assert snapshot['sync_points'] == []
    assert snapshot['breakpoints'] == {1: [], 2: []}
    assert snapshot['playback'] == 'idle'
    assert snapshot['speed'] == 1.0


def test_dispatch_updates_state():
    state = ExecutionState()
    assert state.dispatch(AdvanceCursor(1)) == 1
    state.dispatch(MoveTool(2, Position(4.0)))
    assert state.dispatch(PushFrame(1, CallFrame("12"))) == 1
    state.dispatch(WriteVariable(3, 1.25))
    state.dispatch(RecordSync(2, 7))
    assert state.dispatch(ToggleBreakpoint(1, 2)) is True
    state.dispatch(SetPlayback(PlaybackState.PLAYING))
    state.dispatch(SetSpeed(2.5))

    snapshot = state.snapshot()
    assert snapshot['current_line'][1] == 1
    assert snapshot['tool_position'][2]['x'] == 4.0
    assert snapshot['stacks'][1] == ['P12']
    assert snapshot['variables'] == {'#3': 1.25}
    assert snapshot['sync_points'] == [{'channel': 2, 'line': 7, 'type': 'WAIT'}]
    assert snapshot['breakpoints'][1] == [2]
    assert snapshot['playback'] == 'playing'
    assert snapshot['speed'] == 2.5


def test_pop_frame_underflow():
    state = ExecutionState()
    assert state.dispatch(PopFrame(1)) is False
    assert state.channel(1).call_stack == []


def test_clamp_cursor():
    state = ExecutionState()
    for _ in range(5):
        state.dispatch(AdvanceCursor(2))
    assert state.dispatch(ClampCursor(2, 3)) == 3


def test_rewind_and_clear():
    state = ExecutionState()
    state.dispatch(AdvanceCursor(1))
    state.dispatch(PushFrame(1, CallFrame("1")))
    state.dispatch(WriteVariable(1, 1.0))
    state.dispatch(RecordSync(1, 0))

    state.dispatch(RewindChannels())
    assert state.channel(1).cursor == 0
    assert len(state.variables) == 1

    state.dispatch(ClearDebugState())
    assert state.channel(1).call_stack == []
    assert len(state.variables) == 0
    assert len(state.sync) == 0


def test_unknown_action_ignored():
    assert ExecutionState().dispatch(Action()) is None
