"""
Tests for the simulation controller: commands, tick handlers and playback.

Timer callbacks are driven by calling the tick handlers directly so the tests
do not depend on wall-clock time.
"""
import pytest

from config.simulator_config import ConfigManager
from core.execution_state import PlaybackState
from core.machine_state import Position
from core.simulation_controller import SimulationController
from utils.events import EventChannel, EventKind


@pytest.fixture
def controller():
    sim = SimulationController(ConfigManager.swiss_lathe(), EventChannel())
    yield sim
    sim.shutdown()


def test_step_executes_and_emits_state(controller):
    snapshots = []

    def on_state(snapshot):
        snapshots.append(snapshot)

    controller.state_changed.connect(on_state)
    controller.set_program(1, "G0 X10 Y0\nG1 X20 Y0 F600\nM98 P100\nM99")
    controller.set_program(2, "#1=5\nWAIT")

    for _ in range(3):
        controller.step()

    snapshot = controller.snapshot()
    assert snapshot['current_line'] == {1: 3, 2: 2}
    assert snapshot['stacks'][1] == ['P100']
    assert snapshot['stacks'][2] == ['MAIN']
    assert snapshot['variables'] == {'#1': 5.0}
    assert snapshot['sync_points'] == [{'channel': 2, 'line': 1, 'type': 'WAIT'}]
    assert snapshot['finished'] == {1: False, 2: True}
    assert snapshot['tool_position'][1]['x'] == 20.0
    assert snapshots[-1]['current_line'] == snapshot['current_line']


def test_run_steps_on_timer_until_finished(controller):
    controller.set_program(1, "X1\nX2\nX3")
    controller.set_program(2, "Y1")

    assert controller.run()
    assert controller.state.playback == PlaybackState.PLAYING
    assert controller.step_timer.isActive()
    assert controller.step_timer.interval() == 100

    for _ in range(3):
        controller._on_step_tick()

    assert controller.execution.is_finished()
    assert controller.state.playback == PlaybackState.IDLE
    assert not controller.step_timer.isActive()
    assert controller.tool_positions[1] == Position(3.0)


def test_run_pauses_on_breakpoint(controller, qapp):
    controller.set_program(1, "X1\nX2\nX3")
    controller.toggle_breakpoint(1, 2)
    controller.run()

    controller._on_step_tick()
    controller._on_step_tick()
    controller._on_step_tick()

    assert controller.state.playback == PlaybackState.PAUSED
    assert controller.execution.cursor(1) == 2
    assert not controller.step_timer.isActive()
    assert controller.events.events_of_kind(EventKind.BREAKPOINT_HIT)

    # Resuming runs past the reported breakpoint
    controller.run()
    controller._on_step_tick()
    assert controller.execution.is_finished()


def test_run_when_finished_returns_false(controller):
    assert not controller.run()
    assert not controller.play()
    assert controller.state.playback == PlaybackState.IDLE


def test_step_ignored_while_playing(controller):
    controller.set_program(1, "X1\nX2")
    controller.run()
    result = controller.step()
    assert not result.advanced
    assert controller.execution.cursor(1) == 0


def test_set_speed_clamps_and_retimes(controller):
    controller.set_program(1, "X1\nX2")
    controller.run()
    assert controller.set_speed(2.0) == 2.0
    assert controller.step_timer.interval() == 50
    assert controller.set_speed(50) == 10.0
    assert controller.set_speed(0) == 0.1


def test_play_interpolates_and_commits_lines(controller):
    controller.set_program(1, "G1 X60 F600\nX120")
    assert controller.play()

    # Home to X60 at the default 500 mm/min takes 7.2 s
    controller.advance_animation(4.0)
    assert controller.execution.cursor(1) == 0
    assert controller.tool_positions[1].x == pytest.approx(60 * 4.0 / 7.2)

    controller.advance_animation(4.0)
    assert controller.execution.cursor(1) == 1
    assert controller.tool_positions[1] == Position(60.0)

    # X60 to X120 at 600 mm/min takes 6 s
    controller.advance_animation(6.5)
    assert controller.execution.is_finished()
    assert controller.state.playback == PlaybackState.IDLE
    assert controller.tool_positions[1] == Position(120.0)


def test_play_consumes_trailing_comments(controller):
    controller.set_program(1, "X0\n; end\n(done)")
    controller.play()
    controller.advance_animation(1.0)
    assert controller.execution.cursor(1) == 1
    controller.advance_animation(0.0)
    assert controller.execution.is_finished()
    assert controller.state.playback == PlaybackState.IDLE


def test_play_pauses_on_breakpoint(controller):
    controller.set_program(1, "G1 X60 F600\nX120")
    controller.toggle_breakpoint(1, 1)
    controller.play()

    controller.advance_animation(8.0)
    controller.advance_animation(7.0)

    assert controller.state.playback == PlaybackState.PAUSED
    assert controller.execution.cursor(1) == 1
    assert controller.tool_positions[1] == Position(60.0)


def test_pause_then_stop(controller):
    controller.set_program(1, "X1\nX2")
    controller.run()
    controller._on_step_tick()
    controller.pause()
    assert controller.state.playback == PlaybackState.PAUSED
    assert controller.execution.cursor(1) == 1

    controller.stop()
    assert controller.state.playback == PlaybackState.STOPPED
    assert controller.execution.cursor(1) == 0
    assert controller.tool_positions[1] == Position()
    assert all(interp.progress == 0.0 for interp in controller.interpolators.values())


def test_reset_keeps_debug_state(controller):
    controller.set_program(1, "#3=1\nM98 P5\nWAIT")
    controller.toggle_breakpoint(1, 0)
    controller.step()
    controller.step()
    controller.step()
    controller.step()

    before = controller.snapshot()
    controller.reset()
    after = controller.snapshot()

    assert after['current_line'] == {1: 0, 2: 0}
    assert after['playback'] == 'idle'
    for key in ('variables', 'sync_points', 'breakpoints', 'stacks'):
        assert after[key] == before[key]

    controller.clear_debug_state()
    cleared = controller.snapshot()
    assert cleared['variables'] == {}
    assert cleared['sync_points'] == []
    assert cleared['stacks'][1] == ['MAIN']
    assert cleared['breakpoints'][1] == [0]


def test_edit_line_recompiles(controller):
    controller.set_program(1, "X1")
    assert controller.edit_line(1, 1, "X2")
    assert controller.program_text(1) == "X1\nX2"
    assert len(controller.interpolators[1].segments) == 2
    assert not controller.edit_line(1, 7, "X9")


def test_playback_changed_signal(controller):
    changes = []

    def on_playback(state):
        changes.append(state)

    controller.playback_changed.connect(on_playback)
    controller.set_program(1, "X1")
    controller.play()
    controller.pause()
    controller.stop()
    assert changes == ['playing', 'paused', 'stopped']


def test_load_and_save_channel_file(controller, tmp_path):
    path = tmp_path / "main.nc"
    controller.set_program(2, "Y1\nWAIT")
    assert controller.save_channel_file(2, str(path)) == (True, None)

    assert controller.load_channel_file(1, str(path)) == (True, None)
    assert controller.program_text(1) == "Y1\nWAIT"

    success, error = controller.load_channel_file(1, str(tmp_path / "missing.nc"))
    assert not success
    assert error
    assert controller.events.events_of_kind(EventKind.FILE_ERROR)
    assert controller.program_text(1) == "Y1\nWAIT"


def test_shutdown_stops_timers(controller):
    controller.set_program(1, "X1\nX2")
    controller.run()
    controller.shutdown()
    assert not controller.step_timer.isActive()
    assert not controller.animation_timer.isActive()


def test_play_breakpoint_holds_both_channels(controller):
    program = "G1 X60 F600\nX120\nX180"
    controller.set_program(1, program)
    controller.set_program(2, program)
    controller.toggle_breakpoint(1, 1)
    controller.play()

    controller.advance_animation(8.0)
    assert (controller.execution.cursor(1), controller.execution.cursor(2)) == (1, 1)

    controller.advance_animation(7.0)
    assert controller.state.playback == PlaybackState.PAUSED
    assert (controller.execution.cursor(1), controller.execution.cursor(2)) == (1, 1)
    assert controller.tool_positions[2] == Position(60.0)

    hits = controller.events.events_of_kind(EventKind.BREAKPOINT_HIT)
    assert [(event.channel, event.line) for event in hits] == [(1, 1)]

    # Resuming passes the reported breakpoint on both channels together
    controller.play()
    controller.advance_animation(7.0)
    assert (controller.execution.cursor(1), controller.execution.cursor(2)) == (2, 2)


def test_play_breakpoint_on_second_channel_holds_first(controller):
    program = "G1 X60 F600\nX120\nX180"
    controller.set_program(1, program)
    controller.set_program(2, program)
    controller.toggle_breakpoint(2, 1)
    controller.play()

    controller.advance_animation(8.0)
    controller.advance_animation(7.0)

    assert controller.state.playback == PlaybackState.PAUSED
    assert controller.execution.cursor(1) == 1
    assert controller.execution.cursor(2) == 1
    assert controller.execution.position(1) == Position(60.0)


def test_play_breakpoint_matches_step_mode(controller):
    program = "X10\nX20\nX30"
    controller.set_program(1, program)
    controller.set_program(2, program)
    controller.toggle_breakpoint(2, 2)
    controller.play()
    for _ in range(5):
        controller.advance_animation(10.0)
    played = controller.snapshot()['current_line']

    controller.stop()
    for _ in range(5):
        if controller.step().hit_breakpoint:
            break
    assert controller.snapshot()['current_line'] == played == {1: 2, 2: 2}


def test_pause_keeps_partial_move(controller):
    controller.set_program(1, "G1 X60 F600\nX120")
    controller.play()
    controller.advance_animation(4.0)
    marker = controller.tool_positions[1].x

    controller.pause()
    assert controller.tool_positions[1].x == pytest.approx(marker)
    assert controller.interpolators[1].progress == pytest.approx(4.0 / 7.2)

    controller.play()
    controller.advance_animation(3.3)
    assert controller.execution.cursor(1) == 1
