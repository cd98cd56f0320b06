"""
Tests for the event channel and simulator configuration.
"""
import json

from config.simulator_config import ConfigManager, SimulatorConfig
from utils.events import EngineEvent, EventChannel, EventKind, EventSeverity


def test_events_newest_first_and_bounded():
    channel = EventChannel(max_events=3)
    for i in range(5):
        channel.post(EngineEvent(EventKind.SYNC_RECORDED, f"sync {i}", channel=1, line=i))
    assert [event.line for event in channel.events] == [4, 3, 2]
    channel.close()


def test_subscribe_and_unsubscribe():
    channel = EventChannel()
    received = []

    def on_event(event):
        received.append(event)

    unsubscribe = channel.subscribe(on_event)

    channel.post(EngineEvent(EventKind.BREAKPOINT_HIT, "hit", channel=2, line=0))
    unsubscribe()
    channel.post(EngineEvent(EventKind.BREAKPOINT_HIT, "hit again"))

    assert len(received) == 1
    assert str(received[0]) == "Channel 2 line 1: hit"
    channel.close()


def test_close_drops_later_events():
    channel = EventChannel()
    received = []
    channel.subscribe(lambda event: received.append(event))
    channel.close()
    channel.post(EngineEvent(EventKind.FILE_ERROR, "late", severity=EventSeverity.ERROR))
    assert received == []
    assert channel.events == []


def test_error_queries():
    channel = EventChannel()
    channel.post(EngineEvent(EventKind.EDIT_IGNORED, "skip", severity=EventSeverity.WARNING))
    assert not channel.has_errors()
    channel.post(EngineEvent(EventKind.FILE_ERROR, "missing", severity=EventSeverity.ERROR))
    assert channel.has_errors()
    assert len(channel.events_of_kind(EventKind.EDIT_IGNORED)) == 1
    channel.clear()
    assert channel.events == []
    channel.close()


def test_presets():
    swiss = ConfigManager.get_config("swiss")
    assert swiss.channel_names == {1: "Main Spindle", 2: "Sub Spindle"}
    assert swiss.default_feed_rate == 500.0
    assert swiss.min_move_time == 0.1

    turret = ConfigManager.get_config("TWIN_TURRET")
    assert turret.channel_names[2] == "Lower Turret"
    assert ConfigManager.get_config("unknown").name == "Swiss Lathe"


def test_clamp_speed():
    config = SimulatorConfig(name="test")
    assert config.clamp_speed(0.01) == 0.1
    assert config.clamp_speed(50) == 10.0
    assert config.clamp_speed(2.0) == 2.0


def test_save_and_load_config(tmp_path):
    path = tmp_path / "sim.json"
    config = ConfigManager.twin_turret()
    ConfigManager.save_config(config, str(path))

    loaded = ConfigManager.load_config(str(path))
    assert loaded == config


def test_load_config_falls_back_to_default(tmp_path):
    missing = ConfigManager.load_config(str(tmp_path / "missing.json"))
    assert missing.name == "Swiss Lathe"

    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"name": "x", "no_such_field": 1}))
    assert ConfigManager.load_config(str(bad)).name == "Swiss Lathe"


def test_load_config_rejects_bad_home_position(tmp_path):
    short = tmp_path / "short.json"
    short.write_text(json.dumps({"name": "short", "home_position": [1.0, 2.0]}))
    assert ConfigManager.load_config(str(short)).home_position == [0.0] * 5

    text = tmp_path / "text.json"
    text.write_text(json.dumps({"name": "text", "home_position": ["a", 0, 0, 0, 0]}))
    assert ConfigManager.load_config(str(text)).name == "Swiss Lathe"
