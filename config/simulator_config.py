"""
Simulator configuration for the dual-channel G-code engine.
Simple, clean configuration system with presets for different machine layouts.
"""
from dataclasses import dataclass, field, asdict
from typing import Dict, List
import json
import logging

from core.machine_state import AXES

logger = logging.getLogger(__name__)


@dataclass
class SimulatorConfig:
    """Configuration for the simulator engine and its tick sources."""
    name: str
    channel_names: Dict[int, str] = field(default_factory=lambda: {1: "Main Spindle", 2: "Sub Spindle"})

    # Tool starts here on load and on reset
    home_position: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0, 0.0, 0.0])

    # Motion timing
    default_feed_rate: float = 500.0   # mm/min when no F word has been seen
    min_move_time: float = 0.1         # seconds for zero-length moves
    spindle_phase_scale: float = 0.001  # radians per (rpm * second)

    # Tick sources
    step_interval_ms: int = 100
    animation_interval_ms: int = 16

    # Speed multiplier bounds
    min_speed: float = 0.1
    max_speed: float = 10.0

    # Diagnostics
    max_events: int = 50
    log_level: str = "INFO"

    def clamp_speed(self, multiplier: float) -> float:
        """Clamp a speed multiplier into the configured range."""
        return max(self.min_speed, min(self.max_speed, multiplier))


class ConfigManager:
    """Manages simulator configurations with simple presets."""

    @staticmethod
    def swiss_lathe() -> SimulatorConfig:
        """Swiss-type lathe with main and sub spindle."""
        return SimulatorConfig(name="Swiss Lathe")

    @staticmethod
    def twin_turret() -> SimulatorConfig:
        """Twin-turret lathe; both turrets work the main spindle."""
        return SimulatorConfig(
            name="Twin Turret Lathe",
            channel_names={1: "Upper Turret", 2: "Lower Turret"},
            default_feed_rate=300.0,
            step_interval_ms=150
        )

    @staticmethod
    def get_config(preset: str) -> SimulatorConfig:
        """Get configuration by preset name."""
        configs = {
            "swiss": ConfigManager.swiss_lathe(),
            "swiss_lathe": ConfigManager.swiss_lathe(),
            "twin_turret": ConfigManager.twin_turret()
        }
        return configs.get(preset.lower(), ConfigManager.swiss_lathe())

    @staticmethod
    def save_config(config: SimulatorConfig, filepath: str):
        """Save configuration to JSON file."""
        with open(filepath, 'w') as f:
            json.dump(asdict(config), f, indent=2)

    @staticmethod
    def load_config(filepath: str) -> SimulatorConfig:
        """Load configuration from JSON file."""
        try:
            with open(filepath, 'r') as f:
                data = json.load(f)

            # JSON object keys are strings
            if "channel_names" in data:
                data["channel_names"] = {int(k): v for k, v in data["channel_names"].items()}

            config = SimulatorConfig(**data)
            if len(config.home_position) != len(AXES):
                raise ValueError(f"home_position needs {len(AXES)} values")
            config.home_position = [float(value) for value in config.home_position]
            return config

        except (OSError, ValueError, TypeError) as e:
            # Return default on error
            logger.warning("Could not load config %s: %s", filepath, e)
            return ConfigManager.swiss_lathe()
