"""
Main entry point for the dual-channel G-code simulator.
Initializes logging and the Qt application, wires the simulator and the main
window together, and starts the event loop.
"""

import argparse
import logging
import sys
from PySide6.QtWidgets import QApplication
from config.simulator_config import ConfigManager
from core.simulation_controller import SimulationController
from gui.main_window import MainWindow
from utils.events import EventChannel


def parse_args(argv):
    parser = argparse.ArgumentParser(description="Dual-channel G-code simulator")
    parser.add_argument('--preset', default='swiss_lathe',
                        help="Machine preset (swiss_lathe, twin_turret)")
    parser.add_argument('--config', help="Load configuration from a JSON file")
    parser.add_argument('--log-level', help="Override the configured log level")
    return parser.parse_known_args(argv)


def main():
    """Initializes and runs the PySide6 application."""
    args, qt_args = parse_args(sys.argv[1:])
    config = ConfigManager.load_config(args.config) if args.config else ConfigManager.get_config(args.preset)

    logging.basicConfig(
        level=getattr(logging, (args.log_level or config.log_level).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    app = QApplication([sys.argv[0]] + qt_args)
    events = EventChannel(config.max_events)
    controller = SimulationController(config, events)
    window = MainWindow(controller)
    window.show()

    exit_code = app.exec()
    controller.shutdown()
    sys.exit(exit_code)

if __name__ == '__main__':
    main()
