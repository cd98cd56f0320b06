"""
Shared fixtures for the simulator tests.
"""
import pytest
from PySide6.QtCore import QCoreApplication

from core.execution_controller import ExecutionController
from core.execution_state import ExecutionState
from core.program_store import ProgramStore
from utils.events import EventChannel


@pytest.fixture(scope="session", autouse=True)
def qapp():
    """Timers and signals need a Qt application object."""
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


@pytest.fixture
def events():
    channel = EventChannel()
    yield channel
    channel.close()


@pytest.fixture
def make_controller(events):
    """Build an ExecutionController over two program texts."""
    def _make(channel1="", channel2=""):
        store = ProgramStore(events)
        store.set_text(1, channel1)
        store.set_text(2, channel2)
        return ExecutionController(store, ExecutionState(), events)
    return _make
