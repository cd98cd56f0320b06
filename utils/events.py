"""
Event definitions and the event channel shared by the simulator components.

The channel is created once by the application and handed to every component
that reports events; there is no module-level instance.
"""
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from PySide6.QtCore import QObject, Signal

logger = logging.getLogger(__name__)


class EventKind(Enum):
    BREAKPOINT_HIT = "breakpoint_hit"
    SYNC_RECORDED = "sync_recorded"
    PROGRAM_FINISHED = "program_finished"
    PLAYBACK_CHANGED = "playback_changed"
    EDIT_IGNORED = "edit_ignored"
    FILE_ERROR = "file_error"


class EventSeverity(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class EngineEvent:
    """A control event or absorbed error, with the channel/line it concerns."""
    kind: EventKind
    message: str
    channel: Optional[int] = None
    line: Optional[int] = None
    severity: EventSeverity = EventSeverity.INFO
    timestamp: float = field(default_factory=time.time)

    def __str__(self):
        if self.channel is not None and self.line is not None:
            return f"Channel {self.channel} line {self.line + 1}: {self.message}"
        return self.message


class EventChannel(QObject):
    """Collects events and notifies subscribers through a Qt signal."""

    event_posted = Signal(object)

    def __init__(self, max_events: int = 50, parent=None):
        super().__init__(parent)
        self.max_events = max_events
        self.events: List[EngineEvent] = []
        self._subscribers: List[Callable[[EngineEvent], None]] = []
        self._closed = False

    def post(self, event: EngineEvent) -> EngineEvent:
        """Record an event (newest first) and notify subscribers."""
        if self._closed:
            logger.debug("Event after close dropped: %s", event)
            return event

        self.events.insert(0, event)
        del self.events[self.max_events:]

        level = {
            EventSeverity.INFO: logging.INFO,
            EventSeverity.WARNING: logging.WARNING,
            EventSeverity.ERROR: logging.ERROR,
        }[event.severity]
        logger.log(level, "%s", event)

        self.event_posted.emit(event)
        return event

    def subscribe(self, callback: Callable[[EngineEvent], None]) -> Callable[[], None]:
        """Connect a callback; the returned callable disconnects it again."""
        self.event_posted.connect(callback)
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)
                self.event_posted.disconnect(callback)

        return unsubscribe

    def events_of_kind(self, kind: EventKind) -> List[EngineEvent]:
        return [event for event in self.events if event.kind == kind]

    def has_errors(self) -> bool:
        return any(event.severity == EventSeverity.ERROR for event in self.events)

    def clear(self):
        """Clear the event history."""
        self.events.clear()

    def close(self):
        """Disconnect every subscriber; later posts are dropped."""
        for callback in list(self._subscribers):
            self.event_posted.disconnect(callback)
        self._subscribers.clear()
        self._closed = True
