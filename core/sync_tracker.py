"""
Cross-channel synchronization log.

Records every WAIT request either channel reaches. The log is advisory: it is
consulted by the debug panels but never blocks a channel from advancing.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from core.effects import SyncKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncPoint:
    """A recorded rendezvous request."""
    channel: int
    line: int
    kind: SyncKind = SyncKind.WAIT

    def to_dict(self) -> Dict:
        return {'channel': self.channel, 'line': self.line, 'type': self.kind.value}


class SyncTracker:
    """Append-only list of sync points; only `clear()` removes entries."""

    def __init__(self):
        self._points: List[SyncPoint] = []

    def record(self, channel: int, line: int, kind: SyncKind = SyncKind.WAIT) -> SyncPoint:
        point = SyncPoint(channel, line, kind)
        self._points.append(point)
        logger.debug("Sync %s recorded on channel %d line %d", kind.value, channel, line)
        return point

    @property
    def points(self) -> List[SyncPoint]:
        return list(self._points)

    def for_channel(self, channel: int) -> List[SyncPoint]:
        return [point for point in self._points if point.channel == channel]

    def last(self, channel: Optional[int] = None) -> Optional[SyncPoint]:
        """Most recent sync point, optionally restricted to one channel."""
        points = self._points if channel is None else self.for_channel(channel)
        return points[-1] if points else None

    def clear(self):
        self._points.clear()

    def as_dicts(self) -> List[Dict]:
        return [point.to_dict() for point in self._points]

    def __len__(self) -> int:
        return len(self._points)
