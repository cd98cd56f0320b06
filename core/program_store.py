"""
Program storage for the two channels.
Each channel program is an immutable sequence of raw lines, replaced wholesale
whenever the text is edited.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from core.machine_state import CHANNELS
from utils.events import EventChannel, EngineEvent, EventKind, EventSeverity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Program:
    """One channel's full text as ordered raw lines."""
    lines: Tuple[str, ...] = ()

    @classmethod
    def from_text(cls, text: str) -> 'Program':
        if not text:
            return cls()
        return cls(tuple(line.rstrip('\r') for line in text.split('\n')))

    @property
    def line_count(self) -> int:
        return len(self.lines)

    def line(self, index: int) -> Optional[str]:
        if 0 <= index < len(self.lines):
            return self.lines[index]
        return None

    def to_text(self) -> str:
        return '\n'.join(self.lines)


class ProgramStore:
    """Holds the main and sub spindle programs."""

    def __init__(self, events: Optional[EventChannel] = None):
        self.events = events
        self.programs: Dict[int, Program] = {channel: Program() for channel in CHANNELS}

    def set_text(self, channel: int, text: str) -> Program:
        """Replace a channel's program with new text."""
        program = Program.from_text(text)
        self.programs[channel] = program
        logger.debug("Channel %d loaded with %d lines", channel, program.line_count)
        return program

    def get_text(self, channel: int) -> str:
        return self.programs[channel].to_text()

    def program(self, channel: int) -> Program:
        return self.programs[channel]

    def line(self, channel: int, index: int) -> Optional[str]:
        """Line text, or None when the index is outside the program."""
        return self.programs[channel].line(index)

    def line_count(self, channel: int) -> int:
        return self.programs[channel].line_count

    def edit_line(self, channel: int, index: int, text: str) -> bool:
        """
        Replace one line of a channel program.

        Args:
            channel: Channel number (1 or 2)
            index: Zero-based line index; equal to the line count appends
            text: New line text; embedded newlines split into several lines

        Returns:
            True if the edit was applied
        """
        lines = list(self.programs[channel].lines)
        if not 0 <= index <= len(lines):
            logger.warning("Edit of channel %d line %d ignored (program has %d lines)",
                           channel, index, len(lines))
            if self.events:
                self.events.post(EngineEvent(
                    EventKind.EDIT_IGNORED, "Edit outside program ignored",
                    channel=channel, line=index, severity=EventSeverity.WARNING))
            return False

        lines[index:index + 1] = [line.rstrip('\r') for line in text.split('\n')]
        self.programs[channel] = Program(tuple(lines))
        return True
