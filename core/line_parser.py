"""
Single-line G-code parser.

Turns one source line plus the position inherited from the previous lines into
an updated position and a list of effects. Parsing never fails: malformed
numbers read as zero and unrecognised words are ignored.
"""
import logging
import math
import re
from typing import List, NamedTuple, Optional, Set, Tuple

from core.effects import (Effect, SetVariable, SyncRequest, CallSubroutine,
                          ReturnSubroutine)
from core.machine_state import Position

logger = logging.getLogger(__name__)


class ParseResult(NamedTuple):
    position: Position
    effects: List[Effect]


class LineParser:
    """Parses individual lines of a channel program."""

    MOTION_LETTERS = ('X', 'Y', 'Z', 'A', 'B')
    MOVEMENT_LETTERS = ('X', 'Y', 'Z')

    # Sign, digits, optional fraction and exponent
    NUMBER_PATTERN = re.compile(r'[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?')
    VARIABLE_PATTERN = re.compile(
        r'#(\d+)\s*=\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)')
    CALL_PATTERN = re.compile(r'(?<![A-Z])M0*98(?!\d)')
    RETURN_PATTERN = re.compile(r'(?<![A-Z])M0*99(?!\d)')
    PROGRAM_ID_PATTERN = re.compile(r'P(\d+)')

    # Inline comments
    PAREN_COMMENT_PATTERN = re.compile(r'\([^)]*\)?')
    SEMICOLON_COMMENT_PATTERN = re.compile(r';.*$')

    SYNC_TOKEN = 'WAIT'

    @staticmethod
    def is_comment(line: str) -> bool:
        """Comment and blank lines: no position change, no effects."""
        stripped = line.strip()
        return not stripped or stripped[0] in ';('

    @classmethod
    def read_number(cls, text: str) -> float:
        """Lenient numeric read of a word suffix. No leading number means 0."""
        match = cls.NUMBER_PATTERN.match(text)
        if not match:
            if text:
                logger.debug("Malformed number %r read as 0", text)
            return 0.0
        value = float(match.group(0))
        return value if math.isfinite(value) else 0.0

    @classmethod
    def strip_comments(cls, line: str) -> str:
        line = cls.SEMICOLON_COMMENT_PATTERN.sub('', line)
        return cls.PAREN_COMMENT_PATTERN.sub(' ', line)

    @classmethod
    def tokenize(cls, line: str) -> List[str]:
        return cls.strip_comments(line).upper().split()

    def parse(self, line: str, prior_position: Position) -> ParseResult:
        """
        Parse one line against the inherited position.

        Args:
            line: Raw source line
            prior_position: Position after the previous line; never mutated

        Returns:
            ParseResult of the new position and the effects of the line
        """
        position = prior_position.copy()
        if self.is_comment(line):
            return ParseResult(position, [])

        code = self.strip_comments(line).upper()
        tokens = code.split()
        effects: List[Effect] = []

        if '#' in code:
            match = self.VARIABLE_PATTERN.search(code)
            if match and int(match.group(1)) > 0:
                effects.append(SetVariable(int(match.group(1)), self.read_number(match.group(2))))

        if self.SYNC_TOKEN in tokens:
            # Sync lines only rendezvous, they never move the tool
            effects.append(SyncRequest())
        else:
            for token in tokens:
                if token[0] in self.MOTION_LETTERS:
                    position.set_axis(token[0], self.read_number(token[1:]))

        call = self.CALL_PATTERN.search(code)
        if call:
            program_id = self.PROGRAM_ID_PATTERN.search(code, call.end())
            effects.append(CallSubroutine(program_id.group(1) if program_id else '?'))
        elif self.RETURN_PATTERN.search(code):
            effects.append(ReturnSubroutine())

        return ParseResult(position, effects)

    def movement_axes(self, line: str) -> Set[str]:
        """Linear axes (X/Y/Z) supplied on a line that moves the tool."""
        if self.is_comment(line):
            return set()
        tokens = self.tokenize(line)
        if self.SYNC_TOKEN in tokens:
            return set()
        return {token[0] for token in tokens if token[0] in self.MOVEMENT_LETTERS}

    def parse_modal_words(self, line: str) -> Tuple[Optional[float], Optional[float]]:
        """
        Read the feed (F) and spindle speed (S) words of a line.

        Returns:
            Tuple of (feed_rate, spindle_speed); None where the word is absent
        """
        feed_rate = None
        spindle_speed = None
        if self.is_comment(line):
            return feed_rate, spindle_speed

        for token in self.tokenize(line):
            if token[0] == 'F':
                feed_rate = self.read_number(token[1:])
            elif token[0] == 'S':
                spindle_speed = self.read_number(token[1:])
        return feed_rate, spindle_speed
