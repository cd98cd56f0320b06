"""
Feed-rate-correct motion interpolation for tool animation.

Each channel program is compiled into one MotionSegment per source line with
modal position, feed and spindle speed carried forward. Playback then moves
the tool continuously from the current line's segment towards the next
non-comment segment, timed by the feed rate. The interpolator never advances
the line index itself: it proposes the next line and its owner commits it.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from config.simulator_config import SimulatorConfig
from core.execution_state import PlaybackState
from core.line_parser import LineParser
from core.machine_state import Position

logger = logging.getLogger(__name__)


@dataclass
class MotionSegment:
    """Motion state that results from one source line."""
    line_number: int
    position: Position
    feed_rate: float
    spindle_speed: float = 0.0
    is_comment: bool = False
    has_movement: bool = False


@dataclass
class InterpolationFrame:
    """Output of one animation tick."""
    position: Position
    advance_to: Optional[int] = None
    progress: float = 0.0
    spindle_phase: float = 0.0


def compile_program(program_text: str, parser: Optional[LineParser] = None,
                    home: Optional[Position] = None,
                    default_feed_rate: float = 500.0) -> List[MotionSegment]:
    """
    Compile program text into one motion segment per line.

    Args:
        program_text: Raw channel program
        parser: Line parser to use for position updates
        home: Position before the first line
        default_feed_rate: Feed (mm/min) until the first F word

    Returns:
        List of MotionSegment, index i describing line i
    """
    parser = parser or LineParser()
    position = (home or Position()).copy()
    feed_rate = default_feed_rate
    spindle_speed = 0.0
    segments = []

    lines = program_text.split('\n') if program_text else []
    for index, line in enumerate(lines):
        if parser.is_comment(line):
            segments.append(MotionSegment(index, position.copy(), feed_rate,
                                          spindle_speed, is_comment=True))
            continue

        position, _ = parser.parse(line, position)
        feed, spindle = parser.parse_modal_words(line)
        if feed is not None:
            feed_rate = feed
        if spindle is not None:
            spindle_speed = spindle

        segments.append(MotionSegment(index, position.copy(), feed_rate, spindle_speed,
                                      has_movement=bool(parser.movement_axes(line))))
    return segments


class MotionInterpolator:
    """Continuous playback of one channel's compiled motion."""

    def __init__(self, config: Optional[SimulatorConfig] = None,
                 parser: Optional[LineParser] = None):
        self.config = config or SimulatorConfig(name="default")
        self.parser = parser or LineParser()
        self.home = Position(*self.config.home_position)

        self.segments: List[MotionSegment] = []
        self.progress = 0.0
        self.spindle_phase = 0.0
        self.state = PlaybackState.IDLE

    def compile(self, program_text: str) -> List[MotionSegment]:
        """Compile and keep the segments of a new program text."""
        self.segments = compile_program(program_text, self.parser, self.home,
                                        self.config.default_feed_rate)
        self.progress = 0.0
        logger.debug("Compiled %d motion segments", len(self.segments))
        return self.segments

    # Playback state machine

    def play(self):
        self.state = PlaybackState.PLAYING

    def pause(self):
        if self.state == PlaybackState.PLAYING:
            self.state = PlaybackState.PAUSED

    def stop(self):
        """Drop any partial move; the owner returns the line index to 0."""
        self.state = PlaybackState.STOPPED
        self.progress = 0.0

    def reset(self):
        self.progress = 0.0
        self.spindle_phase = 0.0

    @property
    def is_playing(self) -> bool:
        return self.state == PlaybackState.PLAYING

    # Geometry helpers

    def segment_position(self, index: int) -> Position:
        """Position after line `index`; before line 0 the tool is home."""
        if index < 0 or not self.segments:
            return self.home.copy()
        return self.segments[min(index, len(self.segments) - 1)].position.copy()

    def _feed_at(self, index: int) -> float:
        if 0 <= index < len(self.segments):
            feed = self.segments[index].feed_rate
        else:
            feed = self.config.default_feed_rate
        return feed if feed > 0 else self.config.default_feed_rate

    def _spindle_at(self, index: int) -> float:
        if 0 <= index < len(self.segments):
            return self.segments[index].spindle_speed
        return 0.0

    def next_motion_index(self, current_line: int) -> Optional[int]:
        """First non-comment segment after the current line, if any."""
        index = max(current_line + 1, 0)
        while index < len(self.segments) and self.segments[index].is_comment:
            index += 1
        return index if index < len(self.segments) else None

    def move_time(self, current_line: int, next_line: int) -> float:
        """Seconds needed to move between two segments at the programmed feed."""
        distance = self.segment_position(current_line).distance_to(self.segment_position(next_line))
        if distance <= 0:
            return self.config.min_move_time
        return distance / (self._feed_at(current_line) / 60.0)

    def total_time(self) -> float:
        """Estimated run time of the whole program in seconds."""
        total = 0.0
        current = -1
        next_line = self.next_motion_index(current)
        while next_line is not None:
            total += self.move_time(current, next_line)
            current = next_line
            next_line = self.next_motion_index(current)
        return total

    # Animation tick

    def update(self, current_line: int, delta_seconds: float, speed: float = 1.0) -> InterpolationFrame:
        """
        Advance the animation by one frame.

        Args:
            current_line: Index of the line the tool last reached (-1 = home)
            delta_seconds: Wall time since the previous frame
            speed: Playback speed multiplier

        Returns:
            InterpolationFrame with the tool position, and `advance_to` set when
            the move into the next line has completed
        """
        current_position = self.segment_position(current_line)

        spindle = self._spindle_at(current_line)
        if spindle > 0:
            self.spindle_phase += spindle * self.config.spindle_phase_scale * delta_seconds

        next_line = self.next_motion_index(current_line) if self.is_playing else None
        if next_line is None:
            self.progress = 0.0
            return InterpolationFrame(current_position, spindle_phase=self.spindle_phase)

        self.progress += (delta_seconds * speed) / self.move_time(current_line, next_line)
        if self.progress >= 1.0:
            self.progress = 0.0
            return InterpolationFrame(self.segment_position(next_line), advance_to=next_line,
                                      spindle_phase=self.spindle_phase)

        position = current_position.lerp(self.segment_position(next_line), self.progress)
        return InterpolationFrame(position, progress=self.progress,
                                  spindle_phase=self.spindle_phase)
