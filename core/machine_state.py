"""
Per-channel machine state for the dual-channel simulator.
Tracks tool position, the subroutine call stack and breakpoints of one channel.
"""
import math
from dataclasses import dataclass, field
from typing import Dict, List, Set


AXES = ('x', 'y', 'z', 'a', 'b')

# Channel 1 is the main spindle, channel 2 the sub spindle
CHANNELS = (1, 2)


@dataclass
class Position:
    """Represents a tool pose in 5-axis space."""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    a: float = 0.0
    b: float = 0.0

    def get_axis(self, axis: str) -> float:
        """Get value for a specific axis."""
        return getattr(self, axis.lower(), 0.0)

    def set_axis(self, axis: str, value: float):
        """Set value for a specific axis."""
        if axis.lower() in AXES:
            setattr(self, axis.lower(), value)

    def copy(self) -> 'Position':
        """Create a copy of this position."""
        return Position(x=self.x, y=self.y, z=self.z, a=self.a, b=self.b)

    def to_dict(self) -> Dict[str, float]:
        return {axis: getattr(self, axis) for axis in AXES}

    def distance_to(self, other: 'Position') -> float:
        """Euclidean XYZ distance; rotary axes do not contribute."""
        dx = self.x - other.x
        dy = self.y - other.y
        dz = self.z - other.z
        return math.sqrt(dx*dx + dy*dy + dz*dz)

    def lerp(self, other: 'Position', t: float) -> 'Position':
        """Linear interpolation towards another position at parameter t."""
        return Position(*(getattr(self, axis) + (getattr(other, axis) - getattr(self, axis)) * t
                          for axis in AXES))


@dataclass
class CallFrame:
    """One pending subroutine invocation (M98 P<id>)."""
    program_id: str

    @property
    def label(self) -> str:
        return f"P{self.program_id}"


@dataclass
class ChannelState:
    """Execution state of a single channel."""
    channel: int
    home: Position = field(default_factory=Position)
    cursor: int = 0
    position: Position = field(default_factory=Position)
    call_stack: List[CallFrame] = field(default_factory=list)
    breakpoints: Set[int] = field(default_factory=set)

    def __post_init__(self):
        self.position = self.home.copy()

    def is_finished(self, line_count: int) -> bool:
        """A cursor at or past the last line means the channel is done."""
        return self.cursor >= line_count

    def push_frame(self, frame: CallFrame):
        self.call_stack.append(frame)

    def pop_frame(self) -> bool:
        """Pop the newest frame. Returns False on an empty stack (no-op)."""
        if not self.call_stack:
            return False
        self.call_stack.pop()
        return True

    def stack_labels(self) -> List[str]:
        return [frame.label for frame in self.call_stack]

    def stack_display(self) -> str:
        """Stack as shown in the debug panel, MAIN when nothing is pending."""
        return ' → '.join(self.stack_labels()) or 'MAIN'

    def rewind(self):
        """Move the cursor back to line 0 and the tool back home."""
        self.cursor = 0
        self.position = self.home.copy()
