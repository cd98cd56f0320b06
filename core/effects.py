"""
Defines the side-effects a single G-code line can produce.

These are simple, standardized data classes. The line parser's only job besides
tracking position is to turn raw text into a list of these records; the
execution controller decides what to do with them. This keeps parsing free of
any dependency on the stores that the effects eventually touch.
"""

from dataclasses import dataclass
from enum import Enum


class SyncKind(Enum):
    WAIT = "WAIT"


@dataclass(frozen=True)
class Effect:
    """Base class for all line effects."""


@dataclass(frozen=True)
class SetVariable(Effect):
    """Represents a `#<index> = <value>` assignment."""
    index: int
    value: float


@dataclass(frozen=True)
class SyncRequest(Effect):
    """Represents a WAIT rendezvous request between channels."""
    kind: SyncKind = SyncKind.WAIT


@dataclass(frozen=True)
class CallSubroutine(Effect):
    """Represents M98 P<id>. The id is '?' when no P word follows."""
    program_id: str


@dataclass(frozen=True)
class ReturnSubroutine(Effect):
    """Represents M99."""
    pass
