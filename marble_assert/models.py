"""
Data models for the marble assertion engine.

Frames are virtual ticks supplied by an external scheduler; nothing in this
package ever reads a wall clock.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Union


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
DEFAULT_COMPACT_THRESHOLD: int = 10     # idle ticks before a gap is compacted
DEFAULT_MIN_WIDTH: int = 10             # rendered diagrams are padded to this
MIN_COMPACT_THRESHOLD: int = 3          # marker count must stay positive

FILLER = "-"
SPACER = " "
UNKNOWN_LABEL = "?"
ERROR_LABEL_PREFIX = "!"
EXTRA_LABEL_PREFIX = "?"
PREDICATE_PLACEHOLDER = "<test function>"

TICK = "✔"
CROSS = "✖"
LINE_SEPARATOR = "\r\n"


# ---------------------------------------------------------------------------
# Render configuration
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class RenderConfig:
    """Gap compaction threshold and minimum width for one render call."""

    threshold: int = DEFAULT_COMPACT_THRESHOLD
    min_width: int = DEFAULT_MIN_WIDTH

    def __post_init__(self) -> None:
        if not isinstance(self.threshold, int) or not isinstance(self.min_width, int):
            raise TypeError("threshold and min_width must be int")
        if self.threshold < MIN_COMPACT_THRESHOLD:
            raise ValueError(
                f"threshold must be >= {MIN_COMPACT_THRESHOLD}, got {self.threshold}"
            )
        if self.min_width < 0:
            raise ValueError(f"min_width must be >= 0, got {self.min_width}")


# ---------------------------------------------------------------------------
# TimelineRecord
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class TimelineRecord:
    """A single symbol written at a frame of a timeline."""

    frame: int
    key:   str
    value: Any = None


# ---------------------------------------------------------------------------
# Expectations (tagged variant)
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Literal:
    """Expected value, compared by deep structural equality."""

    value: Any


@dataclass(frozen=True, slots=True)
class Predicate:
    """Expected check: raises to reject a payload, returns to accept it."""

    fn: Callable[[Any], Any]


Expectation = Union[Literal, Predicate]


def expectation_of(obj: Any) -> Expectation:
    """Wrap a raw expectation once, at the boundary."""
    if isinstance(obj, (Literal, Predicate)):
        return obj
    if callable(obj):
        return Predicate(obj)
    return Literal(obj)


@dataclass(frozen=True, slots=True)
class LabeledExpectation:
    """An expectation carrying the display label it was registered under."""

    label:       str
    expectation: Expectation


def label_expectations(mapping: Mapping[str, Any]) -> Dict[str, LabeledExpectation]:
    """Attach each label of a label -> raw expectation mapping to its value."""
    if not isinstance(mapping, Mapping):
        raise TypeError(f"expectations must be a mapping, got {type(mapping).__name__}")
    return {
        label: LabeledExpectation(label, expectation_of(raw))
        for label, raw in mapping.items()
    }


# ---------------------------------------------------------------------------
# Scheduler events (input)
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class ExpectedEvent:
    """An expectation due at a frame."""

    frame:       int
    expectation: Any    # LabeledExpectation, Expectation or raw value

    def __post_init__(self) -> None:
        _check_frame(self.frame)


@dataclass(frozen=True, slots=True)
class ActualEvent:
    """A value (or error) observed at a frame."""

    frame: int
    value: Any = None
    error: Optional[BaseException] = None

    def __post_init__(self) -> None:
        _check_frame(self.frame)


def _check_frame(frame: Any) -> None:
    if not isinstance(frame, int) or isinstance(frame, bool):
        raise TypeError(f"frame must be int, got {type(frame).__name__}")
    if frame < 0:
        raise ValueError(f"frame must be non-negative, got {frame}")


# ---------------------------------------------------------------------------
# Timeline payloads built by the matcher
# ---------------------------------------------------------------------------
@dataclass(slots=True)
class ExpectationEntry:
    """One expected event; ``matched`` flips once when an actual consumes it."""

    expectation: Expectation
    matched:     bool = False


@dataclass(slots=True)
class ActualEntry:
    """One observed event and whether it consumed an expectation."""

    value:              Any
    error:              Optional[BaseException] = None
    did_match_expected: bool = False


# ---------------------------------------------------------------------------
# Errors reported by a scheduler without a live exception object
# ---------------------------------------------------------------------------
class ReportedError(Exception):
    """An error described by name and message, e.g. decoded from JSON."""

    def __init__(self, message: str = "", name: str = "Error") -> None:
        super().__init__(message)
        self.name = name
        self.message = message

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "message": self.message}

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "ReportedError":
        if not isinstance(d, Mapping):
            raise TypeError(f"error must be an object, got {type(d).__name__}")
        return ReportedError(
            message=str(d.get("message", "")),
            name=str(d.get("name", "Error")),
        )
