"""
The reconciliation matcher.

Pairs actual events with expected events in two tiers:
  1. Same frame: the first unmatched expectation at the actual's frame
     that the actual satisfies.
  2. Any frame: the first unmatched expectation, in stored order, that the
     actual satisfies.

A consumed expectation is never reused. Actuals that consume nothing get a
synthetic label, ``!n`` for errors and ``?n`` otherwise, where ``n`` counts
the actual records written so far in this comparison.

Tier 2 takes the first satisfiable expectation regardless of its distance
from the actual's frame, so it can consume an expectation that a later
actual would have matched exactly. Recorded fixtures depend on this order.
"""
from __future__ import annotations

import json
import logging
import math
import traceback
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from marble_assert.models import (
    CROSS,
    ERROR_LABEL_PREFIX,
    EXTRA_LABEL_PREFIX,
    LINE_SEPARATOR,
    PREDICATE_PLACEHOLDER,
    TICK,
    UNKNOWN_LABEL,
    ActualEntry,
    ActualEvent,
    ExpectationEntry,
    ExpectedEvent,
    Expectation,
    LabeledExpectation,
    Literal,
    Predicate,
    RenderConfig,
    TimelineRecord,
    expectation_of,
)
from marble_assert.renderer import print_all
from marble_assert.timeline import Timeline

logger = logging.getLogger(__name__)


class MatchFailure(AssertionError):
    """Raised by :func:`assert_events` with the annotated diff as message."""

    def __init__(self, matcher: "Matcher") -> None:
        super().__init__(matcher.annotate())
        self.matcher = matcher


# ---------------------------------------------------------------------------
# Comparison
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Comparison:
    """Outcome of checking one actual event against one expectation."""

    ok: bool
    reason: str = ""


_SATISFIED = Comparison(True)
_MISSING = object()


def deep_equal(actual: Any, expected: Any) -> bool:
    """
    Structural equality that also requires matching types (1 != 1.0 != True).

    NaN equals NaN, so a NaN literal can be satisfied.
    """
    if type(actual) is not type(expected):
        return False
    if isinstance(expected, Mapping):
        if actual.keys() != expected.keys():
            return False
        return all(deep_equal(actual[k], expected[k]) for k in expected)
    if isinstance(expected, (list, tuple)):
        if len(actual) != len(expected):
            return False
        return all(deep_equal(a, e) for a, e in zip(actual, expected))
    if isinstance(expected, float) and math.isnan(expected):
        return math.isnan(actual)
    return actual == expected


def compare_event(expectation: Expectation, event: ActualEvent) -> Comparison:
    """Check whether ``event`` satisfies ``expectation``. Never raises."""
    if event.error is not None:
        return Comparison(False, "Expected to not have an error")

    if isinstance(expectation, Predicate):
        try:
            expectation.fn(event.value)
        except (KeyboardInterrupt, SystemExit, GeneratorExit):
            raise
        # pytest.fail() raises a BaseException subclass
        except BaseException as exc:
            return Comparison(False, f"{type(exc).__name__}: {exc}")
        return _SATISFIED

    if isinstance(expectation, Literal):
        if deep_equal(event.value, expectation.value):
            return _SATISFIED
        return Comparison(False, f"{event.value!r} != {expectation.value!r}")

    raise TypeError(f"Unknown expectation kind: {type(expectation).__name__}")


def _payload(expectation: Any) -> Any:
    """The raw object a caller registered, with any variant wrapper removed."""
    if isinstance(expectation, Literal):
        return expectation.value
    if isinstance(expectation, Predicate):
        return expectation.fn
    return expectation


# ---------------------------------------------------------------------------
# Stringifiers
# ---------------------------------------------------------------------------
def stringify_action(action: Any) -> str:
    """``TYPE {payload-json}`` for action-like values, ``repr`` otherwise.

    An absent payload prints as ``undefined``, an explicit ``None`` as ``null``.
    """
    if isinstance(action, Mapping):
        action_type, payload = action.get("type"), action.get("payload", _MISSING)
    else:
        action_type, payload = getattr(action, "type", None), getattr(action, "payload", _MISSING)

    if isinstance(action_type, str):
        if payload is _MISSING:
            return f"{action_type} undefined"
        encoded = json.dumps(
            payload, separators=(",", ":"), ensure_ascii=False, default=repr,
        )
        return f"{action_type} {encoded}"
    return repr(action)


def stringify_expectation(expectation: Expectation) -> str:
    if isinstance(expectation, Predicate):
        return PREDICATE_PLACEHOLDER
    return stringify_action(expectation.value)


def stringify_error(error: Any) -> str:
    """Full traceback if one exists, else ``name: message``, else ``repr``."""
    if error is None:
        return repr(error)

    if isinstance(error, BaseException) and error.__traceback__ is not None:
        return "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        ).rstrip()

    message = getattr(error, "message", None) or (
        str(error) if isinstance(error, BaseException) else None
    )
    if message:
        name = getattr(error, "name", None) or type(error).__name__
        return f"{name}: {message}"

    return repr(error)


# ---------------------------------------------------------------------------
# Matcher
# ---------------------------------------------------------------------------
class Matcher:
    """
    Compares and diffs a set of expected events against actual events.

    Usage:
        matcher = Matcher.create(expectations, expected, actual)
        if matcher.failed():
            raise MatchFailure(matcher)
    """

    def __init__(self, expected: Timeline, actual: Timeline) -> None:
        self.expected = expected
        self.actual = actual

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        expectations_by_label: Mapping[str, Any],
        expected: Iterable[ExpectedEvent],
        actual: Iterable[ActualEvent],
    ) -> "Matcher":
        """Build both timelines, reconciling every actual event in order."""
        expected_timeline = Timeline()
        for event in expected:
            label, expectation = cls._resolve(expectations_by_label, event.expectation)
            expected_timeline.add(event.frame, label, ExpectationEntry(expectation))

        actual_timeline = Timeline()
        for event in actual:
            record = cls._find_match(expected_timeline.items, event)
            entry = ActualEntry(
                value=event.value,
                error=event.error,
                did_match_expected=record is not None,
            )

            if record is not None:
                record.value.matched = True
                key = record.key
            else:
                prefix = ERROR_LABEL_PREFIX if event.error is not None else EXTRA_LABEL_PREFIX
                key = f"{prefix}{len(actual_timeline)}"

            actual_timeline.add(event.frame, key, entry)
            logger.debug(
                "Actual @%d -> %s (%s)",
                event.frame, key, "matched" if record is not None else "unmatched",
            )

        matcher = cls(expected_timeline, actual_timeline)
        logger.info(
            "Compared %d expected / %d actual events: %s",
            len(expected_timeline), len(actual_timeline),
            "FAILED" if matcher.failed() else "OK",
        )
        return matcher

    @staticmethod
    def _resolve(
        expectations_by_label: Mapping[str, Any],
        expectation: Any,
    ) -> Tuple[str, Expectation]:
        if isinstance(expectation, LabeledExpectation):
            return expectation.label, expectation.expectation

        target = _payload(expectation)
        for label, candidate in expectations_by_label.items():
            if isinstance(candidate, LabeledExpectation):
                candidate = candidate.expectation
            if candidate is expectation or _payload(candidate) is target:
                return label, expectation_of(candidate)

        logger.warning(
            "Expectation %r is not registered under any label; using %r",
            expectation, UNKNOWN_LABEL,
        )
        return UNKNOWN_LABEL, expectation_of(expectation)

    @staticmethod
    def _find_match(
        records: Sequence[TimelineRecord],
        event: ActualEvent,
    ) -> Optional[TimelineRecord]:
        unmatched = [r for r in records if not r.value.matched]

        for record in unmatched:
            if record.frame == event.frame and compare_event(record.value.expectation, event).ok:
                return record

        for record in unmatched:
            if compare_event(record.value.expectation, event).ok:
                return record

        return None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def failed(self) -> bool:
        """True if any expectation went unmatched or any actual was extra."""
        return (
            any(not r.value.matched for r in self.expected.items)
            or any(not r.value.did_match_expected for r in self.actual.items)
        )

    def extraneous(self) -> List[TimelineRecord]:
        return [r for r in self.actual.items if not r.value.did_match_expected]

    def annotate(self, config: Optional[RenderConfig] = None) -> str:
        """Pretty-print the annotated assertion error message."""
        expected_str, actual_str = print_all([self.expected, self.actual], config)
        lines = ["", f"Expected: {expected_str}", f"Actual:   {actual_str}", "", "Expectations:"]

        for record in self.expected.items:
            glyph = TICK if record.value.matched else CROSS
            content = stringify_expectation(record.value.expectation)
            lines.append(f"  {glyph} {record.key}@{record.frame}: {content}")

        extraneous = self.extraneous()
        if extraneous:
            lines += ["", "Unmatched/Extraneous Actions:"]
            for record in extraneous:
                entry = record.value
                if entry.error is not None:
                    content = stringify_error(entry.error)
                else:
                    content = stringify_action(entry.value)
                lines.append(f"  {record.key}@{record.frame}: {content}")

        return LINE_SEPARATOR.join(lines)


# ---------------------------------------------------------------------------
# High-level helpers
# ---------------------------------------------------------------------------
def compare(
    expectations_by_label: Mapping[str, Any],
    expected: Iterable[ExpectedEvent],
    actual: Iterable[ActualEvent],
) -> Matcher:
    return Matcher.create(expectations_by_label, expected, actual)


def assert_events(
    expectations_by_label: Mapping[str, Any],
    expected: Iterable[ExpectedEvent],
    actual: Iterable[ActualEvent],
) -> Matcher:
    """Compare and raise :class:`MatchFailure` on any mismatch."""
    matcher = Matcher.create(expectations_by_label, expected, actual)
    if matcher.failed():
        raise MatchFailure(matcher)
    return matcher


def compare_files(
    expectations_path: str,
    expected_path: str,
    actual_path: str,
) -> Matcher:
    """Load expectations, expected and actual events from disk and compare."""
    from marble_assert.loader import (
        load_actual_events,
        load_expectations,
        load_expected_events,
    )

    logger.info("Loading expectations from %s", expectations_path)
    expectations = load_expectations(expectations_path)
    expected = load_expected_events(expected_path, expectations)
    actual = load_actual_events(actual_path)
    logger.info(
        "Loaded %d expected events from %s and %d actual events from %s",
        len(expected), expected_path, len(actual), actual_path,
    )
    return Matcher.create(expectations, expected, actual)
