"""
Readers for comparison inputs stored on disk.

  expectations.json   {"a": {"type": "DID_YELL", "payload": "HELLO"}, ...}
  expected.jsonl      {"frame": 1, "label": "a"}
  actual.jsonl        {"frame": 1, "value": {...}}
                      {"frame": 2, "error": {"name": "SomeError", "message": "oh no!"}}
  timelines.json      [[{"frame": 1, "key": "a"}, ...], ...]

Every reader raises ``ValueError`` naming the offending line or entry.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterator, List, Mapping, Tuple

from marble_assert.models import (
    ActualEvent,
    ExpectedEvent,
    LabeledExpectation,
    ReportedError,
    label_expectations,
)
from marble_assert.timeline import Timeline

logger = logging.getLogger(__name__)


def _iter_jsonl(path: str) -> Iterator[Tuple[int, Dict[str, Any]]]:
    with open(path, "r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                yield line_no, json.loads(line)
            except json.JSONDecodeError as exc:
                raise ValueError(f"Invalid JSON on line {line_no}: {exc}") from exc


def _read_json(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in {path}: {exc}") from exc


def load_expectations(path: str) -> Dict[str, LabeledExpectation]:
    """Load a label -> literal expectation mapping."""
    data = _read_json(path)
    if not isinstance(data, dict):
        raise ValueError(
            f"Expectations must be a JSON object, got {type(data).__name__}"
        )
    return label_expectations(data)


def expected_event_from_dict(
    d: Mapping[str, Any],
    expectations: Mapping[str, LabeledExpectation],
) -> ExpectedEvent:
    label = d["label"]
    if label not in expectations:
        raise KeyError(f"unknown expectation label {label!r}")
    return ExpectedEvent(frame=int(d["frame"]), expectation=expectations[label])


def actual_event_from_dict(d: Mapping[str, Any]) -> ActualEvent:
    error = d.get("error")
    return ActualEvent(
        frame=int(d["frame"]),
        value=d.get("value"),
        error=ReportedError.from_dict(error) if error is not None else None,
    )


def load_expected_events(
    path: str,
    expectations: Mapping[str, LabeledExpectation],
) -> List[ExpectedEvent]:
    events: List[ExpectedEvent] = []
    for line_no, data in _iter_jsonl(path):
        try:
            events.append(expected_event_from_dict(data, expectations))
        except (KeyError, ValueError, TypeError) as exc:
            raise ValueError(f"Invalid expected event on line {line_no}: {exc}") from exc
    logger.debug("Loaded %d expected events from %s", len(events), path)
    return events


def load_actual_events(path: str) -> List[ActualEvent]:
    events: List[ActualEvent] = []
    for line_no, data in _iter_jsonl(path):
        try:
            events.append(actual_event_from_dict(data))
        except (KeyError, ValueError, TypeError, AttributeError) as exc:
            raise ValueError(f"Invalid actual event on line {line_no}: {exc}") from exc
    logger.debug("Loaded %d actual events from %s", len(events), path)
    return events


def timelines_from_data(data: Any) -> List[Timeline]:
    """Build timelines from a list of lists of ``{"frame", "key"}`` records."""
    if not isinstance(data, list):
        raise ValueError(f"Timelines must be a JSON list, got {type(data).__name__}")

    timelines: List[Timeline] = []
    for index, series in enumerate(data):
        timeline = Timeline()
        try:
            for record in series:
                timeline.add(int(record["frame"]), str(record["key"]), record.get("value"))
        except (KeyError, ValueError, TypeError, AttributeError) as exc:
            raise ValueError(f"Invalid record in timeline #{index}: {exc}") from exc
        timelines.append(timeline)
    return timelines


def load_timelines(path: str) -> List[Timeline]:
    return timelines_from_data(_read_json(path))
