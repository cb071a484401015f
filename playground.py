"""
Interactive playground for the marble assertion engine.

A small JSON API for rendering marble diagrams and comparing event streams
without writing code. Pick a scenario, tweak its params, run it.

Usage:
    python playground.py
    # POST to http://localhost:5050/api/...
"""
from __future__ import annotations

import traceback
from typing import Any, Callable, Dict, List

from flask import Flask, jsonify, request

from marble_assert.loader import (
    actual_event_from_dict,
    expected_event_from_dict,
    timelines_from_data,
)
from marble_assert.matcher import Matcher
from marble_assert.models import (
    DEFAULT_COMPACT_THRESHOLD,
    DEFAULT_MIN_WIDTH,
    RenderConfig,
    label_expectations,
)
from marble_assert.renderer import print_all

app = Flask(__name__)


def _yell(payload: str) -> Dict[str, str]:
    return {"type": "DID_YELL", "payload": payload}


def _records(*pairs: Any) -> List[Dict[str, Any]]:
    return [{"frame": frame, "key": key} for frame, key in pairs]


# -----------------------------------------------------------------------
# Scenario definitions
# -----------------------------------------------------------------------
SCENARIOS: List[Dict[str, Any]] = [
    {
        "id": "single_event",
        "name": "Single event",
        "kind": "render",
        "description": "One timeline, one record at frame 1.",
        "params": {
            "timelines": [_records((1, "a"))],
            "expected_output": ["-a--------"],
        },
    },
    {
        "id": "simultaneous_events",
        "name": "Simultaneous events",
        "kind": "render",
        "description": "Two records at the same frame are grouped as (a b).",
        "params": {
            "timelines": [_records((1, "a"), (1, "b"))],
            "expected_output": ["-(a b)----"],
        },
    },
    {
        "id": "aligned_groups",
        "name": "Aligned groups",
        "kind": "render",
        "description": "A lone symbol is centered under a wider group at the same frame.",
        "params": {
            "timelines": [_records((1, "a"), (1, "b")), _records((1, "a"))],
            "expected_output": ["-(a b)----", "-  a  ----"],
        },
    },
    {
        "id": "divergent_frames",
        "name": "Divergent frames",
        "kind": "render",
        "description": "Idle timelines still take up the width of the widest symbol.",
        "params": {
            "timelines": [_records((1, "a"), (1, "b")), _records((2, "a"))],
            "expected_output": ["-(a b)----", "-  -  a---"],
        },
    },
    {
        "id": "gap_compaction",
        "name": "Gap compaction",
        "kind": "render",
        "description": (
            f"Idle gaps longer than {DEFAULT_COMPACT_THRESHOLD} ticks are "
            "written as -<N>ms-."
        ),
        "params": {
            "timelines": [_records((1, "a")), _records((2, "a"), (50, "b"))],
            "expected_output": ["-a--45ms--", "--a-45ms-b"],
        },
    },
    {
        "id": "extra_action",
        "name": "Extraneous action",
        "kind": "compare",
        "description": "The actual stream emits one more action than expected.",
        "params": {
            "expectations": {"a": _yell("HELLO")},
            "expected": [{"frame": 1, "label": "a"}],
            "actual": [
                {"frame": 1, "value": _yell("HELLO")},
                {"frame": 1, "value": _yell("HELLOHELLO")},
            ],
            "expect_failure": True,
        },
    },
    {
        "id": "errored_stream",
        "name": "Errored stream",
        "kind": "compare",
        "description": "An error never satisfies an expectation and is labeled !n.",
        "params": {
            "expectations": {},
            "expected": [],
            "actual": [{"frame": 1, "error": {"name": "SomeError", "message": "oh no!"}}],
            "expect_failure": True,
        },
    },
]

_SCENARIOS_BY_ID = {s["id"]: s for s in SCENARIOS}


# -----------------------------------------------------------------------
# Runners
# -----------------------------------------------------------------------
def _config(params: Dict[str, Any]) -> RenderConfig:
    return RenderConfig(
        threshold=int(params.get("threshold", DEFAULT_COMPACT_THRESHOLD)),
        min_width=int(params.get("min_width", DEFAULT_MIN_WIDTH)),
    )


def _render(params: Dict[str, Any]) -> Dict[str, Any]:
    lines = print_all(timelines_from_data(params["timelines"]), _config(params))
    result: Dict[str, Any] = {"lines": lines}
    if "expected_output" in params:
        result["passed"] = lines == list(params["expected_output"])
        result["expected_output"] = params["expected_output"]
    return result


def _compare(params: Dict[str, Any]) -> Dict[str, Any]:
    expectations = label_expectations(params.get("expectations", {}))
    expected = [expected_event_from_dict(e, expectations) for e in params.get("expected", [])]
    actual = [actual_event_from_dict(a) for a in params.get("actual", [])]

    matcher = Matcher.create(expectations, expected, actual)
    expected_line, actual_line = print_all([matcher.expected, matcher.actual], _config(params))
    failed = matcher.failed()

    result: Dict[str, Any] = {
        "failed": failed,
        "expected": expected_line,
        "actual": actual_line,
        "report": matcher.annotate(_config(params)),
        "extraneous": [f"{r.key}@{r.frame}" for r in matcher.extraneous()],
    }
    if "expect_failure" in params:
        result["passed"] = failed == bool(params["expect_failure"])
    return result


RUNNERS: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    "render": _render,
    "compare": _compare,
}


# -----------------------------------------------------------------------
# Routes
# -----------------------------------------------------------------------
@app.route("/api/scenarios")
def get_scenarios():
    return jsonify(SCENARIOS)


@app.route("/api/render", methods=["POST"])
def render():
    return _respond(_render, request.get_json() or {})


@app.route("/api/compare", methods=["POST"])
def compare():
    return _respond(_compare, request.get_json() or {})


@app.route("/api/run-scenario", methods=["POST"])
def run_scenario():
    data = request.get_json() or {}
    scenario = _SCENARIOS_BY_ID.get(data.get("scenario"))
    if not scenario:
        return jsonify({"error": f"Unknown scenario: {data.get('scenario')}"}), 400

    params = {**scenario["params"], **data.get("params", {})}
    return _respond(RUNNERS[scenario["kind"]], params)


def _respond(runner: Callable[[Dict[str, Any]], Dict[str, Any]], params: Dict[str, Any]):
    try:
        return jsonify(runner(params))
    except (KeyError, ValueError, TypeError, AttributeError) as exc:
        return jsonify({
            "error": str(exc),
            "traceback": traceback.format_exc(),
        }), 400


# -----------------------------------------------------------------------
# Main
# -----------------------------------------------------------------------
if __name__ == "__main__":
    print("\n  Marble playground → http://localhost:5050\n")
    app.run(host="0.0.0.0", port=5050, debug=True)
