"""Quick API verification for the marble playground."""
import sys

import requests

base = "http://127.0.0.1:5050"

tests = [
    ("Scenarios loaded", "GET", "/api/scenarios", None, lambda r: len(r.json()) == 7),
    ("Single event", "POST", "/api/run-scenario", {"scenario": "single_event"},
     lambda r: r.json()["passed"]),
    ("Gap compaction", "POST", "/api/run-scenario", {"scenario": "gap_compaction"},
     lambda r: r.json()["passed"]),
    ("Gap compaction (threshold=60)", "POST", "/api/run-scenario", {
        "scenario": "gap_compaction",
        "params": {"threshold": 60},
    }, lambda r: "ms" not in r.json()["lines"][1]),
    ("Extraneous action", "POST", "/api/run-scenario", {"scenario": "extra_action"},
     lambda r: r.json()["passed"] and r.json()["extraneous"] == ["?1@1"]),
    ("Errored stream", "POST", "/api/run-scenario", {"scenario": "errored_stream"},
     lambda r: "!0@1: SomeError: oh no!" in r.json()["report"]),
    ("Custom render", "POST", "/api/render", {
        "timelines": [
            [{"frame": 1, "key": "a"}, {"frame": 25, "key": "b"}],
            [{"frame": 2, "key": "a"}, {"frame": 50, "key": "b"}],
        ],
    }, lambda r: r.json()["lines"] == ["-a--20ms-b-22ms--", "--a-20ms---22ms-b"]),
    ("Custom compare", "POST", "/api/compare", {
        "expectations": {"a": {"type": "DID_YELL", "payload": "HELLO"}},
        "expected": [{"frame": 1, "label": "a"}],
        "actual": [{"frame": 1, "value": {"type": "DID_YELL", "payload": "HELLO"}}],
    }, lambda r: r.json()["failed"] is False),
    ("Unknown scenario", "POST", "/api/run-scenario", {"scenario": "nope"},
     lambda r: r.status_code == 400),
]

print("=" * 60)
ok = 0
for name, method, path, body, check in tests:
    try:
        if method == "GET":
            r = requests.get(base + path)
        else:
            r = requests.post(base + path, json=body)
        passed = check(r)
        status = "PASS" if passed else "FAIL"
        detail = ""
        if not passed and method == "POST":
            detail = f" | {r.text[:120]}"
    except Exception as exc:
        status = "ERR"
        detail = f" | {exc}"
        passed = False
    print(f"  {'✅' if passed else '❌'} [{status}] {name}{detail}")
    if passed:
        ok += 1

print(f"\n  {ok}/{len(tests)} passed")
print("=" * 60)
if ok != len(tests):
    sys.exit(1)
