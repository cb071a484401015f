"""
Unit tests for the reconciliation matcher and its diagnostics.
"""
import pytest

from marble_assert.matcher import (
    Matcher,
    MatchFailure,
    assert_events,
    compare,
    compare_event,
    deep_equal,
    stringify_action,
    stringify_error,
)
from marble_assert.models import (
    ActualEvent,
    ExpectedEvent,
    Literal,
    Predicate,
    ReportedError,
    label_expectations,
)


# -----------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------
def did_yell(payload):
    return {"type": "DID_YELL", "payload": payload}


def _run(mapping, expected, actual) -> Matcher:
    """``expected`` is [(frame, label)], ``actual`` is [(frame, value)]."""
    labeled = label_expectations(mapping)
    return Matcher.create(
        labeled,
        [ExpectedEvent(frame, labeled[label]) for frame, label in expected],
        [ActualEvent(frame, value) for frame, value in actual],
    )


def _keys(timeline):
    return [r.key for r in timeline.items]


def _accept_all(value):
    pass


def _must_be_even(value):
    assert value % 2 == 0, f"{value} is odd"


# -----------------------------------------------------------------------
# Test: satisfaction rule
# -----------------------------------------------------------------------
class TestCompareEvent:
    def test_literal_equal(self):
        assert compare_event(Literal(did_yell("HI")), ActualEvent(1, did_yell("HI"))).ok

    def test_literal_not_equal(self):
        result = compare_event(Literal(did_yell("HI")), ActualEvent(1, did_yell("ho")))
        assert not result.ok
        assert result.reason

    def test_predicate_accepts(self):
        assert compare_event(Predicate(_must_be_even), ActualEvent(1, 4)).ok

    def test_predicate_rejection_is_captured(self):
        result = compare_event(Predicate(_must_be_even), ActualEvent(1, 3))
        assert not result.ok
        assert "AssertionError" in result.reason

    def test_predicate_any_exception_is_captured(self):
        result = compare_event(Predicate(_must_be_even), ActualEvent(1, "x"))
        assert not result.ok

    def test_predicate_pytest_fail_is_captured(self):
        def _fails(value):
            pytest.fail("nope")

        assert not compare_event(Predicate(_fails), ActualEvent(1, 4)).ok
        m = Matcher.create({"f": _fails}, [ExpectedEvent(1, _fails)], [ActualEvent(1, 4)])
        assert m.failed()
        assert [r.key for r in m.actual.items] == ["?0"]

    def test_predicate_keyboard_interrupt_propagates(self):
        def _interrupt(value):
            raise KeyboardInterrupt

        with pytest.raises(KeyboardInterrupt):
            compare_event(Predicate(_interrupt), ActualEvent(1, 4))

    def test_error_never_satisfies(self):
        event = ActualEvent(1, did_yell("HI"), error=ValueError("boom"))
        assert not compare_event(Predicate(_accept_all), event).ok
        assert not compare_event(Literal(did_yell("HI")), event).ok


class TestDeepEqual:
    def test_nested(self):
        assert deep_equal({"a": [1, {"b": (2, 3)}]}, {"a": [1, {"b": (2, 3)}]})

    def test_nested_mismatch(self):
        assert not deep_equal({"a": [1, {"b": 2}]}, {"a": [1, {"b": 3}]})

    def test_types_must_match(self):
        assert not deep_equal(1, 1.0)
        assert not deep_equal(1, True)
        assert not deep_equal([1], (1,))

    def test_nan_equals_nan(self):
        assert deep_equal(float("nan"), float("nan"))
        assert deep_equal({"x": [float("nan")]}, {"x": [float("nan")]})
        assert not deep_equal(1.0, float("nan"))

    def test_nan_literal_is_satisfiable(self):
        assert compare_event(Literal(float("nan")), ActualEvent(1, float("nan"))).ok

    def test_missing_key(self):
        assert not deep_equal({"a": 1}, {"a": 1, "b": None})


# -----------------------------------------------------------------------
# Test: tiered reconciliation
# -----------------------------------------------------------------------
class TestReconciliation:
    def test_exact_match(self):
        m = _run({"a": did_yell("HELLO")}, [(1, "a")], [(1, did_yell("HELLO"))])
        assert not m.failed()
        assert _keys(m.actual) == ["a"]

    def test_same_frame_preferred(self):
        m = _run(
            {"a": 1, "b": 1},
            [(1, "a"), (3, "b")],
            [(3, 1), (1, 1)],
        )
        assert _keys(m.actual) == ["b", "a"]
        assert not m.failed()

    def test_any_frame_fallback(self):
        m = _run({"a": did_yell("HELLO")}, [(1, "a")], [(3, did_yell("HELLO"))])
        assert not m.failed()
        assert _keys(m.actual) == ["a"]
        assert m.actual.items[0].frame == 3

    def test_expectation_consumed_once(self):
        m = _run({"a": 1}, [(1, "a")], [(1, 1), (1, 1)])
        assert _keys(m.actual) == ["a", "?1"]
        assert m.failed()

    def test_same_label_matches_each_occurrence(self):
        m = _run({"a": 1}, [(1, "a"), (2, "a")], [(1, 1), (2, 1)])
        assert not m.failed()
        assert _keys(m.actual) == ["a", "a"]

    def test_unmatched_expectation_fails(self):
        m = _run({"a": 1, "b": 2}, [(1, "a"), (2, "b")], [(1, 1)])
        assert m.failed()
        assert [r.value.matched for r in m.expected.items] == [True, False]

    def test_extra_actual_fails(self):
        m = _run({}, [], [(1, "surprise")])
        assert m.failed()
        assert _keys(m.actual) == ["?0"]

    def test_empty_passes(self):
        assert not _run({}, [], []).failed()

    def test_error_gets_bang_label(self):
        m = Matcher.create(
            {}, [], [ActualEvent(1, error=ReportedError("oh no!", name="SomeError"))],
        )
        assert _keys(m.actual) == ["!0"]
        assert m.failed()

    def test_counter_counts_all_actual_records(self):
        m = _run({"a": 1}, [(1, "a")], [(1, 1), (1, 2), (2, 3)])
        assert _keys(m.actual) == ["a", "?1", "?2"]

    def test_counter_is_per_matcher(self):
        first = _run({}, [], [(1, "x")])
        second = _run({}, [], [(1, "x")])
        assert _keys(first.actual) == _keys(second.actual) == ["?0"]

    def test_predicate_expectation(self):
        m = _run({"e": _must_be_even}, [(1, "e"), (2, "e")], [(1, 2), (2, 3)])
        assert _keys(m.actual) == ["e", "?1"]
        assert [r.value.matched for r in m.expected.items] == [True, False]

    def test_any_frame_takes_first_satisfiable(self):
        # The wildcard at frame 1 is consumed by the actual at frame 2,
        # so the literal at frame 3 is left for a value it cannot match.
        m = _run(
            {"p": _accept_all, "f": 5},
            [(1, "p"), (3, "f")],
            [(2, 5), (3, 9)],
        )
        assert _keys(m.actual) == ["p", "?1"]
        assert [r.value.matched for r in m.expected.items] == [True, False]
        assert m.failed()

    def test_compare_alias(self):
        labeled = label_expectations({"a": 1})
        m = compare(labeled, [ExpectedEvent(1, labeled["a"])], [ActualEvent(1, 1)])
        assert not m.failed()


# -----------------------------------------------------------------------
# Test: label recovery
# -----------------------------------------------------------------------
class TestLabels:
    def test_identity_lookup_in_raw_mapping(self):
        hello = did_yell("HELLO")
        m = Matcher.create({"a": hello}, [ExpectedEvent(1, hello)], [ActualEvent(1, did_yell("HELLO"))])
        assert _keys(m.expected) == ["a"]
        assert _keys(m.actual) == ["a"]

    def test_lookup_is_by_identity_not_equality(self):
        m = Matcher.create(
            {"a": did_yell("HELLO")},
            [ExpectedEvent(1, did_yell("HELLO"))],
            [ActualEvent(1, did_yell("HELLO"))],
        )
        assert _keys(m.expected) == ["?"]
        assert not m.failed()

    def test_unregistered_expectation_logs_warning(self, caplog):
        with caplog.at_level("WARNING", logger="marble_assert.matcher"):
            Matcher.create({}, [ExpectedEvent(1, 42)], [])
        assert "not registered" in caplog.text

    def test_raw_value_with_labeled_mapping(self):
        hello = did_yell("HELLO")
        labeled = label_expectations({"a": hello})
        m = Matcher.create(labeled, [ExpectedEvent(1, hello)], [ActualEvent(1, dict(hello))])
        assert _keys(m.expected) == ["a"]
        assert _keys(m.actual) == ["a"]
        assert not m.failed()

    def test_raw_predicate_with_labeled_mapping(self):
        labeled = label_expectations({"e": _must_be_even})
        m = Matcher.create(labeled, [ExpectedEvent(2, _must_be_even)], [ActualEvent(2, 4)])
        assert _keys(m.expected) == ["e"]
        assert "  ✔ e@2: <test function>" in m.annotate().split("\r\n")

    def test_wrapped_expectation_with_raw_mapping(self):
        hello = did_yell("HELLO")
        m = Matcher.create({"a": hello}, [ExpectedEvent(1, Literal(hello))], [ActualEvent(1, dict(hello))])
        assert _keys(m.expected) == ["a"]
        m = Matcher.create(
            {"e": _must_be_even}, [ExpectedEvent(1, Predicate(_must_be_even))], [ActualEvent(1, 2)],
        )
        assert _keys(m.expected) == ["e"]

    def test_registered_expectation_logs_no_warning(self, caplog):
        hello = did_yell("HELLO")
        with caplog.at_level("WARNING", logger="marble_assert.matcher"):
            Matcher.create(label_expectations({"a": hello}), [ExpectedEvent(1, hello)], [])
        assert "not registered" not in caplog.text

    def test_raw_callable_becomes_predicate(self):
        m = Matcher.create({"e": _must_be_even}, [ExpectedEvent(1, _must_be_even)], [ActualEvent(1, 4)])
        assert isinstance(m.expected.items[0].value.expectation, Predicate)
        assert not m.failed()


# -----------------------------------------------------------------------
# Test: stringifiers
# -----------------------------------------------------------------------
class _Action:
    def __init__(self, type, payload=None):
        self.type = type
        self.payload = payload


class TestStringify:
    def test_action_mapping(self):
        assert stringify_action(did_yell("HELLO")) == 'DID_YELL "HELLO"'

    def test_action_object(self):
        assert stringify_action(_Action("PING", {"n": 1, "ok": True})) == 'PING {"n":1,"ok":true}'

    def test_action_without_payload(self):
        assert stringify_action({"type": "RESET"}) == "RESET undefined"
        assert stringify_action(_Action("RESET")) == "RESET null"

    def test_action_with_explicit_none_payload(self):
        assert stringify_action({"type": "RESET", "payload": None}) == "RESET null"

    def test_action_object_without_payload_attribute(self):
        class Bare:
            type = "RESET"

        assert stringify_action(Bare()) == "RESET undefined"

    def test_plain_value(self):
        assert stringify_action(42) == "42"
        assert stringify_action({"kind": "x"}) == "{'kind': 'x'}"

    def test_error_name_and_message(self):
        assert stringify_error(ReportedError("oh no!", name="SomeError")) == "SomeError: oh no!"

    def test_error_without_traceback(self):
        assert stringify_error(ValueError("bad")) == "ValueError: bad"

    def test_error_with_traceback(self):
        try:
            raise ValueError("boom")
        except ValueError as exc:
            text = stringify_error(exc)
        assert text.startswith("Traceback (most recent call last):")
        assert text.endswith("ValueError: boom")

    def test_error_without_message(self):
        assert stringify_error(ValueError()) == "ValueError()"


# -----------------------------------------------------------------------
# Test: annotate
# -----------------------------------------------------------------------
class TestAnnotate:
    def test_errored_stream(self):
        m = Matcher.create(
            {}, [], [ActualEvent(1, error=ReportedError("oh no!", name="SomeError"))],
        )
        assert m.annotate() == "\r\n".join([
            "",
            "Expected: -- -------",
            "Actual:   -!0-------",
            "",
            "Expectations:",
            "",
            "Unmatched/Extraneous Actions:",
            "  !0@1: SomeError: oh no!",
        ])

    def test_one_action_mismatches(self):
        m = _run(
            {
                "a": did_yell("HELLO"),
                "b": did_yell("wut"),
                "c": did_yell("BYE"),
                "d": did_yell("BYEBYE"),
            },
            [(1, "a"), (1, "b"), (6, "c"), (6, "d")],
            [
                (1, did_yell("HELLO")),
                (1, did_yell("HELLOHELLO")),
                (6, did_yell("BYE")),
                (6, did_yell("BYEBYE")),
            ],
        )
        assert m.failed()
        assert m.annotate() == "\r\n".join([
            "",
            "Expected: -(a b) ----(c d)",
            "Actual:   -(a ?1)----(c d)",
            "",
            "Expectations:",
            '  ✔ a@1: DID_YELL "HELLO"',
            '  ✖ b@1: DID_YELL "wut"',
            '  ✔ c@6: DID_YELL "BYE"',
            '  ✔ d@6: DID_YELL "BYEBYE"',
            "",
            "Unmatched/Extraneous Actions:",
            '  ?1@1: DID_YELL "HELLOHELLO"',
        ])

    def test_extra_actions(self):
        m = _run(
            {"a": did_yell("HELLO")},
            [(1, "a")],
            [(1, did_yell("HELLO")), (1, did_yell("HELLOHELLO"))],
        )
        assert m.failed()
        assert m.annotate() == "\r\n".join([
            "",
            "Expected: -  a   ---",
            "Actual:   -(a ?1)---",
            "",
            "Expectations:",
            '  ✔ a@1: DID_YELL "HELLO"',
            "",
            "Unmatched/Extraneous Actions:",
            '  ?1@1: DID_YELL "HELLOHELLO"',
        ])

    def test_missing_action_has_no_extraneous_section(self):
        m = _run({"a": did_yell("HELLO")}, [(1, "a")], [])
        text = m.annotate()
        assert "  ✖ a@1: DID_YELL \"HELLO\"" in text
        assert "Unmatched/Extraneous Actions:" not in text

    def test_predicate_placeholder(self):
        m = _run({"e": _must_be_even}, [(2, "e")], [(2, 3)])
        assert "  ✖ e@2: <test function>" in m.annotate().split("\r\n")
        assert "  ?0@2: 3" in m.annotate().split("\r\n")


# -----------------------------------------------------------------------
# Test: assert_events
# -----------------------------------------------------------------------
class TestAssertEvents:
    def test_passes(self):
        labeled = label_expectations({"a": 1})
        matcher = assert_events(labeled, [ExpectedEvent(1, labeled["a"])], [ActualEvent(1, 1)])
        assert not matcher.failed()

    def test_raises_with_annotation(self):
        labeled = label_expectations({"a": 1})
        with pytest.raises(MatchFailure) as info:
            assert_events(labeled, [ExpectedEvent(1, labeled["a"])], [ActualEvent(1, 2)])
        assert isinstance(info.value, AssertionError)
        assert str(info.value) == info.value.matcher.annotate()
        assert "  ✖ a@1: 1" in str(info.value)
