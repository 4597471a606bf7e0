"""Tests for result classification."""

import pytest

from snippet_check.comparator import classify, diff_lines
from snippet_check.models.report import DiffLine
from snippet_check.models.result import ExecutionError, ExecutionResult
from snippet_check.testing.factories import ExampleRecordFactory


def test_pass_when_outputs_match() -> None:
    """Matching output lines classify as pass."""
    record = ExampleRecordFactory.build(expected_outputs=("2",))
    result = ExecutionResult(example_id=record.id, actual_outputs=("2",))

    verdict = classify(record, result)

    assert verdict.classification == "pass"
    assert verdict.diff == ()
    assert verdict.example_id == record.id


def test_fail_shows_expected_and_actual() -> None:
    """Mismatching output classifies as fail with a line-aligned diff."""
    record = ExampleRecordFactory.build(expected_outputs=("2",))
    result = ExecutionResult(example_id=record.id, actual_outputs=("3",))

    verdict = classify(record, result)

    assert verdict.classification == "fail"
    assert verdict.diff == (DiffLine(index=0, expected="2", actual="3"),)


def test_fail_on_missing_and_extra_lines() -> None:
    """Length differences show up with a missing side."""
    record = ExampleRecordFactory.build(expected_outputs=("a", "b"))
    result = ExecutionResult(example_id=record.id, actual_outputs=("a",))

    verdict = classify(record, result)

    assert verdict.classification == "fail"
    assert verdict.diff == (DiffLine(index=1, expected="b", actual=None),)


def test_errored_when_error_present() -> None:
    """An execution error classifies as errored and keeps the error."""
    record = ExampleRecordFactory.build(expected_outputs=("2",))
    error = ExecutionError(kind="runtime", message="ValueError: boom")
    result = ExecutionResult(example_id=record.id, error=error)

    verdict = classify(record, result)

    assert verdict.classification == "errored"
    assert verdict.error == error


def test_errored_for_parse_error_records() -> None:
    """Synthetic parse-error records are errored, not skipped."""
    error = ExecutionError(kind="parse", message="Unterminated code fence")
    record = ExampleRecordFactory.build(expected_outputs=(), parse_error=error)
    result = ExecutionResult(example_id=record.id, error=error)

    verdict = classify(record, result)

    assert verdict.classification == "errored"
    assert verdict.error == error


@pytest.mark.parametrize(
    "result_kwargs",
    [
        {"actual_outputs": ()},
        {"actual_outputs": ("anything", "at all")},
        {"error": ExecutionError(kind="runtime", message="boom")},
        {"error": ExecutionError(kind="timeout", message="too slow")},
    ],
)
def test_skipped_without_expected_outputs(result_kwargs: dict[str, object]) -> None:
    """Records without expectations are skipped whatever happened."""
    record = ExampleRecordFactory.build(expected_outputs=())
    result = ExecutionResult(example_id=record.id, **result_kwargs)  # type: ignore[arg-type]

    verdict = classify(record, result)

    assert verdict.classification == "skipped"
    assert not verdict.is_problem


def test_trailing_whitespace_normalization() -> None:
    """Trailing whitespace is ignored only when normalization is on."""
    record = ExampleRecordFactory.build(expected_outputs=("2",))
    result = ExecutionResult(example_id=record.id, actual_outputs=("2   ",))

    assert classify(record, result).classification == "pass"
    assert (
        classify(record, result, normalize_whitespace=False).classification == "fail"
    )


def test_leading_whitespace_is_significant() -> None:
    """Normalization only affects trailing whitespace."""
    record = ExampleRecordFactory.build(expected_outputs=("2",))
    result = ExecutionResult(example_id=record.id, actual_outputs=("  2",))

    assert classify(record, result).classification == "fail"


def test_diff_lines_returns_only_mismatches() -> None:
    """Matching positions are left out of the diff."""
    diff = diff_lines(("a", "b", "c"), ("a", "x", "c", "d"))

    assert diff == (
        DiffLine(index=1, expected="b", actual="x"),
        DiffLine(index=3, expected=None, actual="d"),
    )
