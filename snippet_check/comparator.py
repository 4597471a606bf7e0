"""Classification of an execution result against its record."""

import logging
from collections.abc import Sequence
from itertools import zip_longest

from snippet_check.models.record import ExampleRecord
from snippet_check.models.report import DiffLine, Verdict
from snippet_check.models.result import ExecutionResult

log = logging.getLogger(__name__)


def normalize(lines: Sequence[str], *, normalize_whitespace: bool) -> Sequence[str]:
    """Strip trailing whitespace from every line when normalization is on."""
    if not normalize_whitespace:
        return tuple(lines)
    return tuple(line.rstrip() for line in lines)


def diff_lines(expected: Sequence[str], actual: Sequence[str]) -> Sequence[DiffLine]:
    """Align expected and actual output by index, keeping mismatches only."""
    return tuple(
        DiffLine(index=index, expected=want, actual=got)
        for index, (want, got) in enumerate(zip_longest(expected, actual))
        if want != got
    )


def classify(
    record: ExampleRecord,
    result: ExecutionResult,
    *,
    normalize_whitespace: bool = True,
) -> Verdict:
    """Assign exactly one classification to a record's execution.

    Records carrying a parse error are errored. Records without expected
    output are skipped whatever they printed or raised, since there is
    nothing to verify. Otherwise an error makes the verdict errored, and
    output is compared line for line.
    """
    if record.parse_error is not None:
        return Verdict(
            example_id=record.id,
            classification="errored",
            duration_ms=result.duration_ms,
            error=record.parse_error,
        )

    if not record.is_verifiable:
        log.info("Skipped %s: no expected output declared", record.id)
        return Verdict(
            example_id=record.id,
            classification="skipped",
            duration_ms=result.duration_ms,
            error=result.error,
        )

    expected = normalize(
        record.expected_outputs, normalize_whitespace=normalize_whitespace
    )
    actual = normalize(result.actual_outputs, normalize_whitespace=normalize_whitespace)
    diff = diff_lines(expected, actual)

    if result.error is not None:
        return Verdict(
            example_id=record.id,
            classification="errored",
            duration_ms=result.duration_ms,
            error=result.error,
            diff=diff,
        )

    return Verdict(
        example_id=record.id,
        classification="fail" if diff else "pass",
        duration_ms=result.duration_ms,
        diff=diff,
    )
