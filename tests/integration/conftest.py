"""Fixtures for integration tests running real child interpreters."""

import textwrap
from collections.abc import Callable

import pytest

from snippet_check.executor import SubprocessExecutor
from snippet_check.models.record import ExampleRecord

MakeRecordFn = Callable[..., ExampleRecord]


@pytest.fixture
def executor() -> SubprocessExecutor:
    """Executor with a timeout generous enough for slow CI machines."""
    return SubprocessExecutor(timeout=20.0)


@pytest.fixture
def make_record() -> MakeRecordFn:
    """Return a function building records from dedented source text."""
    counter = iter(range(1, 1_000))

    def _make(source: str, *expected: str) -> ExampleRecord:
        ordinal = next(counter)
        return ExampleRecord(
            id=f"test.md#{ordinal}",
            document="test.md",
            ordinal=ordinal,
            source_text=textwrap.dedent(source),
            expected_outputs=expected,
        )

    return _make
