"""Models for classified results and the run summary."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Literal

from snippet_check.models.result import ExecutionError

Classification = Literal["pass", "fail", "errored", "skipped"]

CLASSIFICATIONS: Sequence[Classification] = ("pass", "fail", "errored", "skipped")


@dataclass(frozen=True, kw_only=True)
class DiffLine:
    """One mismatched output position; a missing side is ``None``."""

    index: int
    expected: str | None
    actual: str | None


@dataclass(frozen=True, kw_only=True)
class Verdict:
    """Classification of one record's execution."""

    example_id: str
    classification: Classification
    duration_ms: float = 0.0
    error: ExecutionError | None = None
    diff: Sequence[DiffLine] = field(default_factory=tuple)

    @property
    def is_problem(self) -> bool:
        """Whether the verdict counts against the run."""
        return self.classification in {"fail", "errored"}


@dataclass(frozen=True, kw_only=True)
class RunSummary:
    """Immutable summary produced once all results were reported."""

    verdicts: Sequence[Verdict]
    counts: Mapping[str, int]
    total_duration_ms: float
    not_accepted: Sequence[str] = field(default_factory=tuple)

    @property
    def problems(self) -> Sequence[Verdict]:
        """Fail and Errored verdicts, with their diffs."""
        return tuple(v for v in self.verdicts if v.is_problem)

    @property
    def succeeded(self) -> bool:
        """Whether nothing failed, errored, or was left unaccepted."""
        return not self.problems and not self.not_accepted
