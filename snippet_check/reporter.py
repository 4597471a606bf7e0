"""Append-only collection of verdicts into a run summary."""

import asyncio
import logging
from dataclasses import dataclass, field

from snippet_check.comparator import classify
from snippet_check.models.record import ExampleRecord
from snippet_check.models.report import CLASSIFICATIONS, RunSummary, Verdict
from snippet_check.models.result import ExecutionResult

log = logging.getLogger(__name__)


class ReportInconsistencyError(Exception):
    """Raised when records and results violate the run's invariants.

    This is the only fatal condition of a run.
    """


@dataclass(kw_only=True)
class Reporter:
    """Classifies results as they arrive and builds the final summary.

    With ``fail_fast``, the first failing or errored verdict halts the
    reporter and sets ``cancel``; results arriving afterwards are listed as
    not accepted instead of being classified.
    """

    normalize_whitespace: bool = True
    fail_fast: bool = False
    cancel: asyncio.Event = field(default_factory=asyncio.Event)

    _records: dict[str, ExampleRecord] = field(default_factory=dict, init=False)
    _verdicts: list[Verdict] = field(default_factory=list, init=False)
    _reported: set[str] = field(default_factory=set, init=False)
    _not_accepted: list[str] = field(default_factory=list, init=False)
    _halted: bool = field(default=False, init=False)
    _summary: RunSummary | None = field(default=None, init=False)

    @property
    def halted(self) -> bool:
        """Whether fail-fast stopped accepting results."""
        return self._halted

    def register(self, record: ExampleRecord) -> None:
        """Declare a record that must receive exactly one result."""
        self._ensure_open()
        if record.id in self._records:
            raise ReportInconsistencyError(f"Duplicate record id: {record.id}")
        self._records[record.id] = record

    def add(self, record: ExampleRecord, result: ExecutionResult) -> Verdict | None:
        """Classify and append a result.

        Returns:
            The verdict, or None when the result was not accepted because the
            run was halted

        Raises:
            ReportInconsistencyError: If the record is unknown, was already
                reported, or does not match the result

        """
        self._ensure_open()
        if self._records.get(record.id) != record:
            raise ReportInconsistencyError(f"Unregistered record: {record.id}")
        if result.example_id != record.id:
            raise ReportInconsistencyError(
                f"Result for {result.example_id} reported as {record.id}"
            )
        if record.id in self._reported:
            raise ReportInconsistencyError(f"Record reported twice: {record.id}")
        self._reported.add(record.id)

        if self.halted:
            log.info("Not accepting %s: run halted by fail-fast", record.id)
            self._not_accepted.append(record.id)
            return None

        verdict = classify(
            record, result, normalize_whitespace=self.normalize_whitespace
        )
        self._verdicts.append(verdict)

        if self.fail_fast and verdict.is_problem:
            log.info("Halting run after %s: %s", record.id, verdict.classification)
            self._halted = True
            self.cancel.set()
        return verdict

    def finalize(self) -> RunSummary:
        """Build the summary; no results can be added afterwards."""
        self._ensure_open()
        missing = sorted(set(self._records) - self._reported)
        if missing:
            raise ReportInconsistencyError(
                f"No result reported for: {', '.join(missing)}"
            )

        counts = {name: 0 for name in CLASSIFICATIONS}
        counts["timeouts"] = 0
        for verdict in self._verdicts:
            counts[verdict.classification] += 1
            if verdict.error is not None and verdict.error.kind == "timeout":
                counts["timeouts"] += 1

        self._summary = RunSummary(
            verdicts=tuple(self._verdicts),
            counts=counts,
            total_duration_ms=sum(v.duration_ms for v in self._verdicts),
            not_accepted=tuple(self._not_accepted),
        )
        return self._summary

    def _ensure_open(self) -> None:
        if self._summary is not None:
            raise ReportInconsistencyError("Run summary already finalized")
