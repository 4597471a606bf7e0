"""Run orchestrator coordinating execution and reporting of a corpus."""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from snippet_check.executor.base import SnippetExecutor
from snippet_check.models.config import RunConfig
from snippet_check.models.record import ExampleRecord
from snippet_check.models.report import RunSummary
from snippet_check.models.result import ExecutionError, ExecutionResult
from snippet_check.reporter import Reporter

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class SnippetOrchestrator:
    """Executes records concurrently and reports them into one summary."""

    executor: SnippetExecutor
    config: RunConfig

    async def run(
        self,
        records: Iterable[ExampleRecord],
        *,
        cancel: asyncio.Event | None = None,
    ) -> RunSummary:
        """Execute every record and return the finalized summary.

        Args:
            records: Records to execute, typically from the corpus parser
            cancel: Run-level cancellation signal; in-flight and pending
                executions finalize as timeouts once it is set

        Returns:
            Summary enumerating every record

        Raises:
            ReportInconsistencyError: If records or results break the run's
                invariants (for example a duplicate id)

        """
        reporter = Reporter(
            normalize_whitespace=self.config.normalize_whitespace,
            fail_fast=self.config.fail_fast,
            cancel=cancel if cancel is not None else asyncio.Event(),
        )
        pending = list(records)
        for record in pending:
            reporter.register(record)

        if not pending:
            log.info("No records to execute")
            return reporter.finalize()

        log.info(
            "Executing %d record(s) with concurrency %d...",
            len(pending),
            self.config.max_concurrency,
        )
        semaphore = asyncio.Semaphore(self.config.max_concurrency)
        results = await asyncio.gather(
            *(self._run_record(record, reporter, semaphore) for record in pending),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result

        summary = reporter.finalize()
        log.info("Execution completed")
        return summary

    async def _run_record(
        self,
        record: ExampleRecord,
        reporter: Reporter,
        semaphore: asyncio.Semaphore,
    ) -> None:
        async with semaphore:
            try:
                result = await self.executor.execute(record, cancel=reporter.cancel)
            except Exception as exc:
                log.error("Execution of %s failed: %s", record.id, exc, exc_info=exc)
                result = ExecutionResult(
                    example_id=record.id,
                    error=ExecutionError(kind="runtime", message=str(exc)),
                )

        verdict = reporter.add(record, result)
        if verdict is not None:
            log.info(
                "Record completed: id=%s classification=%s duration=%.1fms",
                record.id,
                verdict.classification,
                verdict.duration_ms,
            )
