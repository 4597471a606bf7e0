"""Abstract base for snippet executors."""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

from snippet_check.models.record import ExampleRecord
from snippet_check.models.result import ExecutionResult


class OutputSink(Protocol):
    """Write-only channel receiving observable output, one line at a time."""

    def write(self, line: str) -> None:
        """Record one emitted line (without its line terminator)."""


@dataclass(kw_only=True)
class LineSink:
    """Output sink that keeps every line in emission order."""

    lines: list[str] = field(default_factory=list)

    def write(self, line: str) -> None:
        """Append a line."""
        self.lines.append(line)

    def snapshot(self) -> Sequence[str]:
        """Return the lines captured so far."""
        return tuple(self.lines)


@dataclass(frozen=True, kw_only=True)
class SnippetExecutor(ABC):
    """Runs one example record in a fresh, isolated context.

    Implementations never raise for faults of the snippet itself: timeouts,
    cancellation and runtime failures are returned as the ``error`` of the
    execution result, together with any output captured before them.
    """

    @abstractmethod
    async def execute(
        self,
        record: ExampleRecord,
        *,
        cancel: asyncio.Event | None = None,
    ) -> ExecutionResult:
        """Execute a record and return its result.

        Args:
            record: Record whose source text is executed
            cancel: Run-level cancellation signal; once set, the execution
                stops waiting and finalizes as a timeout

        Returns:
            Result with captured output, error and duration

        """
