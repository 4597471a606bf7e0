"""Models for snippet execution results."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Literal

ErrorKind = Literal["parse", "timeout", "runtime"]


@dataclass(frozen=True, kw_only=True)
class ExecutionError:
    """Failure descriptor attached to a record or an execution result."""

    kind: ErrorKind
    message: str


@dataclass(frozen=True, kw_only=True)
class ExecutionResult:
    """Outcome of executing one example.

    Output captured before a fault or a timeout is kept in ``actual_outputs``
    alongside the error.
    """

    example_id: str
    actual_outputs: Sequence[str] = field(default_factory=tuple)
    error: ExecutionError | None = None
    duration_ms: float = 0.0
