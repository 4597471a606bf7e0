"""Executor running every snippet in a fresh child interpreter."""

import asyncio
import contextlib
import logging
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ValidationError

from snippet_check.executor.base import LineSink, OutputSink, SnippetExecutor
from snippet_check.models.record import ExampleRecord
from snippet_check.models.result import ExecutionError, ExecutionResult

log = logging.getLogger(__name__)

HARNESS_PATH = Path(__file__).with_name("_harness.py")

# Seconds to wait for pipes to drain after the child was killed.
KILL_GRACE = 1.0

STREAM_LIMIT = 2**20


class Fault(BaseModel):
    """Uncaught exception reported by the child harness."""

    type: str
    message: str
    traceback: str = ""

    def describe(self) -> str:
        """Render as ``Type: message``."""
        return f"{self.type}: {self.message}" if self.message else self.type


@dataclass(frozen=True, kw_only=True)
class SubprocessExecutor(SnippetExecutor):
    """Runs each record in its own ``python -I`` process and temp directory.

    Nothing is shared between two executions: every record gets a new
    interpreter, a new event loop and an empty working directory.
    """

    timeout: float = 5.0
    python: str = sys.executable

    async def execute(
        self,
        record: ExampleRecord,
        *,
        cancel: asyncio.Event | None = None,
    ) -> ExecutionResult:
        """Execute a record and return its result."""
        if record.parse_error is not None:
            return ExecutionResult(example_id=record.id, error=record.parse_error)

        if cancel is not None and cancel.is_set():
            log.debug("Run cancelled before %s started", record.id)
            return ExecutionResult(
                example_id=record.id,
                error=ExecutionError(
                    kind="timeout", message="Run cancelled before execution"
                ),
            )

        loop = asyncio.get_running_loop()
        started = loop.time()
        sink = LineSink()

        with tempfile.TemporaryDirectory(prefix="snippet-check-") as tmpdir:
            workdir = Path(tmpdir)
            snippet_path = workdir / "snippet.py"
            snippet_path.write_text(record.source_text, encoding="utf-8")
            fault_path = workdir / "fault.json"

            log.debug("Executing %s", record.id)
            process = await asyncio.create_subprocess_exec(
                self.python,
                "-I",
                "-u",
                "-X",
                "utf8",
                str(HARNESS_PATH),
                str(snippet_path),
                str(fault_path),
                cwd=workdir,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=STREAM_LIMIT,
            )
            error = await self._supervise(process, sink, fault_path, cancel)

        duration_ms = (loop.time() - started) * 1000
        log.debug(
            "Executed %s in %.1fms (error=%s)",
            record.id,
            duration_ms,
            error.kind if error else None,
        )
        return ExecutionResult(
            example_id=record.id,
            actual_outputs=sink.snapshot(),
            error=error,
            duration_ms=duration_ms,
        )

    async def _supervise(
        self,
        process: asyncio.subprocess.Process,
        sink: OutputSink,
        fault_path: Path,
        cancel: asyncio.Event | None,
    ) -> ExecutionError | None:
        """Wait for the child to settle, time out, or be cancelled."""
        communicate = asyncio.create_task(_communicate(process, sink))
        waiters: set[asyncio.Future[object]] = {communicate}
        cancelled: asyncio.Task[bool] | None = None
        if cancel is not None:
            cancelled = asyncio.create_task(cancel.wait())
            waiters.add(cancelled)

        try:
            done, _ = await asyncio.wait(
                waiters, timeout=self.timeout, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            communicate.cancel()
            raise
        finally:
            if cancelled is not None:
                cancelled.cancel()

        if communicate in done:
            stderr = communicate.result()
            return _exit_error(process.returncode, stderr, fault_path)

        with contextlib.suppress(ProcessLookupError):
            process.kill()
        _, pending = await asyncio.wait({communicate}, timeout=KILL_GRACE)
        for task in pending:
            task.cancel()
        with contextlib.suppress(ProcessLookupError):
            await process.wait()

        if cancelled is not None and cancelled in done:
            return ExecutionError(kind="timeout", message="Execution cancelled")
        return ExecutionError(
            kind="timeout",
            message=f"Execution did not settle within {self.timeout * 1000:.0f}ms",
        )


async def _communicate(process: asyncio.subprocess.Process, sink: OutputSink) -> str:
    """Stream stdout lines into the sink and return the collected stderr."""
    if process.stdout is None or process.stderr is None:
        raise RuntimeError("Child process was started without output pipes")
    stderr = asyncio.create_task(process.stderr.read())
    try:
        while line := await process.stdout.readline():
            sink.write(line.decode("utf-8", errors="replace").rstrip("\r\n"))
        await process.wait()
        return (await stderr).decode("utf-8", errors="replace")
    finally:
        stderr.cancel()


def _exit_error(
    returncode: int | None, stderr: str, fault_path: Path
) -> ExecutionError | None:
    if returncode == 0:
        return None

    if fault_path.exists():
        try:
            fault = Fault.model_validate_json(fault_path.read_text(encoding="utf-8"))
        except ValidationError as e:
            log.warning("Unreadable fault report: %s", e)
        else:
            return ExecutionError(kind="runtime", message=fault.describe())

    last_line = next(
        (line.strip() for line in reversed(stderr.splitlines()) if line.strip()), ""
    )
    return ExecutionError(
        kind="runtime",
        message=last_line or f"Process exited with status {returncode}",
    )
