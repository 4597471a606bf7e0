"""Bootstrap run inside the child interpreter for a single snippet.

Usage: python -I -u _harness.py SNIPPET_PATH FAULT_PATH

Runs the snippet as ``__main__`` (top-level ``await`` allowed), then waits
until every task and timer scheduled on the event loop has settled. An
uncaught exception, including one raised by a background task or a timer
callback, is written to FAULT_PATH as JSON and the process exits with
status 1. This module must only depend on the standard library.
"""

import ast
import asyncio
import builtins
import inspect
import json
import sys
import threading
import traceback


class SettlingEventLoop(asyncio.SelectorEventLoop):
    """Event loop that keeps track of its pending timers."""

    def __init__(self):
        super().__init__()
        self._timers = set()

    def call_at(self, when, callback, *args, context=None):
        handle = None

        def fire():
            self._timers.discard(handle)
            callback(*args)

        handle = super().call_at(when, fire, context=context)
        self._timers.add(handle)
        return handle

    def pending_timers(self):
        return [handle for handle in self._timers if not handle.cancelled()]


async def settle(loop, failures):
    current = asyncio.current_task()
    while True:
        tasks = [task for task in asyncio.all_tasks(loop) if task is not current]
        timers = loop.pending_timers()
        if not tasks and not timers:
            return
        if tasks:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                if not task.cancelled() and task.exception() is not None:
                    failures.append(task.exception())
        else:
            delay = min(handle.when() for handle in timers) - loop.time()
            await asyncio.sleep(max(delay, 0))
        if failures:
            return


def join_threads():
    while True:
        pending = [
            thread
            for thread in threading.enumerate()
            if thread is not threading.current_thread() and not thread.daemon
        ]
        if not pending:
            return
        for thread in pending:
            thread.join()


async def run_async(outcome, loop, failures):
    await outcome
    await settle(loop, failures)


def write_fault(path, exc):
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(
            {
                "type": type(exc).__name__,
                "message": str(exc),
                "traceback": "".join(traceback.format_exception(exc)),
            },
            fh,
        )


def main(argv):
    snippet_path, fault_path = argv[1], argv[2]
    with open(snippet_path, encoding="utf-8") as fh:
        source = fh.read()

    loop = SettlingEventLoop()
    asyncio.set_event_loop(loop)
    failures = []
    loop.set_exception_handler(
        lambda _loop, context: failures.append(
            context.get("exception") or RuntimeError(context["message"])
        )
    )
    threading.excepthook = lambda args: failures.append(args.exc_value)

    try:
        code = compile(
            source,
            snippet_path,
            "exec",
            flags=ast.PyCF_ALLOW_TOP_LEVEL_AWAIT,
            dont_inherit=True,
        )
        namespace = {"__name__": "__main__", "__builtins__": builtins}
        outcome = eval(code, namespace)
        if inspect.iscoroutine(outcome):
            loop.run_until_complete(run_async(outcome, loop, failures))
        else:
            loop.run_until_complete(settle(loop, failures))
        join_threads()
        if failures:
            raise failures[0]
    except Exception as exc:
        sys.stdout.flush()
        traceback.print_exception(exc)
        write_fault(fault_path, exc)
        return 1
    finally:
        sys.stdout.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
