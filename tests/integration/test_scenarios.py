"""End-to-end runs from document text to run summary."""

import asyncio

from snippet_check.executor import SubprocessExecutor
from snippet_check.models.config import RunConfig
from snippet_check.models.record import ExampleRecord
from snippet_check.models.report import RunSummary
from snippet_check.orchestrator import SnippetOrchestrator
from snippet_check.parser import CorpusParser


async def run_corpus(
    documents: dict[str, str], config: RunConfig | None = None
) -> tuple[list[ExampleRecord], RunSummary]:
    """Parse and execute documents, returning the records and the summary."""
    config = config or RunConfig(timeout_ms=20_000)
    records = list(CorpusParser(config=config.parser).parse_corpus(documents))
    orchestrator = SnippetOrchestrator(
        executor=SubprocessExecutor(timeout=config.timeout, python=config.python),
        config=config,
    )
    return records, await orchestrator.run(records)


async def test_matching_output_passes() -> None:
    """A correct expectation passes."""
    records, summary = await run_corpus(
        {"guide.md": "```python\nx = 1 + 1\nprint(x)  # 2\n```\n"}
    )

    assert list(records[0].expected_outputs) == ["2"]
    assert summary.verdicts[0].classification == "pass"
    assert summary.succeeded


async def test_mismatching_output_fails_with_diff() -> None:
    """A stale expectation fails and shows expected against actual."""
    _, summary = await run_corpus(
        {"guide.md": "```python\nx = 1 + 2\nprint(x)  # 2\n```\n"}
    )

    verdict = summary.verdicts[0]
    assert verdict.classification == "fail"
    assert verdict.diff[0].expected == "2"
    assert verdict.diff[0].actual == "3"


async def test_slow_deferred_callback_times_out() -> None:
    """Deferred output arriving after the timeout is an errored timeout."""
    document = (
        "```python\n"
        "import asyncio\n"
        "\n"
        "def report():\n"
        "    print('late')  # late\n"
        "\n"
        "asyncio.get_event_loop().call_later(0.05, report)\n"
        "```\n"
    )
    config = RunConfig(timeout_ms=10)

    records, summary = await run_corpus({"guide.md": document}, config)

    assert list(records[0].expected_outputs) == ["late"]
    verdict = summary.verdicts[0]
    assert verdict.classification == "errored"
    assert verdict.error is not None
    assert verdict.error.kind == "timeout"
    assert summary.counts["timeouts"] == 1
    assert verdict.diff[0].actual is None


async def test_immediate_fault_is_errored() -> None:
    """A snippet raising before any output is errored with a runtime error."""
    document = "```python\nraise RuntimeError('nope')\nprint('never')  # never\n```\n"

    _, summary = await run_corpus({"guide.md": document})

    verdict = summary.verdicts[0]
    assert verdict.classification == "errored"
    assert verdict.error is not None
    assert verdict.error.kind == "runtime"
    assert verdict.error.message == "RuntimeError: nope"


async def test_narrative_block_emits_nothing() -> None:
    """Blocks without statements produce no records and no verdicts."""
    document = "```python\nclass Point:\n    x: int\n    y: int\n```\n"

    records, summary = await run_corpus({"guide.md": document})

    assert records == []
    assert summary.verdicts == ()


async def test_malformed_block_among_well_formed_ones() -> None:
    """One unterminated fence and nine good ones are all reported."""
    documents = {
        f"doc-{n}.md": f"```python\nprint({n} * 2)  # {n * 2}\n```\n"
        for n in range(9)
    }
    documents["broken.md"] = "```python\nprint('unterminated')  # unterminated\n"

    records, summary = await run_corpus(documents)

    assert len(records) == 10
    assert len(summary.verdicts) == 10
    assert summary.counts["pass"] == 9
    assert summary.counts["errored"] == 1
    broken = next(v for v in summary.verdicts if v.example_id == "broken.md#1")
    assert broken.error is not None
    assert broken.error.kind == "parse"


async def test_unverifiable_block_is_skipped() -> None:
    """Blocks without expectations are skipped even when they print."""
    _, summary = await run_corpus({"guide.md": "```python\nprint('hi')\n```\n"})

    assert summary.verdicts[0].classification == "skipped"
    assert summary.succeeded


async def test_executions_are_isolated() -> None:
    """State created by one example never reaches another."""
    documents = {
        "a.md": "```python\nimport builtins\nbuiltins.seen = True\nprint('set')  # set\n```\n",
        "b.md": (
            "```python\nimport builtins\n"
            "print(hasattr(builtins, 'seen'))  # False\n```\n"
        ),
    }

    _, summary = await run_corpus(
        documents, RunConfig(timeout_ms=20_000, max_concurrency=1)
    )

    assert {v.classification for v in summary.verdicts} == {"pass"}


async def test_fail_fast_cancels_remaining_work() -> None:
    """Fail-fast cancels in-flight executions and reports every record."""
    documents = {
        "bad.md": "```python\nprint(1)  # 2\n```\n",
        "slow.md": "```python\nimport time\ntime.sleep(60)\nprint('done')  # done\n```\n",
    }
    config = RunConfig(timeout_ms=60_000, fail_fast=True, max_concurrency=2)

    _, summary = await asyncio.wait_for(run_corpus(documents, config), timeout=45)

    assert [v.example_id for v in summary.verdicts] == ["bad.md#1"]
    assert summary.not_accepted == ("slow.md#1",)
    assert not summary.succeeded
