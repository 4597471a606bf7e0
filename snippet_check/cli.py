"""CLI entry point for validating code examples in documents."""

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from snippet_check.config_loader import load_run_config
from snippet_check.executor import SubprocessExecutor
from snippet_check.models.config import RunConfig
from snippet_check.models.report import RunSummary
from snippet_check.orchestrator import SnippetOrchestrator
from snippet_check.parser import CorpusParser
from snippet_check.reporter import ReportInconsistencyError

STATUS_SYMBOLS = {
    "pass": "✓",
    "fail": "✗",
    "errored": "!",
    "skipped": "-",
}

DOCUMENT_SUFFIXES = (".md", ".markdown", ".rst", ".txt")


def log_results_summary(log: logging.Logger, summary: RunSummary) -> None:
    """Log a formatted summary of verdicts with their diagnostics."""
    log.info("=" * 80)
    log.info("Snippet Results Summary:")
    log.info("=" * 80)

    for verdict in summary.verdicts:
        symbol = STATUS_SYMBOLS.get(verdict.classification, "?")
        log.info(
            "%s %s: %s (%.1fms)",
            symbol,
            verdict.example_id,
            verdict.classification,
            verdict.duration_ms,
        )
        if verdict.error is not None:
            log.info("  %s: %s", verdict.error.kind, verdict.error.message)
        for line in verdict.diff:
            log.info(
                "  line %d: expected %r, got %r",
                line.index + 1,
                line.expected,
                line.actual,
            )

    for example_id in summary.not_accepted:
        log.info("? %s: not accepted (fail-fast)", example_id)


def format_output(summary: RunSummary) -> dict[str, Any]:
    """Format a run summary for JSON output."""
    results: list[dict[str, Any]] = [
        {
            "id": verdict.example_id,
            "classification": verdict.classification,
            "duration_ms": verdict.duration_ms,
            "error": (
                {"kind": verdict.error.kind, "message": verdict.error.message}
                if verdict.error is not None
                else None
            ),
            "diff": [
                {"line": d.index + 1, "expected": d.expected, "actual": d.actual}
                for d in verdict.diff
            ],
        }
        for verdict in summary.verdicts
    ]

    return {
        "total": len(results) + len(summary.not_accepted),
        "passed": summary.counts.get("pass", 0),
        "failed": summary.counts.get("fail", 0),
        "errors": summary.counts.get("errored", 0),
        "skipped": summary.counts.get("skipped", 0),
        "timeouts": summary.counts.get("timeouts", 0),
        "not_accepted": list(summary.not_accepted),
        "duration_ms": summary.total_duration_ms,
        "results": results,
    }


def read_documents(paths: Sequence[Path], config: RunConfig) -> Mapping[str, str]:
    """Read documents from files and directories, in a stable order."""
    suffixes = DOCUMENT_SUFFIXES + tuple(config.parser.source_suffixes)
    documents: dict[str, str] = {}
    for path in paths:
        if path.is_dir():
            files = sorted(
                p for p in path.rglob("*") if p.is_file() and p.suffix in suffixes
            )
        else:
            files = [path]
        for file in files:
            documents[file.as_posix()] = file.read_text(encoding="utf-8")
    return documents


def build_config(args: argparse.Namespace) -> RunConfig:
    """Load the config file, if any, and apply command line overrides."""
    config = load_run_config(args.config) if args.config else RunConfig()
    overrides: dict[str, Any] = {}
    if args.timeout_ms is not None:
        overrides["timeout_ms"] = args.timeout_ms
    if args.max_concurrency is not None:
        overrides["max_concurrency"] = args.max_concurrency
    if args.fail_fast:
        overrides["fail_fast"] = True
    if args.no_normalize_whitespace:
        overrides["normalize_whitespace"] = False
    if not overrides:
        return config
    return RunConfig.model_validate(config.model_dump() | overrides)


async def run(documents: Mapping[str, str], config: RunConfig) -> int:
    """Validate every example of the documents and return the exit code."""
    log = logging.getLogger("snippet_check")

    parser = CorpusParser(config=config.parser)
    records = list(parser.parse_corpus(documents))
    log.info(
        "Parsed %d record(s) from %d document(s)", len(records), len(documents)
    )

    orchestrator = SnippetOrchestrator(
        executor=SubprocessExecutor(timeout=config.timeout, python=config.python),
        config=config,
    )
    summary = await orchestrator.run(records)

    log_results_summary(log, summary)
    print(json.dumps(format_output(summary), indent=2))

    return 0 if summary.succeeded else 1


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Execute code examples in documents and check their output"
    )
    parser.add_argument(
        "paths",
        nargs="+",
        type=Path,
        help="Documents or directories to scan",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a YAML run configuration",
    )
    parser.add_argument(
        "--timeout-ms",
        type=int,
        default=None,
        help="Per-example wall-clock limit in milliseconds",
    )
    parser.add_argument(
        "--max-concurrency",
        type=int,
        default=None,
        help="Number of examples executed at the same time",
    )
    parser.add_argument(
        "--fail-fast",
        action="store_true",
        help="Stop after the first failing or errored example",
    )
    parser.add_argument(
        "--no-normalize-whitespace",
        action="store_true",
        help="Compare output lines including trailing whitespace",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    log = logging.getLogger("snippet_check")

    try:
        config = build_config(args)
        documents = read_documents(args.paths, config)
    except (OSError, ValueError) as e:
        log.error("%s", e)
        sys.exit(2)

    try:
        exit_code = asyncio.run(run(documents, config))
    except ReportInconsistencyError as e:
        log.error("Run aborted: %s", e)
        sys.exit(2)
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
