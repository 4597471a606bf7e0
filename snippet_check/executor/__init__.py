"""Isolated execution of example records."""

from snippet_check.executor.base import LineSink, OutputSink, SnippetExecutor
from snippet_check.executor.isolated import SubprocessExecutor

__all__ = ["LineSink", "OutputSink", "SnippetExecutor", "SubprocessExecutor"]
