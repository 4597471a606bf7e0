"""Configuration models for a snippet run."""

import sys
from collections.abc import Sequence

from pydantic import Field

from snippet_check.models.base import Model


class MarkerConfig(Model):
    """Convention used to recognize expected-output comments."""

    output_functions: Sequence[str] = Field(
        default=("print",),
        description="Callables whose calls produce observable output",
    )
    prefixes: Sequence[str] = Field(
        default=("=>", "->", "Output:"),
        description="Optional markers stripped from the start of the comment",
    )
    require_prefix: bool = Field(
        default=False,
        description="Ignore trailing comments that carry none of the prefixes",
    )


class ParserConfig(Model):
    """Configuration for extracting examples from documents."""

    languages: Sequence[str] = Field(
        default=("python", "py", "python3"),
        description="Fence info strings accepted as the evaluation dialect",
    )
    include_untagged: bool = Field(
        default=False, description="Also consider fences without an info string"
    )
    source_suffixes: Sequence[str] = Field(
        default=(".py",),
        description="Documents with these suffixes are one whole snippet",
    )
    markers: MarkerConfig = Field(default_factory=MarkerConfig)


class RunConfig(Model):
    """Configuration for one run over a corpus."""

    timeout_ms: int = Field(
        default=5000, gt=0, description="Per-execution wall-clock limit"
    )
    fail_fast: bool = Field(
        default=False, description="Stop accepting results after the first problem"
    )
    normalize_whitespace: bool = Field(
        default=True, description="Ignore trailing whitespace when comparing lines"
    )
    max_concurrency: int = Field(
        default=4, gt=0, description="Executions allowed to run at the same time"
    )
    python: str = Field(
        default=sys.executable, description="Interpreter used for child contexts"
    )
    parser: ParserConfig = Field(default_factory=ParserConfig)

    @property
    def timeout(self) -> float:
        """Per-execution timeout in seconds."""
        return self.timeout_ms / 1000
