"""Models for examples extracted from a document corpus."""

from collections.abc import Sequence
from typing import Literal

from pydantic import Field

from snippet_check.models.base import Model
from snippet_check.models.result import ExecutionError

LanguageTag = Literal["python"]


def make_example_id(document: str, ordinal: int) -> str:
    """Build the stable identifier of the ``ordinal``-th fence in ``document``."""
    return f"{document}#{ordinal}"


class ExampleRecord(Model):
    """One executable example with its declared expected output."""

    id: str = Field(..., description="Stable identifier: document#ordinal")
    document: str = Field(..., description="Name of the source document")
    ordinal: int = Field(..., ge=1, description="1-based fence position in document")
    line: int = Field(default=1, ge=1, description="Line of the opening fence")
    language: LanguageTag = Field(default="python", description="Evaluation dialect")
    source_text: str = Field(..., description="Literal code to execute")
    expected_outputs: Sequence[str] = Field(
        default=(),
        description="Expected output lines in source order (empty: nothing to verify)",
    )
    parse_error: ExecutionError | None = Field(
        default=None,
        description="Set on synthetic records produced for malformed input",
    )

    @property
    def is_verifiable(self) -> bool:
        """Whether the record declares any expected output."""
        return bool(self.expected_outputs)
