"""Extract executable examples from document text."""

import ast
import io
import logging
import re
import textwrap
import tokenize
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field

from snippet_check.models.config import MarkerConfig, ParserConfig
from snippet_check.models.record import ExampleRecord, make_example_id
from snippet_check.models.result import ExecutionError

log = logging.getLogger(__name__)

OPENING_FENCE = re.compile(r"^(?P<indent> {0,3})(?P<fence>`{3,}|~{3,})(?P<info>.*)$")

NON_OUTPUT_STATEMENTS = (
    ast.Import,
    ast.ImportFrom,
    ast.FunctionDef,
    ast.AsyncFunctionDef,
    ast.ClassDef,
    ast.Pass,
)


@dataclass(frozen=True, kw_only=True)
class FencedBlock:
    """A fenced region found in a document."""

    ordinal: int
    line: int
    language: str
    body: str
    terminated: bool = True


@dataclass(frozen=True, kw_only=True)
class CorpusParser:
    """Turns raw document text into example records.

    Parsing is pure: the same text always yields the same records, and no
    file or network access happens here.
    """

    config: ParserConfig = field(default_factory=ParserConfig)

    def parse(self, text: str, document: str) -> Iterator[ExampleRecord]:
        """Yield the records of a single document, in order of appearance."""
        whole_document = document.endswith(tuple(self.config.source_suffixes))
        if whole_document:
            blocks: Iterator[FencedBlock] = iter(
                [FencedBlock(ordinal=1, line=1, language="python", body=text)]
            )
        else:
            blocks = iter_fenced_blocks(text)

        for block in blocks:
            example_id = make_example_id(document, block.ordinal)
            if not block.terminated:
                log.warning(
                    "Unterminated code fence in %s at line %d", document, block.line
                )
                yield ExampleRecord(
                    id=example_id,
                    document=document,
                    ordinal=block.ordinal,
                    line=block.line,
                    source_text=block.body,
                    parse_error=ExecutionError(
                        kind="parse",
                        message=f"Unterminated code fence opened at line {block.line}",
                    ),
                )
                continue

            if not whole_document and not self._accepts_language(block.language):
                continue

            source = textwrap.dedent(block.body)
            expected = extract_expected_outputs(source, self.config.markers)
            if expected is None:
                log.debug("Skipping narrative-only block %s", example_id)
                continue

            yield ExampleRecord(
                id=example_id,
                document=document,
                ordinal=block.ordinal,
                line=block.line,
                source_text=source,
                expected_outputs=expected,
            )

    def parse_corpus(self, documents: Mapping[str, str]) -> Iterator[ExampleRecord]:
        """Yield the records of every document, in mapping order."""
        for document, text in documents.items():
            yield from self.parse(text, document)

    def _accepts_language(self, language: str) -> bool:
        if not language:
            return self.config.include_untagged
        return language in {alias.lower() for alias in self.config.languages}


def iter_fenced_blocks(text: str) -> Iterator[FencedBlock]:
    """Yield every fenced region of a markdown-like document.

    Follows the CommonMark rules for backtick and tilde fences. A region that
    is still open at the end of the text is yielded with
    ``terminated=False``.
    """
    lines = text.splitlines()
    ordinal = 0
    index = 0

    while index < len(lines):
        match = OPENING_FENCE.match(lines[index])
        if match is None or (match["fence"][0] == "`" and "`" in match["info"]):
            index += 1
            continue

        ordinal += 1
        opening_line = index + 1
        fence = match["fence"]
        indent = len(match["indent"])
        info = match["info"].strip()
        language = info.split()[0].lower() if info else ""
        closing = re.compile(rf"^ {{0,3}}{re.escape(fence[0])}{{{len(fence)},}}\s*$")

        body: list[str] = []
        index += 1
        terminated = False
        while index < len(lines):
            if closing.match(lines[index]):
                terminated = True
                index += 1
                break
            body.append(_strip_indent(lines[index], indent))
            index += 1

        yield FencedBlock(
            ordinal=ordinal,
            line=opening_line,
            language=language,
            body="\n".join(body) + "\n" if body else "",
            terminated=terminated,
        )


def _strip_indent(line: str, indent: int) -> str:
    stripped = len(line) - len(line.lstrip(" "))
    return line[min(stripped, indent) :]


def extract_expected_outputs(
    source: str, markers: MarkerConfig
) -> Sequence[str] | None:
    """Return the expected output lines of a snippet.

    Returns ``None`` when the snippet has no statement that can produce
    observable output, meaning it is narrative only.
    """
    try:
        tree = compile(
            source,
            "<snippet>",
            "exec",
            flags=ast.PyCF_ONLY_AST | ast.PyCF_ALLOW_TOP_LEVEL_AWAIT,
            dont_inherit=True,
        )
    except (SyntaxError, ValueError):
        return _scan_lines(source, markers)

    if not any(_can_produce_output(statement) for statement in tree.body):
        return None

    output_functions = set(markers.output_functions)
    calls = sorted(
        (
            node
            for node in ast.walk(tree)
            if isinstance(node, ast.Call)
            and _dotted_name(node.func) in output_functions
        ),
        key=lambda node: (node.lineno, node.col_offset),
    )
    comments = _trailing_comments(source)

    # A comment belongs to the last output call ending on its line.
    bound: dict[int, ast.Call] = {}
    for call in calls:
        end_line = call.end_lineno or call.lineno
        comment = comments.get(end_line)
        if comment is not None and comment[0] >= (call.end_col_offset or 0):
            bound[end_line] = call

    expected: list[str] = []
    for call in calls:
        end_line = call.end_lineno or call.lineno
        if bound.get(end_line) is not call:
            continue
        value = _marker_value(comments[end_line][1], markers)
        if value is not None:
            expected.append(value)
    return tuple(expected)


def _can_produce_output(statement: ast.stmt) -> bool:
    if isinstance(statement, NON_OUTPUT_STATEMENTS):
        return False
    if isinstance(statement, ast.Expr) and isinstance(statement.value, ast.Constant):
        return False
    return any(
        isinstance(node, (ast.Call, ast.Await)) for node in ast.walk(statement)
    )


def _dotted_name(node: ast.expr) -> str | None:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        parent = _dotted_name(node.value)
        return f"{parent}.{node.attr}" if parent else None
    return None


def _trailing_comments(source: str) -> dict[int, tuple[int, str]]:
    """Map line numbers to ``(offset, text)`` of the comment on that line.

    The offset is in UTF-8 bytes, the unit ``ast`` uses for column offsets.
    """
    comments: dict[int, tuple[int, str]] = {}
    readline = io.StringIO(source).readline
    try:
        for token in tokenize.generate_tokens(readline):
            if token.type == tokenize.COMMENT:
                offset = len(token.line[: token.start[1]].encode("utf-8"))
                comments[token.start[0]] = (offset, token.string)
    except (tokenize.TokenError, SyntaxError):
        pass
    return comments


def _marker_value(comment: str, markers: MarkerConfig) -> str | None:
    text = comment.lstrip("#").strip()
    for prefix in markers.prefixes:
        if text.startswith(prefix):
            return text[len(prefix) :].strip()
    if markers.require_prefix:
        return None
    return text


def _scan_lines(source: str, markers: MarkerConfig) -> Sequence[str] | None:
    """Line-based extraction for snippets that do not parse as Python."""
    names = "|".join(
        re.escape(name) for name in sorted(markers.output_functions, key=len)[::-1]
    )
    if not names:
        return None
    call = re.compile(rf"^\s*(?:{names})\s*\(")
    trailing = re.compile(rf"^\s*(?:{names})\s*\(.*\)\s*;?\s*(?P<comment>#.*)$")

    found = False
    expected: list[str] = []
    for line in source.splitlines():
        if not call.match(line):
            continue
        found = True
        if match := trailing.match(line):
            value = _marker_value(match["comment"], markers)
            if value is not None:
                expected.append(value)
    return tuple(expected) if found else None
