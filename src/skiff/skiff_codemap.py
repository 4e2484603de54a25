"""
Source extents and the code map for SKIFF sources.

Classes:
    Span:
        Half-open ``[start, end)`` offset range inside one source file. Every AST
        node and every token carries one. Offsets are opaque to the parser; only
        the code map turns them into lines and columns.

    LineCol / SpanLoc:
        Human-readable positions (1-based line and column) produced by the code map.

    SourceFile:
        One registered source text together with its whole-file span.

    CodeMap:
        Registry of source files that resolves spans back to file/line/column.

Example:
    >>> codemap = CodeMap()
    >>> src = codemap.add_file("BUILD", "x = 1\\n")
    >>> src.span
    Span(start=0, end=6, file='BUILD')
    >>> codemap.look_up_span(src.span.subspan(4, 5)).begin
    LineCol(line=1, column=5)
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Span:
    """
    Half-open offset range within a single file.

    Attributes:
        start (int): Offset of the first character covered.
        end (int): Offset one past the last character covered.
        file (str): Opaque identifier of the backing file.

    Raises:
        ValueError: If ``start`` is negative or ``end`` precedes ``start``.
    """

    start: int
    end: int
    file: str = "<input>"

    def __post_init__(self) -> None:
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid span [{self.start}, {self.end})")

    def __len__(self) -> int:
        return self.end - self.start

    def subspan(self, start: int, end: int) -> Span:
        """Returns the span ``[start, end)`` of the same file, which must lie inside this one."""
        if start < self.start or end > self.end:
            raise ValueError(
                f"Span [{start}, {end}) is outside of [{self.start}, {self.end})"
            )
        return Span(start, end, self.file)

    def contains(self, other: Span) -> bool:
        return (
            self.file == other.file
            and self.start <= other.start
            and other.end <= self.end
        )


@dataclass(frozen=True)
class LineCol:
    line: int
    column: int


@dataclass(frozen=True)
class SpanLoc:
    file: str
    begin: LineCol
    end: LineCol

    def __str__(self) -> str:
        return f"{self.file}:{self.begin.line}:{self.begin.column}"


@dataclass
class SourceFile:
    """A source text registered with a `CodeMap`."""

    name: str
    source: str
    line_starts: list[int] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.line_starts:
            self.line_starts = [0]
            for index, char in enumerate(self.source):
                if char == "\n":
                    self.line_starts.append(index + 1)

    @property
    def span(self) -> Span:
        """The whole-file span, covering every offset of ``source``."""
        return Span(0, len(self.source), self.name)

    def line_col(self, offset: int) -> LineCol:
        line_index = bisect.bisect_right(self.line_starts, offset) - 1
        return LineCol(line_index + 1, offset - self.line_starts[line_index] + 1)

    def line_text(self, line: int) -> str:
        start = self.line_starts[line - 1]
        end = (
            self.line_starts[line] - 1
            if line < len(self.line_starts)
            else len(self.source)
        )
        return self.source[start:end]


class CodeMap:
    """
    Maps opaque spans back to files, lines and columns.

    The parser never consults the code map for its own decisions; it is used to
    give diagnostics a human-readable location.
    """

    def __init__(self) -> None:
        self.files: dict[str, SourceFile] = {}

    def add_file(self, name: str, source: str) -> SourceFile:
        """Registers ``source`` under ``name`` (replacing an earlier registration)."""
        source_file = SourceFile(name, source)
        self.files[name] = source_file
        return source_file

    def get_file(self, name: str) -> SourceFile:
        try:
            return self.files[name]
        except KeyError:
            raise KeyError(f"File not registered in code map: {name}") from None

    def look_up_span(self, span: Span) -> SpanLoc:
        source_file = self.get_file(span.file)
        return SpanLoc(
            span.file, source_file.line_col(span.start), source_file.line_col(span.end)
        )

    def source_line(self, span: Span) -> str:
        """Returns the text of the line on which ``span`` begins, without its newline."""
        loc = self.look_up_span(span)
        return self.get_file(span.file).line_text(loc.begin.line)
