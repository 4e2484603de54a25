"""
Exceptions raised while turning SKIFF source into an AST.

Every failure is terminal for the parse that raised it: the first error aborts
the parse and propagates to the caller unchanged.

Classes:
    ParseError: Base class; a `SyntaxError` carrying the offending span.
    LexError: The reference tokenizer met malformed characters.
    StructuralError: The token stream matches no grammar alternative.
    DialectError: A recognized construct is disabled by the active dialect.
    ValidationError: A construct breaks an ordering or uniqueness rule.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from skiff.skiff_codemap import CodeMap, Span

if TYPE_CHECKING:
    from skiff.skiff_dialect import Feature


class ParseError(SyntaxError):
    """
    Base class of all SKIFF parse failures.

    Attributes:
        message (str): Human-readable description of the failure.
        span (Span): Extent of the offending token or construct.
        codemap (CodeMap | None): Attached by the parser driver so the error can
            describe its own location.
    """

    kind = "syntax"

    def __init__(self, message: str, span: Span) -> None:
        super().__init__(message)
        self.message = message
        self.span = span
        self.codemap: CodeMap | None = None

    def attach(self, codemap: CodeMap) -> ParseError:
        self.codemap = codemap
        return self

    def __str__(self) -> str:
        if self.codemap is not None and self.span.file in self.codemap.files:
            return f"{self.codemap.look_up_span(self.span)}: {self.message}"
        return self.message

    def render(self, codemap: CodeMap | None = None) -> str:
        """
        Formats the error for a terminal: location, message, source line and a caret underline.

        Args:
            codemap: Code map used to resolve the span. Defaults to the attached one.

        Returns:
            The formatted, possibly multi-line, diagnostic.
        """
        codemap = codemap or self.codemap
        if codemap is None or self.span.file not in codemap.files:
            return f"{self.span.file}:[{self.span.start}, {self.span.end}): error: {self.message}"
        loc = codemap.look_up_span(self.span)
        line = codemap.source_line(self.span)
        if loc.end.line == loc.begin.line:
            width = max(1, len(self.span))
        else:
            width = max(1, len(line) - loc.begin.column + 1)
        underline = " " * (loc.begin.column - 1) + "^" * width
        return f"{loc}: error: {self.message}\n    {line}\n    {underline}"

    def to_diagnostic(self, codemap: CodeMap | None = None) -> dict[str, Any]:
        """Exports the error as an LSP-style diagnostic (0-based positions)."""
        codemap = codemap or self.codemap
        diagnostic: dict[str, Any] = {
            "severity": "error",
            "code": self.kind,
            "message": self.message,
            "file": self.span.file,
            "offsets": [self.span.start, self.span.end],
        }
        if codemap is not None and self.span.file in codemap.files:
            loc = codemap.look_up_span(self.span)
            diagnostic["range"] = {
                "start": {"line": loc.begin.line - 1, "character": loc.begin.column - 1},
                "end": {"line": loc.end.line - 1, "character": loc.end.column - 1},
            }
        return diagnostic


class LexError(ParseError):
    kind = "lex"


class StructuralError(ParseError):
    kind = "syntax"


class DialectError(ParseError):
    """Raised when the dialect denies a construct the grammar recognized.

    Attributes:
        feature (Feature): The denied capability.
    """

    kind = "dialect"

    def __init__(self, feature: Feature, span: Span) -> None:
        super().__init__(f"{feature.description} are not allowed in this dialect", span)
        self.feature = feature


class ValidationError(ParseError):
    kind = "validation"
