"""
Reference tokenizer for the SKIFF language.

The parser only depends on the token contract (type, value, start/end offsets); this
module is one way of producing it from source text.

Classes:
    CharacterStream: Stream abstraction for reading characters with offset tracking.
    Token: A single token with type, value and source offsets.
    Lexer: Converts a CharacterStream into a sequence of tokens.

Features:
    - Skips spaces, tabs, comments (`#`) and backslash line continuations
    - Longest-match recognition of operators and punctuation
    - Recognizes identifiers and keywords, decimal/hex/octal integers, and
      single, double, triple-quoted and raw strings with escape sequences
    - Synthesizes NEWLINE, INDENT and DEDENT markers from line structure;
      line breaks inside brackets are ignored

Raises:
    LexError: On unknown characters, malformed numbers, unterminated strings,
        bad escapes or inconsistent dedents.

Example:
    >>> [t.type for t in tokenize("x = 1")]
    ['IDENT', 'ASSIGN', 'INT', 'NEWLINE', 'EOF']
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Any

from skiff.skiff_codemap import Span
from skiff.skiff_constants import (
    CLOSING_BRACKETS,
    OPENING_BRACKETS,
    keyword_tokens,
    operator_tokens,
)
from skiff.skiff_errors import LexError

logger = logging.getLogger(__name__)

TAB_SIZE = 8

_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "\\": "\\",
    "'": "'",
    '"': '"',
    "0": "\0",
    "\n": "",
}


class CharacterStream:
    """
    A utility for reading characters from a string source with offset tracking.

    Attributes:
        source (str): The input source string.
        position (int): Current offset in the source.
    """

    def __init__(self, source: str, position: int = 0):
        self.source = source
        self.position = position

    def next(self) -> str:
        """
        Consumes and returns the next character in the stream.

        Raises:
            EOFError: If reading past the end of the source.
        """
        if self.position >= len(self.source):
            raise EOFError(
                f"Attempted to read past end of source at position=<{self.position}>"
            )
        char = self.source[self.position]
        self.position += 1
        return char

    def peek(self, offset: int = 0) -> str:
        """Returns the character ``offset`` places ahead, or an empty string past the end."""
        index = self.position + offset
        if index < 0 or index >= len(self.source):
            return ""
        return self.source[index]

    def end_of_file(self) -> bool:
        return self.position >= len(self.source)


class Token:
    """Represents a single lexical token.

    Attributes:
        type (str): The canonical token type (e.g. 'IDENT', 'INT', 'NEWLINE', 'EOF').
        value (Any): Identifier text, decoded string, integer value, or the source text
            of a keyword/operator.
        start (int): Offset of the first character of the token.
        end (int): Offset one past the last character of the token.
    """

    def __init__(self, type_: str, value: Any, start: int = 0, end: int = 0):
        self.type = type_
        self.value = value
        self.start = start
        self.end = end

    def __repr__(self) -> str:
        return f"Token({self.type}, {self.value!r})"

    def __eq__(self, other: Any) -> bool:
        return (
            isinstance(other, Token)
            and self.type == other.type
            and self.value == other.value
            and self.start == other.start
            and self.end == other.end
        )

    def __hash__(self) -> int:
        return hash((self.type, self.value, self.start, self.end))


class Lexer:
    """Lexical analyzer for the SKIFF language.

    Attributes:
        stream (CharacterStream): The source stream to tokenize.
        filename (str): File identifier used in error spans.
        indent_stack (list[int]): Widths of the currently open indentation levels.
        bracket_depth (int): Number of unclosed brackets; line breaks are ignored while positive.
    """

    def __init__(self, stream: CharacterStream, filename: str = "<input>") -> None:
        self.stream = stream
        self.filename = filename
        self.indent_stack: list[int] = [0]
        self.bracket_depth = 0
        self.pending: deque[Token] = deque()
        self.at_line_start = True
        self.last_type: str | None = None
        self.finished = False

    def error(self, message: str, start: int, end: int | None = None) -> LexError:
        end = start + 1 if end is None else end
        end = min(end, len(self.stream.source))
        start = min(start, end)
        return LexError(message, Span(start, end, self.filename))

    def peek(self) -> str:
        return self.stream.peek()

    def advance(self) -> str:
        return self.stream.next()

    def skip_whitespace(self) -> None:
        """Skips spaces, tabs, comments and line continuations, but not line breaks."""
        while not self.stream.end_of_file():
            ch = self.peek()
            if ch in " \t\r\f":
                self.advance()
            elif ch == "#":
                self.skip_comment()
            elif ch == "\\" and self.stream.peek(1) == "\n":
                self.advance()
                self.advance()
            elif ch == "\\" and self.stream.peek(1) == "\r" and self.stream.peek(2) == "\n":
                self.advance()
                self.advance()
                self.advance()
            else:
                break

    def skip_comment(self) -> None:
        while not self.stream.end_of_file() and self.peek() != "\n":
            self.advance()

    def handle_indentation(self) -> None:
        """Measures the indentation of the next non-blank line and queues INDENT/DEDENT markers."""
        while True:
            line_start = self.stream.position
            width = 0
            while self.peek() in (" ", "\t", "\f"):
                if self.advance() == "\t":
                    width = (width // TAB_SIZE + 1) * TAB_SIZE
                else:
                    width += 1
            self.skip_whitespace()
            if self.stream.end_of_file():
                return
            if self.peek() == "\n":
                self.advance()  # blank line
                continue
            break

        self.at_line_start = False
        position = self.stream.position
        if width > self.indent_stack[-1]:
            self.indent_stack.append(width)
            self.pending.append(Token("INDENT", "", line_start, position))
            return
        while width < self.indent_stack[-1]:
            self.indent_stack.pop()
            self.pending.append(Token("DEDENT", "", position, position))
        if width != self.indent_stack[-1]:
            raise self.error(
                "Unindent does not match any outer indentation level", line_start, position
            )

    def match_operator(self) -> Token | None:
        """Attempts to match the longest operator or punctuation at the current position."""
        start = self.stream.position
        max_token = None
        candidate = ""

        for i in range(3):
            ch = self.stream.peek(i)
            if ch == "":
                break
            candidate += ch
            if candidate in operator_tokens:
                max_token = candidate

        if max_token is None:
            return None
        for _ in max_token:
            self.advance()
        return Token(operator_tokens[max_token], max_token, start, self.stream.position)

    def finish(self) -> None:
        """Queues the closing NEWLINE and DEDENT markers once the source is exhausted."""
        end = len(self.stream.source)
        if self.last_type not in (None, "NEWLINE", "DEDENT"):
            self.pending.append(Token("NEWLINE", "", end, end))
        while len(self.indent_stack) > 1:
            self.indent_stack.pop()
            self.pending.append(Token("DEDENT", "", end, end))
        self.finished = True

    def emit(self, token: Token) -> Token:
        self.last_type = token.type
        return token

    def next_token(self) -> Token:
        """Consumes and returns the next Token; returns EOF tokens once exhausted.

        Raises:
            LexError: If a malformed token is encountered.
        """
        while True:
            if self.pending:
                return self.emit(self.pending.popleft())
            if self.finished:
                end = len(self.stream.source)
                return self.emit(Token("EOF", "", end, end))

            if self.at_line_start and self.bracket_depth == 0:
                self.handle_indentation()
                if self.pending:
                    continue

            self.skip_whitespace()
            if self.stream.end_of_file():
                self.finish()
                continue

            start = self.stream.position
            ch = self.peek()

            if ch == "\n":
                self.advance()
                if self.bracket_depth > 0:
                    continue
                self.at_line_start = True
                return self.emit(Token("NEWLINE", "\n", start, start + 1))

            return self.emit(self.read_token(ch, start))

    def read_token(self, ch: str, start: int) -> Token:
        # 1. String, possibly raw
        if ch in ('"', "'"):
            return self.read_string(start, raw=False)
        if ch in "rR" and self.stream.peek(1) in ('"', "'"):
            self.advance()
            return self.read_string(start, raw=True)

        # 2. Identifier or keyword
        if ch.isalpha() or ch == "_":
            ident = ""
            while not self.stream.end_of_file() and (
                self.peek().isalnum() or self.peek() == "_"
            ):
                ident += self.advance()
            end = self.stream.position
            if ident in keyword_tokens:
                return Token(keyword_tokens[ident], ident, start, end)
            return Token("IDENT", ident, start, end)

        # 3. Integer
        if ch.isdigit():
            return self.read_int(start)

        # 4. Operator or punctuation
        token = self.match_operator()
        if token:
            if token.type in OPENING_BRACKETS:
                self.bracket_depth += 1
            elif token.type in CLOSING_BRACKETS:
                self.bracket_depth = max(0, self.bracket_depth - 1)
            return token

        # 5. Unknown character
        raise self.error(f"Unexpected character {ch!r}", start)

    def read_int(self, start: int) -> Token:
        text = ""
        while not self.stream.end_of_file() and (
            self.peek().isalnum() or self.peek() == "_"
        ):
            text += self.advance()
        end = self.stream.position

        try:
            if text[:2].lower() in ("0x", "0o", "0b"):
                value = int(text, 0)
            elif len(text) > 1 and text.startswith("0"):
                raise ValueError("leading zeros in decimal literal")
            else:
                value = int(text, 10)
        except ValueError:
            raise self.error(f"Invalid integer literal {text!r}", start, end) from None
        return Token("INT", value, start, end)

    def read_string(self, start: int, raw: bool) -> Token:
        quote = self.advance()
        triple = self.peek() == quote and self.stream.peek(1) == quote
        if triple:
            self.advance()
            self.advance()

        value = ""
        while True:
            if self.stream.end_of_file():
                raise self.error("Unterminated string", start, self.stream.position)
            ch = self.peek()
            if ch == quote:
                if not triple:
                    self.advance()
                    break
                if self.stream.peek(1) == quote and self.stream.peek(2) == quote:
                    self.advance()
                    self.advance()
                    self.advance()
                    break
            if ch == "\n" and not triple:
                raise self.error("Unterminated string", start, self.stream.position)
            if ch == "\\":
                value += self.read_escape(raw)
                continue
            value += self.advance()

        return Token("STRING", value, start, self.stream.position)

    def read_escape(self, raw: bool) -> str:
        escape_start = self.stream.position
        self.advance()  # backslash
        if self.stream.end_of_file():
            raise self.error("Unterminated string", escape_start)
        ch = self.advance()
        if raw:
            return "\\" + ch
        if ch in _SIMPLE_ESCAPES:
            return _SIMPLE_ESCAPES[ch]
        if ch == "x":
            digits = self.stream.peek(0) + self.stream.peek(1)
            if len(digits) == 2 and all(d in "0123456789abcdefABCDEF" for d in digits):
                self.advance()
                self.advance()
                return chr(int(digits, 16))
            raise self.error("Invalid \\x escape", escape_start, self.stream.position)
        raise self.error(
            f"Invalid escape sequence \\{ch}", escape_start, self.stream.position
        )


def tokenize(source: str, filename: str = "<input>") -> list[Token]:
    """Tokenizes ``source`` completely, including the trailing EOF token."""
    lexer = Lexer(CharacterStream(source), filename)
    tokens: list[Token] = []
    while True:
        tok = lexer.next_token()
        tokens.append(tok)
        if tok.type == "EOF":
            break
    logger.debug("Tokenized %s into %d tokens", filename, len(tokens))
    return tokens


__all__ = ["CharacterStream", "Lexer", "Token", "tokenize"]
