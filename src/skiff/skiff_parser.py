"""
SKIFF Language Parser

Parses a SKIFF token stream into one abstract syntax tree rooted at a `Block`.

This module implements a hand-written recursive-descent parser. Each grammar level
is one method, so the operator precedence ladder reads top to bottom in the order
the methods are called. Argument and parameter lists are validated as soon as they
are complete, and optional constructs are checked against the dialect right after
they are recognized, so the tree returned to the caller is already well-formed.

Supported Constructs
--------------------
- Statements:
    * Assignment and augmented assignment: `x = 1`, `a, b = b, a`, `n += 1`
    * Control flow: `if`/`elif`/`else`, `for ... in ...`, `break`, `continue`, `pass`, `return`
    * Definitions: `def f(a, b=1, *args, **kwargs) -> T:` (dialect-gated)
    * Modules: `load("file.sky", "sym", alias="other")` (dialect-gated)
    * Suites: one line of `;`-separated simple statements, or an indented block

- Expressions, loosest to tightest:
    * `x if c else y`, `lambda params: body` (dialect-gated)
    * `or`, `and`, `not`
    * Non-chaining comparisons: `== != < > <= >= in not in`
    * `|`, `^`, `&`, `<< >>`, `+ -`, `* % //`
    * Unary `+ - ~`
    * Trailers: `.name`, `(args)`, `[index]`, `[start:stop:step]`
    * Operands: identifiers, integers, strings, lists, dicts, comprehensions,
      parenthesized expressions and tuples

Parser Behavior
---------------
- Fails fast: the first error aborts the parse; no partial tree is returned.
- Comma lists collapse: one item without a trailing comma is the item itself,
  anything else is a `Tuple`.

Entry Points
------------
- `parse()`: Parse a token stream into the root `Block` (the driver).
- `parse_source()`: Tokenize and parse source text.
- `Parser.parse_expression()`: Parse a stream holding a single expression.

Raises
------
StructuralError
    The token stream matches no grammar alternative.
DialectError
    A recognized construct is disabled by the dialect.
ValidationError
    An argument or parameter list is out of order or repeats a name.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from skiff.skiff_ast import (
    Args,
    ArgsSpread,
    Argument,
    Assign,
    AssignOperator,
    BinaryOp,
    BinaryOperator,
    Block,
    Break,
    Call,
    Clause,
    Conditional,
    Continue,
    Dict,
    DictComprehension,
    DictEntry,
    Dot,
    Expr,
    ExpressionStatement,
    For,
    ForClause,
    FunctionDef,
    Identifier,
    If,
    IfClause,
    IfElse,
    Index,
    IntLiteral,
    KwArgs,
    KwArgsSpread,
    Lambda,
    List,
    ListComprehension,
    Load,
    LoadBinding,
    Named,
    NoArgs,
    Normal,
    Parameter,
    Pass,
    Positional,
    Return,
    Slice,
    Stmt,
    StringLiteral,
    Tuple,
    UnaryOp,
    UnaryOperator,
    WithDefault,
)
from skiff.skiff_codemap import CodeMap, Span
from skiff.skiff_constants import token_hashmap
from skiff.skiff_dialect import STANDARD, DialectPolicy, Feature
from skiff.skiff_errors import DialectError, ParseError, StructuralError
from skiff.skiff_lexer import Token, tokenize
from skiff.skiff_validate import check_call_arguments, check_parameters

logger = logging.getLogger(__name__)

_TOKEN_TEXT = {v: k for k, v in token_hashmap.items()}
_TOKEN_NAMES = {
    "EOF": "end of file",
    "NEWLINE": "newline",
    "INDENT": "indent",
    "DEDENT": "dedent",
    "IDENT": "identifier",
    "INT": "integer",
    "STRING": "string",
}

_EXPRESSION_START = frozenset(
    {
        "IDENT",
        "INT",
        "STRING",
        "LBRACK",
        "LBRACE",
        "LPAREN",
        "PLUS",
        "MINUS",
        "TILDE",
        "NOT",
        "LAMBDA",
    }
)

_COMPARISON_OPS = {
    "EQEQ": BinaryOperator.EQUAL,
    "NE": BinaryOperator.NOT_EQUAL,
    "LT": BinaryOperator.LESS,
    "GT": BinaryOperator.GREATER,
    "LE": BinaryOperator.LESS_OR_EQUAL,
    "GE": BinaryOperator.GREATER_OR_EQUAL,
    "IN": BinaryOperator.IN,
}

_OR_OPS = {"OR": BinaryOperator.OR}
_AND_OPS = {"AND": BinaryOperator.AND}
_BIT_OR_OPS = {"PIPE": BinaryOperator.BIT_OR}
_BIT_XOR_OPS = {"CARET": BinaryOperator.BIT_XOR}
_BIT_AND_OPS = {"AMP": BinaryOperator.BIT_AND}
_SHIFT_OPS = {"LSHIFT": BinaryOperator.LEFT_SHIFT, "RSHIFT": BinaryOperator.RIGHT_SHIFT}
_ARITH_OPS = {"PLUS": BinaryOperator.ADD, "MINUS": BinaryOperator.SUBTRACT}
_TERM_OPS = {
    "STAR": BinaryOperator.MULTIPLY,
    "PERCENT": BinaryOperator.PERCENT,
    "SLASHSLASH": BinaryOperator.FLOOR_DIVIDE,
}

_UNARY_OPS = {
    "PLUS": UnaryOperator.PLUS,
    "MINUS": UnaryOperator.MINUS,
    "TILDE": UnaryOperator.BIT_NOT,
}

_ASSIGN_OPS = {
    "ASSIGN": AssignOperator.ASSIGN,
    "PLUS_EQ": AssignOperator.ADD,
    "MINUS_EQ": AssignOperator.SUBTRACT,
    "STAR_EQ": AssignOperator.MULTIPLY,
    "SLASHSLASH_EQ": AssignOperator.FLOOR_DIVIDE,
    "PERCENT_EQ": AssignOperator.PERCENT,
    "AMP_EQ": AssignOperator.BIT_AND,
    "PIPE_EQ": AssignOperator.BIT_OR,
    "CARET_EQ": AssignOperator.BIT_XOR,
    "LSHIFT_EQ": AssignOperator.LEFT_SHIFT,
    "RSHIFT_EQ": AssignOperator.RIGHT_SHIFT,
}


def describe_token(tok: Token) -> str:
    """Human-readable description of a token for error messages."""
    if tok.type in ("IDENT", "INT"):
        return f"{_TOKEN_NAMES[tok.type]} '{tok.value}'"
    if tok.type == "STRING":
        return f"string {tok.value!r}"
    if tok.type in _TOKEN_NAMES:
        return _TOKEN_NAMES[tok.type]
    return f"'{_TOKEN_TEXT.get(tok.type, tok.value)}'"


def describe_types(types: Iterable[str]) -> str:
    names = [
        _TOKEN_NAMES[t] if t in _TOKEN_NAMES else f"'{_TOKEN_TEXT.get(t, t)}'"
        for t in types
    ]
    return names[0] if len(names) == 1 else "one of " + ", ".join(names)


class Parser:
    """
    SKIFF Parser Class

    Transforms one file's token stream into a tree of `ASTNode` objects.

    Attributes
    ----------
    tokens : list[Token]
        The input token stream; a trailing EOF token is optional.
    position : int
        Current index into the token stream.
    file_span : Span
        Span of the whole file; every node span is a subspan of it.
    dialect : DialectPolicy
        Policy consulted before accepting optional constructs.
    previous_end : int
        End offset of the most recently consumed token.

    Raises
    ------
    StructuralError, DialectError, ValidationError
        On the first problem found.
    """

    def __init__(
        self,
        tokens: Iterable[Token],
        file_span: Span,
        dialect: DialectPolicy = STANDARD,
    ) -> None:
        self.tokens: list[Token] = list(tokens)
        self.position: int = 0
        self.file_span = file_span
        self.dialect = dialect
        self.previous_end: int = file_span.start
        self.eof = Token("EOF", "", file_span.end, file_span.end)

    # Token stream

    def current(self) -> Token:
        return (
            self.tokens[self.position] if self.position < len(self.tokens) else self.eof
        )

    def peek(self, offset: int = 1) -> Token:
        index = self.position + offset
        return self.tokens[index] if index < len(self.tokens) else self.eof

    def advance(self) -> Token:
        tok = self.current()
        if tok.type != "EOF":
            self.previous_end = tok.end
            self.position += 1
        return self.current()

    def match(self, *types: str) -> Token:
        tok = self.current()
        if tok.type in types:
            self.advance()
            return tok
        raise self.error(
            f"Expected {describe_types(types)}, got {describe_token(tok)}", tok
        )

    def accept(self, *types: str) -> Token | None:
        tok = self.current()
        if tok.type in types:
            self.advance()
            return tok
        return None

    def skip_newlines(self) -> None:
        while self.current().type == "NEWLINE":
            self.advance()

    def starts_expression(self) -> bool:
        return self.current().type in _EXPRESSION_START

    # Spans and errors

    def token_span(self, tok: Token) -> Span:
        return self.file_span.subspan(tok.start, tok.end)

    def span_from(self, start: int) -> Span:
        """Span from ``start`` to the end of the last consumed token."""
        return self.file_span.subspan(start, max(start, self.previous_end))

    def error(self, message: str, tok: Token | None = None) -> StructuralError:
        return StructuralError(message, self.token_span(tok or self.current()))

    def require(self, permitted: bool, feature: Feature, span: Span) -> None:
        if not permitted:
            raise DialectError(feature, span)

    # Entry points

    def parse(self) -> Block:
        """Parse the whole token stream; the root block spans the whole file."""
        statements: list[Stmt] = []
        self.skip_newlines()
        while self.current().type != "EOF":
            statements.append(self.parse_statement())
            self.skip_newlines()
        return Block(self.file_span, tuple(statements))

    def parse_expression(self) -> Expr:
        """Parse a stream that holds exactly one (comma-list) expression."""
        self.skip_newlines()
        expr = self.parse_test_list()
        self.skip_newlines()
        self.match("EOF")
        return expr

    # Statements

    def parse_statement(self) -> Stmt:
        tok_type = self.current().type
        if tok_type == "DEF":
            return self.parse_def()
        if tok_type == "IF":
            return self.parse_if()
        if tok_type == "FOR":
            return self.parse_for()
        return self.parse_simple_statement()

    def parse_simple_statement(self) -> Stmt:
        """Parse `;`-separated small statements ending the line."""
        start = self.current().start
        statements = [self.parse_small_statement()]
        end = self.previous_end
        while self.accept("SEMICOLON"):
            if self.current().type in ("NEWLINE", "EOF"):
                break
            statements.append(self.parse_small_statement())
            end = self.previous_end

        if self.current().type != "EOF":
            self.match("NEWLINE")

        if len(statements) == 1:
            return statements[0]
        return Block(self.file_span.subspan(start, end), tuple(statements))

    def parse_small_statement(self) -> Stmt:
        tok = self.current()
        if tok.type == "RETURN":
            self.advance()
            value = None
            if self.starts_expression():
                value = self.parse_test_list()
            return Return(self.span_from(tok.start), value)
        if tok.type == "BREAK":
            self.advance()
            return Break(self.token_span(tok))
        if tok.type == "CONTINUE":
            self.advance()
            return Continue(self.token_span(tok))
        if tok.type == "PASS":
            self.advance()
            return Pass(self.token_span(tok))
        if tok.type == "LOAD":
            return self.parse_load()
        return self.parse_assign_or_expression()

    def parse_assign_or_expression(self) -> Stmt:
        start = self.current().start
        lhs = self.parse_test_list()
        op_tok = self.accept(*_ASSIGN_OPS)
        if op_tok is None:
            return ExpressionStatement(self.span_from(start), lhs)
        rhs = self.parse_test_list()
        return Assign(self.span_from(start), lhs, _ASSIGN_OPS[op_tok.type], rhs)

    def parse_load(self) -> Load:
        """Parse `load("module", "sym", local="sym", ...)`."""
        load_tok = self.match("LOAD")
        self.match("LPAREN")
        module_tok = self.match("STRING")
        bindings: list[LoadBinding] = []
        while self.accept("COMMA"):
            if self.current().type == "RPAREN":
                break
            bindings.append(self.parse_load_binding())
        self.match("RPAREN")

        span = self.span_from(load_tok.start)
        if not bindings:
            raise StructuralError(
                "load statement must import at least one symbol", span
            )
        self.require(self.dialect.permits_load(), Feature.LOAD, span)
        return Load(
            span, module_tok.value, tuple(bindings), self.dialect.load_visibility()
        )

    def parse_load_binding(self) -> LoadBinding:
        if self.current().type == "IDENT" and self.peek().type == "ASSIGN":
            name_tok = self.match("IDENT")
            self.match("ASSIGN")
            symbol = self.match("STRING")
            return LoadBinding(
                self.span_from(name_tok.start), name_tok.value, symbol.value
            )
        symbol = self.match("STRING")
        return LoadBinding(self.token_span(symbol), symbol.value, symbol.value)

    def parse_suite(self) -> Stmt:
        """Parse a compound statement body: a simple-statement line or an indented block."""
        if self.current().type != "NEWLINE":
            return self.parse_simple_statement()

        self.match("NEWLINE")
        start = self.match("INDENT").start
        self.skip_newlines()
        statements = [self.parse_statement()]
        self.skip_newlines()
        while self.current().type not in ("DEDENT", "EOF"):
            statements.append(self.parse_statement())
            self.skip_newlines()
        self.match("DEDENT")
        return Block(self.span_from(start), tuple(statements))

    def parse_if(self) -> Stmt:
        """Parse `if`/`elif` chains; each `elif` becomes the else arm of its predecessor."""
        if_tok = self.match("IF", "ELIF")
        condition = self.parse_test()
        self.match("COLON")
        body = self.parse_suite()

        if self.current().type == "ELIF":
            else_body = self.parse_if()
            return IfElse(self.span_from(if_tok.start), condition, body, else_body)
        if self.accept("ELSE"):
            self.match("COLON")
            else_body = self.parse_suite()
            return IfElse(self.span_from(if_tok.start), condition, body, else_body)
        return If(self.span_from(if_tok.start), condition, body)

    def parse_for(self) -> For:
        for_tok = self.match("FOR")
        targets = self.parse_expr_list()
        self.match("IN")
        iterable = self.parse_test_list()
        self.match("COLON")
        body = self.parse_suite()
        return For(self.span_from(for_tok.start), targets, iterable, body)

    def parse_def(self) -> FunctionDef:
        def_tok = self.match("DEF")
        name_tok = self.match("IDENT")
        self.match("LPAREN")
        parameters = self.parse_parameters("RPAREN", typed=True)
        self.match("RPAREN")

        return_type = None
        arrow = self.accept("ARROW")
        if arrow is not None:
            return_type = self.parse_test()
            self.require(
                self.dialect.permits_types(), Feature.TYPES, self.span_from(arrow.start)
            )

        self.match("COLON")
        body = self.parse_suite()

        span = self.span_from(def_tok.start)
        self.require(self.dialect.permits_def(), Feature.DEF, span)
        check_parameters(parameters)
        return FunctionDef(span, name_tok.value, tuple(parameters), body, return_type)

    # Parameters

    def parse_parameters(self, closing: str, typed: bool) -> list[Parameter]:
        parameters: list[Parameter] = []
        while self.current().type != closing:
            parameters.append(self.parse_parameter(typed))
            if not self.accept("COMMA"):
                break
        return parameters

    def parse_parameter(self, typed: bool) -> Parameter:
        start = self.current().start

        if self.accept("STARSTAR"):
            name = self.match("IDENT").value
            annotation = self.parse_annotation(typed)
            return KwArgs(self.span_from(start), name, annotation)

        star = self.accept("STAR")
        if star is not None:
            if self.current().type != "IDENT":
                span = self.token_span(star)
                self.require(
                    self.dialect.permits_keyword_only_arguments(),
                    Feature.KEYWORD_ONLY_ARGUMENTS,
                    span,
                )
                return NoArgs(span)
            name = self.match("IDENT").value
            annotation = self.parse_annotation(typed)
            return Args(self.span_from(start), name, annotation)

        name = self.match("IDENT").value
        annotation = self.parse_annotation(typed)
        if self.accept("ASSIGN"):
            default = self.parse_test()
            return WithDefault(self.span_from(start), name, default, annotation)
        return Normal(self.span_from(start), name, annotation)

    def parse_annotation(self, typed: bool) -> Expr | None:
        if not typed or self.current().type != "COLON":
            return None
        colon = self.match("COLON")
        annotation = self.parse_test()
        self.require(
            self.dialect.permits_types(), Feature.TYPES, self.span_from(colon.start)
        )
        return annotation

    # Comma lists

    def parse_comma_list(
        self, parse_item: Callable[[], Expr], allow_trailing: bool = True
    ) -> Expr:
        """Parse `item (, item)* [,]`, collapsing a lone item without trailing comma."""
        start = self.current().start
        first = parse_item()
        if self.current().type != "COMMA":
            return first

        items = [first]
        while self.accept("COMMA"):
            if not self.starts_expression():
                if not allow_trailing:
                    raise self.error(
                        f"Expected expression, got {describe_token(self.current())}"
                    )
                break
            items.append(parse_item())
        return Tuple(self.span_from(start), tuple(items))

    def parse_test_list(self) -> Expr:
        return self.parse_comma_list(self.parse_test)

    def parse_expr_list(self) -> Expr:
        """Loop targets: bitwise-or level items, so `in` is left for the loop."""
        return self.parse_comma_list(self.parse_bit_or, allow_trailing=False)

    # Expressions

    def parse_test(self) -> Expr:
        if self.current().type == "LAMBDA":
            return self.parse_lambda()

        start = self.current().start
        expr = self.parse_or_test()
        if not self.accept("IF"):
            return expr
        condition = self.parse_or_test()
        self.match("ELSE")
        otherwise = self.parse_test()
        return Conditional(self.span_from(start), condition, expr, otherwise)

    def parse_lambda(self) -> Lambda:
        lambda_tok = self.match("LAMBDA")
        parameters = self.parse_parameters("COLON", typed=False)
        self.match("COLON")
        body = self.parse_test()

        span = self.span_from(lambda_tok.start)
        self.require(self.dialect.permits_lambda(), Feature.LAMBDA, span)
        check_parameters(parameters)
        return Lambda(span, tuple(parameters), body)

    def parse_binary(
        self, parse_operand: Callable[[], Expr], operators: dict[str, BinaryOperator]
    ) -> Expr:
        """Parse one left-associative binary level."""
        start = self.current().start
        left = parse_operand()
        while self.current().type in operators:
            op = operators[self.match(self.current().type).type]
            right = parse_operand()
            left = BinaryOp(self.span_from(start), op, left, right)
        return left

    def parse_or_test(self) -> Expr:
        return self.parse_binary(self.parse_and_test, _OR_OPS)

    def parse_and_test(self) -> Expr:
        return self.parse_binary(self.parse_not_test, _AND_OPS)

    def parse_not_test(self) -> Expr:
        not_tok = self.accept("NOT")
        if not_tok is None:
            return self.parse_comparison()
        operand = self.parse_not_test()
        return UnaryOp(self.span_from(not_tok.start), UnaryOperator.NOT, operand)

    def comparison_operator(self) -> BinaryOperator | None:
        tok_type = self.current().type
        if tok_type == "NOT" and self.peek().type == "IN":
            return BinaryOperator.NOT_IN
        return _COMPARISON_OPS.get(tok_type)

    def parse_comparison(self) -> Expr:
        """Parse at most one comparison; its operands are bitwise-or expressions."""
        start = self.current().start
        left = self.parse_bit_or()
        op = self.comparison_operator()
        if op is None:
            return left

        self.advance()
        if op is BinaryOperator.NOT_IN:
            self.advance()
        right = self.parse_bit_or()

        if self.comparison_operator() is not None:
            raise self.error(
                "Comparison operators cannot be chained; use parentheses to nest them"
            )
        return BinaryOp(self.span_from(start), op, left, right)

    def parse_bit_or(self) -> Expr:
        return self.parse_binary(self.parse_bit_xor, _BIT_OR_OPS)

    def parse_bit_xor(self) -> Expr:
        return self.parse_binary(self.parse_bit_and, _BIT_XOR_OPS)

    def parse_bit_and(self) -> Expr:
        return self.parse_binary(self.parse_shift, _BIT_AND_OPS)

    def parse_shift(self) -> Expr:
        return self.parse_binary(self.parse_arith, _SHIFT_OPS)

    def parse_arith(self) -> Expr:
        return self.parse_binary(self.parse_term, _ARITH_OPS)

    def parse_term(self) -> Expr:
        return self.parse_binary(self.parse_factor, _TERM_OPS)

    def parse_factor(self) -> Expr:
        tok = self.current()
        if tok.type not in _UNARY_OPS:
            return self.parse_primary()
        self.advance()
        operand = self.parse_factor()
        return UnaryOp(self.span_from(tok.start), _UNARY_OPS[tok.type], operand)

    def parse_primary(self) -> Expr:
        """Parse an operand followed by `.name`, `(args)` and `[...]` trailers."""
        start = self.current().start
        expr = self.parse_operand()
        while True:
            tok_type = self.current().type
            if tok_type == "DOT":
                self.advance()
                attribute = self.match("IDENT").value
                expr = Dot(self.span_from(start), expr, attribute)
            elif tok_type == "LPAREN":
                self.advance()
                arguments = self.parse_arguments()
                self.match("RPAREN")
                check_call_arguments(arguments)
                expr = Call(self.span_from(start), expr, tuple(arguments))
            elif tok_type == "LBRACK":
                expr = self.parse_subscript(expr, start)
            else:
                return expr

    def parse_subscript(self, obj: Expr, start: int) -> Expr:
        """Parse `[...]` after ``obj``: a slice if a `:` appears, otherwise an index."""
        self.match("LBRACK")
        if self.current().type == "COLON":
            return self.parse_slice(obj, start, None)

        index_start = self.current().start
        first = self.parse_test()
        if self.current().type == "COLON":
            return self.parse_slice(obj, start, first)

        index = first
        if self.current().type == "COMMA":
            items = [first]
            while self.accept("COMMA"):
                if self.current().type == "RBRACK":
                    break
                items.append(self.parse_test())
            index = Tuple(self.span_from(index_start), tuple(items))
        self.match("RBRACK")
        return Index(self.span_from(start), obj, index)

    def parse_slice(self, obj: Expr, start: int, lower: Expr | None) -> Slice:
        self.match("COLON")
        upper = None
        if self.current().type not in ("COLON", "RBRACK"):
            upper = self.parse_test()
        step = None
        if self.accept("COLON") and self.current().type != "RBRACK":
            step = self.parse_test()
        self.match("RBRACK")
        return Slice(self.span_from(start), obj, lower, upper, step)

    def parse_arguments(self) -> list[Argument]:
        arguments: list[Argument] = []
        while self.current().type != "RPAREN":
            arguments.append(self.parse_argument())
            if not self.accept("COMMA"):
                break
        return arguments

    def parse_argument(self) -> Argument:
        start = self.current().start
        if self.accept("STARSTAR"):
            value = self.parse_test()
            return KwArgsSpread(self.span_from(start), value)
        if self.accept("STAR"):
            value = self.parse_test()
            return ArgsSpread(self.span_from(start), value)
        if self.current().type == "IDENT" and self.peek().type == "ASSIGN":
            name = self.match("IDENT").value
            self.match("ASSIGN")
            value = self.parse_test()
            return Named(self.span_from(start), name, value)
        value = self.parse_test()
        return Positional(self.span_from(start), value)

    def parse_operand(self) -> Expr:
        tok = self.current()
        if tok.type == "IDENT":
            self.advance()
            return Identifier(self.token_span(tok), tok.value)
        if tok.type == "INT":
            self.advance()
            return IntLiteral(self.token_span(tok), tok.value)
        if tok.type == "STRING":
            self.advance()
            return StringLiteral(self.token_span(tok), tok.value)
        if tok.type == "LBRACK":
            return self.parse_list()
        if tok.type == "LBRACE":
            return self.parse_dict()
        if tok.type == "LPAREN":
            return self.parse_parenthesized()
        raise self.error(f"Expected expression, got {describe_token(tok)}", tok)

    def parse_parenthesized(self) -> Expr:
        """`()` is the empty tuple, `(x)` is ``x`` itself, `(x,)` and `(x, y)` are tuples."""
        open_tok = self.match("LPAREN")
        if self.accept("RPAREN"):
            return Tuple(self.span_from(open_tok.start), ())

        first = self.parse_test()
        if self.accept("RPAREN"):
            return first

        items = [first]
        while self.accept("COMMA"):
            if self.current().type == "RPAREN":
                break
            items.append(self.parse_test())
        self.match("RPAREN")
        return Tuple(self.span_from(open_tok.start), tuple(items))

    def parse_list(self) -> Expr:
        open_tok = self.match("LBRACK")
        if self.accept("RBRACK"):
            return List(self.span_from(open_tok.start), ())

        first = self.parse_test()
        if self.current().type == "FOR":
            clauses = self.parse_comprehension_clauses()
            self.match("RBRACK")
            return ListComprehension(self.span_from(open_tok.start), first, clauses)

        items = [first]
        while self.accept("COMMA"):
            if self.current().type == "RBRACK":
                break
            items.append(self.parse_test())
        self.match("RBRACK")
        return List(self.span_from(open_tok.start), tuple(items))

    def parse_dict(self) -> Expr:
        open_tok = self.match("LBRACE")
        if self.accept("RBRACE"):
            return Dict(self.span_from(open_tok.start), ())

        first = self.parse_dict_entry()
        if self.current().type == "FOR":
            clauses = self.parse_comprehension_clauses()
            self.match("RBRACE")
            return DictComprehension(
                self.span_from(open_tok.start), first.key, first.value, clauses
            )

        entries = [first]
        while self.accept("COMMA"):
            if self.current().type == "RBRACE":
                break
            entries.append(self.parse_dict_entry())
        self.match("RBRACE")
        return Dict(self.span_from(open_tok.start), tuple(entries))

    def parse_dict_entry(self) -> DictEntry:
        start = self.current().start
        key = self.parse_test()
        self.match("COLON")
        value = self.parse_test()
        return DictEntry(self.span_from(start), key, value)

    def parse_comprehension_clauses(self) -> tuple[Clause, ...]:
        """Parse a leading `for` clause followed by any mix of `for` and `if` clauses."""
        clauses: list[Clause] = [self.parse_for_clause()]
        while self.current().type in ("FOR", "IF"):
            if self.current().type == "FOR":
                clauses.append(self.parse_for_clause())
            else:
                if_tok = self.match("IF")
                condition = self.parse_or_test()
                clauses.append(IfClause(self.span_from(if_tok.start), condition))
        return tuple(clauses)

    def parse_for_clause(self) -> ForClause:
        for_tok = self.match("FOR")
        targets = self.parse_expr_list()
        self.match("IN")
        iterable = self.parse_or_test()
        return ForClause(self.span_from(for_tok.start), targets, iterable)


def parse(
    tokens: Iterable[Token],
    codemap: CodeMap | None,
    file_span: Span,
    dialect: DialectPolicy = STANDARD,
) -> Block:
    """
    Parse one file's token stream into its root `Block`.

    Args:
        tokens: The lexed token stream, including INDENT/DEDENT/NEWLINE markers.
        codemap: Code map the file is registered in; attached to any error raised.
        file_span: Span of the whole file; it becomes the root block's span.
        dialect: Policy deciding which optional constructs are accepted.

    Returns:
        The root `Block`.

    Raises:
        ParseError: The first structural, dialect or validation error encountered.
    """
    parser = Parser(tokens, file_span, dialect)
    try:
        root = parser.parse()
    except ParseError as e:
        if codemap is not None:
            e.attach(codemap)
        logger.debug("Parsing %s failed: %s", file_span.file, e.message)
        raise
    logger.debug(
        "Parsed %s: %d top-level statements", file_span.file, len(root.statements)
    )
    return root


def parse_source(
    source: str,
    filename: str = "<input>",
    dialect: DialectPolicy = STANDARD,
    codemap: CodeMap | None = None,
) -> Block:
    """Tokenize ``source`` with the reference lexer and parse it.

    The file is registered in ``codemap`` (a fresh one by default) so errors carry
    line and column information.
    """
    codemap = codemap or CodeMap()
    source_file = codemap.add_file(filename, source)
    try:
        tokens = tokenize(source, filename)
    except ParseError as e:
        e.attach(codemap)
        raise
    return parse(tokens, codemap, source_file.span, dialect)
