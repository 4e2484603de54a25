"""
Defines the abstract syntax tree (AST) node structure for the SKIFF language.

Node families:
    Expr:
        Identifier, IntLiteral, StringLiteral, Tuple, List, Dict, ListComprehension,
        DictComprehension, UnaryOp, BinaryOp, Conditional, Lambda, Dot, Call, Index, Slice.

    Stmt:
        Block, Return, Break, Continue, Pass, Assign, ExpressionStatement, Load, If,
        IfElse, For, FunctionDef.

    Parameter:
        Normal, WithDefault, Args (``*args``), KwArgs (``**kwargs``), NoArgs (bare ``*``).

    Argument:
        Positional, Named, ArgsSpread (``*x``), KwArgsSpread (``**x``).

    Helpers:
        DictEntry, ForClause, IfClause and LoadBinding, which only appear inside the nodes above.

Each node is a frozen dataclass whose first field is its `Span`. Child sequences are
tuples, so a finished tree is immutable and strictly owned by its parent. Operators are
recorded as enum tags (`BinaryOperator`, `UnaryOperator`, `AssignOperator`).

Usage:
    The parser produces these nodes bottom-up; `to_dict()` serializes a tree for JSON
    output, `walk()` visits every node, and `collect_defines()` lists the names a module
    binds.

Example:
    node = BinaryOp(span, BinaryOperator.ADD, IntLiteral(s1, 1), IntLiteral(s2, 2))
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any

from skiff.skiff_codemap import Span
from skiff.skiff_dialect import Visibility

ASTDict = dict[str, Any]
"""JSON-ready representation of a node produced by `ASTNode.to_dict`."""


class BinaryOperator(Enum):
    """Binary operators, valued by their source spelling."""

    OR = "or"
    AND = "and"
    EQUAL = "=="
    NOT_EQUAL = "!="
    LESS = "<"
    GREATER = ">"
    LESS_OR_EQUAL = "<="
    GREATER_OR_EQUAL = ">="
    IN = "in"
    NOT_IN = "not in"
    BIT_OR = "|"
    BIT_XOR = "^"
    BIT_AND = "&"
    LEFT_SHIFT = "<<"
    RIGHT_SHIFT = ">>"
    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "*"
    PERCENT = "%"
    FLOOR_DIVIDE = "//"


class UnaryOperator(Enum):
    PLUS = "+"
    MINUS = "-"
    BIT_NOT = "~"
    NOT = "not"


class AssignOperator(Enum):
    ASSIGN = "="
    ADD = "+="
    SUBTRACT = "-="
    MULTIPLY = "*="
    FLOOR_DIVIDE = "//="
    PERCENT = "%="
    BIT_AND = "&="
    BIT_OR = "|="
    BIT_XOR = "^="
    LEFT_SHIFT = "<<="
    RIGHT_SHIFT = ">>="


_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


@dataclass(frozen=True)
class ASTNode:
    """
    Base class of every SKIFF syntax node.

    Attributes:
        span (Span): Source extent, from the first to the last token of the construct.
    """

    span: Span

    @property
    def kind(self) -> str:
        """Snake-case node kind, e.g. ``"binary_op"`` or ``"if_else"``."""
        return _CAMEL_BOUNDARY.sub("_", type(self).__name__).lower()

    def children(self) -> Iterator[ASTNode]:
        """Yields the direct child nodes in field order."""
        for f in fields(self):
            if f.name == "span":
                continue
            value = getattr(self, f.name)
            if isinstance(value, ASTNode):
                yield value
            elif isinstance(value, tuple):
                for item in value:
                    if isinstance(item, ASTNode):
                        yield item

    def to_dict(self) -> ASTDict:
        result: ASTDict = {
            "kind": self.kind,
            "span": [self.span.start, self.span.end],
        }
        for f in fields(self):
            if f.name != "span":
                result[f.name] = _serialize(getattr(self, f.name))
        return result


def _serialize(value: Any) -> Any:
    if isinstance(value, ASTNode):
        return value.to_dict()
    if isinstance(value, tuple):
        return [_serialize(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    return value


# Expressions


@dataclass(frozen=True)
class Expr(ASTNode):
    pass


@dataclass(frozen=True)
class Identifier(Expr):
    name: str


@dataclass(frozen=True)
class Literal(Expr):
    pass


@dataclass(frozen=True)
class IntLiteral(Literal):
    value: int


@dataclass(frozen=True)
class StringLiteral(Literal):
    value: str


@dataclass(frozen=True)
class Tuple(Expr):
    elements: tuple[Expr, ...]


@dataclass(frozen=True)
class List(Expr):
    elements: tuple[Expr, ...]


@dataclass(frozen=True)
class DictEntry(ASTNode):
    key: Expr
    value: Expr


@dataclass(frozen=True)
class Dict(Expr):
    entries: tuple[DictEntry, ...]


@dataclass(frozen=True)
class Clause(ASTNode):
    pass


@dataclass(frozen=True)
class ForClause(Clause):
    """``for TARGETS in ITERABLE`` inside a comprehension."""

    targets: Expr
    iterable: Expr


@dataclass(frozen=True)
class IfClause(Clause):
    condition: Expr


@dataclass(frozen=True)
class ListComprehension(Expr):
    """``[body for ... (for ... | if ...)*]``; ``clauses[0]`` is always a `ForClause`."""

    body: Expr
    clauses: tuple[Clause, ...]


@dataclass(frozen=True)
class DictComprehension(Expr):
    key: Expr
    value: Expr
    clauses: tuple[Clause, ...]


@dataclass(frozen=True)
class UnaryOp(Expr):
    op: UnaryOperator
    operand: Expr


@dataclass(frozen=True)
class BinaryOp(Expr):
    op: BinaryOperator
    left: Expr
    right: Expr


@dataclass(frozen=True)
class Conditional(Expr):
    """``if_true if test else if_false``"""

    test: Expr
    if_true: Expr
    if_false: Expr


@dataclass(frozen=True)
class Lambda(Expr):
    parameters: tuple[Parameter, ...]
    body: Expr


@dataclass(frozen=True)
class Dot(Expr):
    obj: Expr
    attribute: str


@dataclass(frozen=True)
class Call(Expr):
    callee: Expr
    arguments: tuple[Argument, ...]


@dataclass(frozen=True)
class Index(Expr):
    """``obj[index]``; a comma-separated index arrives as a `Tuple`."""

    obj: Expr
    index: Expr


@dataclass(frozen=True)
class Slice(Expr):
    obj: Expr
    start: Expr | None
    stop: Expr | None
    step: Expr | None


# Parameters


@dataclass(frozen=True)
class Parameter(ASTNode):
    pass


@dataclass(frozen=True)
class Normal(Parameter):
    name: str
    annotation: Expr | None = None


@dataclass(frozen=True)
class WithDefault(Parameter):
    name: str
    default: Expr
    annotation: Expr | None = None


@dataclass(frozen=True)
class Args(Parameter):
    name: str
    annotation: Expr | None = None


@dataclass(frozen=True)
class KwArgs(Parameter):
    name: str
    annotation: Expr | None = None


@dataclass(frozen=True)
class NoArgs(Parameter):
    """Bare ``*``: every following parameter is keyword-only."""

    name: None = None


# Call arguments


@dataclass(frozen=True)
class Argument(ASTNode):
    pass


@dataclass(frozen=True)
class Positional(Argument):
    value: Expr


@dataclass(frozen=True)
class Named(Argument):
    name: str
    value: Expr


@dataclass(frozen=True)
class ArgsSpread(Argument):
    value: Expr


@dataclass(frozen=True)
class KwArgsSpread(Argument):
    value: Expr


# Statements


@dataclass(frozen=True)
class Stmt(ASTNode):
    pass


@dataclass(frozen=True)
class Block(Stmt):
    statements: tuple[Stmt, ...]


@dataclass(frozen=True)
class Return(Stmt):
    value: Expr | None = None


@dataclass(frozen=True)
class Break(Stmt):
    pass


@dataclass(frozen=True)
class Continue(Stmt):
    pass


@dataclass(frozen=True)
class Pass(Stmt):
    pass


@dataclass(frozen=True)
class Assign(Stmt):
    target: Expr
    op: AssignOperator
    value: Expr


@dataclass(frozen=True)
class ExpressionStatement(Stmt):
    expr: Expr


@dataclass(frozen=True)
class LoadBinding(ASTNode):
    """``local = "exported"``, or a bare ``"name"`` where both are the same."""

    local: str
    exported: str


@dataclass(frozen=True)
class Load(Stmt):
    module: str
    bindings: tuple[LoadBinding, ...]
    visibility: Visibility

    def pairs(self) -> list[tuple[str, str]]:
        """Returns the ``(local, exported)`` name pairs in source order."""
        return [(b.local, b.exported) for b in self.bindings]


@dataclass(frozen=True)
class If(Stmt):
    condition: Expr
    body: Stmt


@dataclass(frozen=True)
class IfElse(Stmt):
    condition: Expr
    body: Stmt
    else_body: Stmt


@dataclass(frozen=True)
class For(Stmt):
    targets: Expr
    iterable: Expr
    body: Stmt


@dataclass(frozen=True)
class FunctionDef(Stmt):
    name: str
    parameters: tuple[Parameter, ...]
    body: Stmt
    return_type: Expr | None = None

    def signature(self) -> str:
        """Approximate signature used in messages, e.g. ``f(a, b = ..., *args, **kwargs)``."""
        parts: list[str] = []
        for param in self.parameters:
            if isinstance(param, Normal):
                parts.append(param.name)
            elif isinstance(param, WithDefault):
                parts.append(f"{param.name} = ...")
            elif isinstance(param, Args):
                parts.append(f"*{param.name}")
            elif isinstance(param, KwArgs):
                parts.append(f"**{param.name}")
            else:
                parts.append("*")
        return f"{self.name}({', '.join(parts)})"


def walk(node: ASTNode) -> Iterator[ASTNode]:
    """Yields ``node`` and all of its descendants in pre-order."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(list(current.children())))


def collect_defines(stmt: Stmt) -> dict[str, Visibility]:
    """
    Collects the names a module-level statement binds, with their visibility.

    Assignment and loop targets and `def` names are public; load bindings take the
    visibility recorded on their `Load`. Function bodies are not entered. When a name is
    bound more than once, the last binding decides its visibility.

    Args:
        stmt: Usually the root `Block` returned by the parser.

    Returns:
        An insertion-ordered mapping of name to `Visibility`.
    """
    result: dict[str, Visibility] = {}
    _collect_stmt(stmt, result)
    return result


def _collect_stmt(stmt: Stmt, result: dict[str, Visibility]) -> None:
    if isinstance(stmt, Block):
        for child in stmt.statements:
            _collect_stmt(child, result)
    elif isinstance(stmt, Assign):
        _collect_lvalue(stmt.target, result)
    elif isinstance(stmt, For):
        _collect_lvalue(stmt.targets, result)
        _collect_stmt(stmt.body, result)
    elif isinstance(stmt, If):
        _collect_stmt(stmt.body, result)
    elif isinstance(stmt, IfElse):
        _collect_stmt(stmt.body, result)
        _collect_stmt(stmt.else_body, result)
    elif isinstance(stmt, FunctionDef):
        result[stmt.name] = Visibility.PUBLIC
    elif isinstance(stmt, Load):
        for binding in stmt.bindings:
            result[binding.local] = stmt.visibility


def _collect_lvalue(expr: Expr, result: dict[str, Visibility]) -> None:
    if isinstance(expr, Identifier):
        result[expr.name] = Visibility.PUBLIC
    elif isinstance(expr, (Tuple, List)):
        for element in expr.elements:
            _collect_lvalue(element, result)
