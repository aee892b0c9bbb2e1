"""AST model for Kotoba source programs.

Every block statement owns a complete `Program` for its body, so a tree walk
always meets scopes as explicit nodes.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field, fields
from typing import Any

from kotoba.source_map import SourceSpan


@dataclass
class AstNode:
    """Base class for AST nodes with provenance span."""

    span: SourceSpan


@dataclass
class Expr(AstNode):
    """Base class for expression nodes."""


@dataclass
class Stmt(AstNode):
    """Base class for statement nodes."""


@dataclass
class Program(AstNode):
    """Ordered statements of one scope level, chained by commas."""

    statements: list[Stmt] = field(default_factory=list)


@dataclass
class IfStmt(Stmt):
    """Conditional with a then-branch and an optional else-branch."""

    condition: Expr
    then_branch: Program
    else_branch: Program | None = None


@dataclass
class WhileStmt(Stmt):
    """Pre-tested loop; the body gets a fresh scope per iteration."""

    condition: Expr
    body: Program


@dataclass
class FnStmt(Stmt):
    """Named function declaration."""

    name: str
    params: list[str]
    body: Program


@dataclass
class AssignStmt(Stmt):
    """Local assignment, or mutation of an enclosing binding when `nonlocal_`."""

    name: str
    value: Expr
    nonlocal_: bool = False


@dataclass
class RetStmt(Stmt):
    value: Expr


@dataclass
class ExpressionStmt(Stmt):
    expr: Expr


@dataclass
class IdentifierExpr(Expr):
    name: str


@dataclass
class LiteralExpr(Expr):
    """Literal value: float, bool, str, or None for nil."""

    value: Any


@dataclass
class UnaryExpr(Expr):
    operator: str
    operand: Expr


@dataclass
class BinaryExpr(Expr):
    left: Expr
    operator: str
    right: Expr


@dataclass
class CallExpr(Expr):
    callee: Expr
    args: list[Expr]


def iter_child_nodes(node: AstNode) -> Iterator[AstNode]:
    """Yield the direct children of `node` in source order."""
    for f in fields(node):
        if f.name == "span":
            continue
        value = getattr(node, f.name)
        if isinstance(value, AstNode):
            yield value
        elif isinstance(value, list):
            for item in value:
                if isinstance(item, AstNode):
                    yield item


def walk(node: AstNode) -> Iterator[AstNode]:
    """Yield `node` and all of its descendants in pre-order."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(list(iter_child_nodes(current))))


def ast_to_dict(node: Any) -> Any:
    """Serialize AST dataclasses recursively into JSON-compatible dicts."""
    if isinstance(node, list):
        return [ast_to_dict(item) for item in node]
    if isinstance(node, SourceSpan):
        return node.to_dict()
    if isinstance(node, AstNode):
        payload: dict[str, Any] = {"node_type": type(node).__name__}
        for f in fields(node):
            payload[f.name] = ast_to_dict(getattr(node, f.name))
        return payload
    return node
