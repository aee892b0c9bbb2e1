"""Tree-walking evaluator for Kotoba programs."""

from __future__ import annotations

import logging
import math
import sys
from dataclasses import dataclass
from typing import Any

from kotoba.ast import (
    AssignStmt,
    BinaryExpr,
    CallExpr,
    Expr,
    ExpressionStmt,
    FnStmt,
    IdentifierExpr,
    IfStmt,
    LiteralExpr,
    Program,
    RetStmt,
    Stmt,
    UnaryExpr,
    WhileStmt,
)
from kotoba.environment import Environment
from kotoba.errors import ArityError, CallDepthExceeded, NotCallable, TopLevelReturn, TypeMismatch
from kotoba.host import Host
from kotoba.source_map import SourceSpan
from kotoba.values import KIND_BOOLEAN, KIND_NUMBER, Builtin, Function, is_callable, kind_of, values_equal


logger = logging.getLogger(__name__)

_ARITHMETIC = frozenset({"+", "-", "*", "/", "%"})
_COMPARISON = frozenset({">", ">=", "<", "<="})
# Python frames consumed per Kotoba call, with slack for nested expressions.
_FRAMES_PER_CALL = 16
_MAX_RECURSION_LIMIT = 20000


@dataclass(frozen=True)
class ReturnSignal:
    """Result of a fired `ret`, threaded back up to the nearest call."""

    value: Any
    span: SourceSpan


class Interpreter:
    """Evaluates a parsed `Program` against a chain of environment frames.

    Statement execution returns either a plain value or a `ReturnSignal`.
    Programs, `if` and `while` stop as soon as they see a signal and pass it
    on; calls consume it. Expression evaluation never produces a signal.
    """

    def __init__(self, host: Host | None = None) -> None:
        self.host = host or Host()
        self._depth = 0

    def evaluate(self, program: Program, env: Environment) -> Any:
        """Run the outermost program in a fresh child frame of `env`."""
        self.host.start()
        self._depth = 0
        limit = self.host.limits.max_call_depth
        previous_limit = sys.getrecursionlimit()
        wanted = min((limit + 1) * _FRAMES_PER_CALL, _MAX_RECURSION_LIMIT)
        sys.setrecursionlimit(max(previous_limit, wanted))
        try:
            result = self.exec_program(program, env.child())
        except RecursionError as exc:
            raise CallDepthExceeded(limit, span=program.span) from exc
        finally:
            sys.setrecursionlimit(previous_limit)
        if isinstance(result, ReturnSignal):
            raise TopLevelReturn(span=result.span)
        return result

    def exec_program(self, program: Program, env: Environment) -> Any:
        """Execute a scope's statements in `env`, which the caller has already created."""
        result: Any = None
        for stmt in program.statements:
            self.host.before_statement(stmt.span)
            result = self._exec_stmt(stmt, env)
            if isinstance(result, ReturnSignal):
                return result
        return result

    def _exec_stmt(self, stmt: Stmt, env: Environment) -> Any:
        if isinstance(stmt, ExpressionStmt):
            return self.eval_expr(stmt.expr, env)

        if isinstance(stmt, AssignStmt):
            value = self.eval_expr(stmt.value, env)
            if stmt.nonlocal_:
                env.assign_nonlocal(stmt.name, value, span=stmt.span)
            else:
                env.assign_local(stmt.name, value)
            return None

        if isinstance(stmt, RetStmt):
            return ReturnSignal(value=self.eval_expr(stmt.value, env), span=stmt.span)

        if isinstance(stmt, IfStmt):
            condition = self._require_boolean(self.eval_expr(stmt.condition, env), "if", stmt.condition.span)
            branch = stmt.then_branch if condition else stmt.else_branch
            if branch is None:
                return None
            return self.exec_program(branch, env.child())

        if isinstance(stmt, WhileStmt):
            while self._require_boolean(self.eval_expr(stmt.condition, env), "while", stmt.condition.span):
                result = self.exec_program(stmt.body, env.child())
                if isinstance(result, ReturnSignal):
                    return result
            return None

        if isinstance(stmt, FnStmt):
            env.declare(stmt.name, Function(name=stmt.name, params=list(stmt.params), body=stmt.body, closure=env))
            logger.debug("declared fn %s/%d at depth %d", stmt.name, len(stmt.params), env.depth())
            return None

        raise TypeError(f"unsupported statement node {type(stmt).__name__}")

    def eval_expr(self, expr: Expr, env: Environment) -> Any:
        """Evaluate an expression to a value."""
        if isinstance(expr, LiteralExpr):
            return expr.value

        if isinstance(expr, IdentifierExpr):
            return env.lookup(expr.name, span=expr.span)

        if isinstance(expr, BinaryExpr):
            return self._eval_binary(expr, env)

        if isinstance(expr, UnaryExpr):
            operand = self.eval_expr(expr.operand, env)
            if expr.operator == "!":
                return not self._require_boolean(operand, "!", expr.span)
            if expr.operator == "-":
                return -self._require_number(operand, "-", expr.span)
            raise TypeError(f"unsupported unary operator {expr.operator!r}")

        if isinstance(expr, CallExpr):
            return self._eval_call(expr, env)

        raise TypeError(f"unsupported expression node {type(expr).__name__}")

    def _eval_binary(self, expr: BinaryExpr, env: Environment) -> Any:
        op = expr.operator

        if op in ("and", "or"):
            left = self._require_boolean(self.eval_expr(expr.left, env), op, expr.left.span)
            if op == "and" and not left:
                return False
            if op == "or" and left:
                return True
            return self._require_boolean(self.eval_expr(expr.right, env), op, expr.right.span)

        left = self.eval_expr(expr.left, env)
        right = self.eval_expr(expr.right, env)

        if op == "==":
            return values_equal(left, right)
        if op == "!=":
            return not values_equal(left, right)

        if op in _ARITHMETIC or op in _COMPARISON:
            if kind_of(left) != KIND_NUMBER or kind_of(right) != KIND_NUMBER:
                kinds = (kind_of(left), kind_of(right))
                raise TypeMismatch(
                    f"Operator '{op}' cannot be applied to {kinds[0]} and {kinds[1]}.",
                    span=expr.span,
                    operator=op,
                    kinds=kinds,
                )
            return _apply_numeric(op, left, right)

        raise TypeError(f"unsupported binary operator {op!r}")

    def _eval_call(self, expr: CallExpr, env: Environment) -> Any:
        callee = self.eval_expr(expr.callee, env)
        if not is_callable(callee):
            raise NotCallable(kind_of(callee), span=expr.callee.span)

        args = [self.eval_expr(arg, env) for arg in expr.args]
        if len(args) != callee.arity:
            raise ArityError(callee.name, callee.arity, len(args), span=expr.span)

        if isinstance(callee, Builtin):
            return callee.impl(*args)
        return self._call_function(callee, args, expr.span)

    def _call_function(self, fn: Function, args: list[Any], span: SourceSpan) -> Any:
        limit = self.host.limits.max_call_depth
        if self._depth >= limit:
            raise CallDepthExceeded(limit, span=span)

        frame = fn.closure.child()
        for name, value in zip(fn.params, args):
            frame.declare(name, value)

        self._depth += 1
        logger.debug("call %s depth=%d", fn.name, self._depth)
        try:
            result = self.exec_program(fn.body, frame)
        finally:
            self._depth -= 1

        # Falling off the end of a body yields nil, not its last value.
        if isinstance(result, ReturnSignal):
            return result.value
        return None

    @staticmethod
    def _require_boolean(value: Any, context: str, span: SourceSpan) -> bool:
        kind = kind_of(value)
        if kind != KIND_BOOLEAN:
            raise TypeMismatch(
                f"'{context}' expects a Boolean but got {kind}.",
                span=span,
                operator=context,
                kinds=(kind,),
            )
        return value

    @staticmethod
    def _require_number(value: Any, context: str, span: SourceSpan) -> float:
        kind = kind_of(value)
        if kind != KIND_NUMBER:
            raise TypeMismatch(
                f"'{context}' expects a Number but got {kind}.",
                span=span,
                operator=context,
                kinds=(kind,),
            )
        return value


def _apply_numeric(op: str, left: float, right: float) -> Any:
    if op == "+":
        return left + right
    if op == "-":
        return left - right
    if op == "*":
        return left * right
    if op == "/":
        return _divide(left, right)
    if op == "%":
        # Truncated remainder, sign follows the dividend.
        if right == 0 or math.isinf(left):
            return math.nan
        return math.fmod(left, right)
    if op == ">":
        return left > right
    if op == ">=":
        return left >= right
    if op == "<":
        return left < right
    return left <= right


def _divide(left: float, right: float) -> float:
    if right != 0:
        return left / right
    if left == 0 or math.isnan(left):
        return math.nan
    return math.copysign(math.inf, left) * math.copysign(1.0, right)
