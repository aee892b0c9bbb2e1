"""Kotoba parser producing a typed AST.

Scopes are delimited by punctuation rather than braces: ``:`` after a block
header opens a child scope, ``,`` continues the current one and ``;`` closes
it. An ``else`` closes an ``if`` then-branch and opens the else-branch. The
outermost program is closed by end of input.
"""

from __future__ import annotations

import sys
from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass

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
from kotoba.errors import ParseError
from kotoba.source_map import SourceSpan, merge_spans
from kotoba.tokens import Token, TokenType


_SCOPE_END = frozenset({TokenType.SEMICOLON, TokenType.ELSE, TokenType.EOF})
_BLOCK_STMTS = (IfStmt, WhileStmt, FnStmt)
# Python frames needed to parse a few hundred levels of nested scopes or parentheses.
_RECURSION_LIMIT = 8000


@dataclass
class Parser:
    """Recursive-descent parser over a lazily consumed token iterable."""

    tokens: Iterable[Token]

    def __post_init__(self) -> None:
        self._stream = iter(self.tokens)
        self._buffer: deque[Token] = deque()
        self._prev: Token | None = None
        self._eof: Token | None = None

    def parse_program(self) -> Program:
        """Parse the full token stream into the outermost program."""
        start = self._peek()
        previous_limit = sys.getrecursionlimit()
        sys.setrecursionlimit(max(previous_limit, _RECURSION_LIMIT))
        try:
            statements = self._parse_statements()
        except RecursionError as exc:
            raise ParseError(
                code="SYN004",
                message="Program nesting is too deep to parse.",
                span=self._peek().span,
                hint="Split deeply nested scopes or expressions into functions.",
            ) from exc
        finally:
            sys.setrecursionlimit(previous_limit)

        end = self._peek()
        if end.token_type == TokenType.SEMICOLON:
            raise self._unexpected("end of input", hint="This ';' has no open scope to close.")
        if end.token_type == TokenType.ELSE:
            raise self._unexpected("end of input", hint="'else' must directly follow the body of an 'if'.")
        return Program(span=merge_spans(start.span, end.span), statements=statements)

    # Scope discipline

    def _parse_block(self, header: Token, allow_else: bool = False) -> tuple[Program, Token]:
        """Parse ``: stmts ;`` for a block header and return the body with its closer.

        With `allow_else` the body may also be closed by ``else``, which is
        consumed and returned as the closer.
        """
        colon = self._consume(TokenType.COLON, f"':' to open the '{header.value}' scope")
        statements = self._parse_statements()

        closer = self._peek()
        if closer.token_type == TokenType.SEMICOLON or (closer.token_type == TokenType.ELSE and allow_else):
            self._advance()
            return Program(span=merge_spans(colon.span, closer.span), statements=statements), closer
        if closer.token_type == TokenType.EOF:
            raise ParseError(
                code="SYN003",
                message=(
                    f"Unterminated scope: the '{header.value}' scope opened at "
                    f"{colon.span.line}:{colon.span.column} is never closed."
                ),
                span=closer.span,
                hint="Close the scope with ';'.",
                expected="';'",
                found=closer.describe(),
            )
        raise self._unexpected("';'", hint="Only an 'if' body can be closed by 'else'.")

    def _parse_statements(self) -> list[Stmt]:
        statements: list[Stmt] = []
        if self._peek().token_type in _SCOPE_END:
            return statements

        while True:
            stmt = self._parse_statement()
            statements.append(stmt)

            if self._match(TokenType.COMMA):
                if self._peek().token_type in _SCOPE_END:
                    raise self._unexpected("a statement after ','", hint="Commas separate statements; drop the trailing ','.")
                continue
            if self._peek().token_type in _SCOPE_END:
                return statements
            if isinstance(stmt, _BLOCK_STMTS):
                continue
            raise self._unexpected("',' or the end of the scope", hint="Chain statements in one scope with ','.")

    # Statements

    def _parse_statement(self) -> Stmt:
        if self._match(TokenType.IF):
            return self._parse_if_stmt(self._previous())
        if self._match(TokenType.WHILE):
            return self._parse_while_stmt(self._previous())
        if self._match(TokenType.FN):
            return self._parse_fn_stmt(self._previous())
        if self._match(TokenType.RET):
            return self._parse_ret_stmt(self._previous())
        if self._match(TokenType.NONLOCAL):
            return self._parse_assign_stmt(self._previous(), nonlocal_=True)
        if self._check(TokenType.IDENT) and self._peek(1).token_type == TokenType.ASSIGN:
            return self._parse_assign_stmt(self._peek(), nonlocal_=False)

        expr = self._parse_expression()
        return ExpressionStmt(span=expr.span, expr=expr)

    def _parse_if_stmt(self, if_token: Token) -> IfStmt:
        condition = self._parse_expression()
        then_branch, closer = self._parse_block(if_token, allow_else=True)

        else_branch: Program | None = None
        end_span = closer.span
        if closer.token_type == TokenType.ELSE:
            else_branch, else_closer = self._parse_block(closer)
            end_span = else_closer.span

        return IfStmt(
            span=merge_spans(if_token.span, end_span),
            condition=condition,
            then_branch=then_branch,
            else_branch=else_branch,
        )

    def _parse_while_stmt(self, while_token: Token) -> WhileStmt:
        condition = self._parse_expression()
        body, closer = self._parse_block(while_token)
        return WhileStmt(span=merge_spans(while_token.span, closer.span), condition=condition, body=body)

    def _parse_fn_stmt(self, fn_token: Token) -> FnStmt:
        name_tok = self._consume(TokenType.IDENT, "a function name after 'fn'")
        self._consume(TokenType.LPAR, "'(' to start the parameter list")
        params: list[str] = []

        if not self._check(TokenType.RPAR):
            while True:
                param = self._consume(TokenType.IDENT, "a parameter name")
                if param.value in params:
                    raise ParseError(
                        code="SYN001",
                        message=f"Duplicate parameter '{param.value}' in function '{name_tok.value}'.",
                        span=param.span,
                        hint="Give every parameter a distinct name.",
                        expected="a new parameter name",
                        found=param.describe(),
                    )
                params.append(param.value)
                if not self._match(TokenType.COMMA):
                    break

        self._consume(TokenType.RPAR, "')' to close the parameter list")
        body, closer = self._parse_block(fn_token)
        return FnStmt(span=merge_spans(fn_token.span, closer.span), name=name_tok.value, params=params, body=body)

    def _parse_ret_stmt(self, ret_token: Token) -> RetStmt:
        if self._check(TokenType.COMMA) or self._peek().token_type in _SCOPE_END:
            return RetStmt(span=ret_token.span, value=LiteralExpr(span=ret_token.span, value=None))
        value = self._parse_expression()
        return RetStmt(span=merge_spans(ret_token.span, value.span), value=value)

    def _parse_assign_stmt(self, start: Token, nonlocal_: bool) -> AssignStmt:
        name_tok = self._consume(TokenType.IDENT, "a variable name")
        self._consume(TokenType.ASSIGN, "'=' in assignment")
        value = self._parse_expression()
        return AssignStmt(
            span=merge_spans(start.span, value.span),
            name=name_tok.value,
            value=value,
            nonlocal_=nonlocal_,
        )

    # Expressions, loosest binding first

    def _parse_expression(self) -> Expr:
        return self._parse_disjunction()

    def _parse_disjunction(self) -> Expr:
        return self._parse_binary(self._parse_conjunction, TokenType.OR)

    def _parse_conjunction(self) -> Expr:
        return self._parse_binary(self._parse_equality, TokenType.AND)

    def _parse_equality(self) -> Expr:
        return self._parse_binary(self._parse_comparison, TokenType.EQ, TokenType.NE)

    def _parse_comparison(self) -> Expr:
        return self._parse_binary(self._parse_modulo, TokenType.GT, TokenType.GE, TokenType.LT, TokenType.LE)

    def _parse_modulo(self) -> Expr:
        return self._parse_binary(self._parse_addition, TokenType.PERCENT)

    def _parse_addition(self) -> Expr:
        return self._parse_binary(self._parse_multiplication, TokenType.PLUS, TokenType.MINUS)

    def _parse_multiplication(self) -> Expr:
        return self._parse_binary(self._parse_unary, TokenType.STAR, TokenType.SLASH)

    def _parse_binary(self, operand: Callable[[], Expr], *operators: TokenType) -> Expr:
        expr = operand()
        while self._match(*operators):
            op = self._previous()
            right = operand()
            expr = BinaryExpr(span=merge_spans(expr.span, right.span), left=expr, operator=op.value, right=right)
        return expr

    def _parse_unary(self) -> Expr:
        if self._match(TokenType.NOT, TokenType.MINUS):
            op = self._previous()
            operand = self._parse_unary()
            return UnaryExpr(span=merge_spans(op.span, operand.span), operator=op.value, operand=operand)
        return self._parse_call()

    def _parse_call(self) -> Expr:
        expr = self._parse_primary()
        while self._match(TokenType.LPAR):
            args: list[Expr] = []
            if not self._check(TokenType.RPAR):
                while True:
                    args.append(self._parse_expression())
                    if not self._match(TokenType.COMMA):
                        break
            rpar = self._consume(TokenType.RPAR, "')' after call arguments")
            expr = CallExpr(span=merge_spans(expr.span, rpar.span), callee=expr, args=args)
        return expr

    def _parse_primary(self) -> Expr:
        if self._match(TokenType.NUMBER):
            tok = self._previous()
            return LiteralExpr(span=tok.span, value=float(tok.value))

        if self._match(TokenType.STRING):
            tok = self._previous()
            return LiteralExpr(span=tok.span, value=tok.value)

        if self._match(TokenType.TRUE, TokenType.FALSE):
            tok = self._previous()
            return LiteralExpr(span=tok.span, value=tok.token_type == TokenType.TRUE)

        if self._match(TokenType.NIL):
            return LiteralExpr(span=self._previous().span, value=None)

        if self._match(TokenType.IDENT):
            tok = self._previous()
            return IdentifierExpr(span=tok.span, name=tok.value)

        if self._match(TokenType.LPAR):
            lpar = self._previous()
            expr = self._parse_expression()
            rpar = self._consume(TokenType.RPAR, "')' to close grouped expression")
            expr.span = merge_spans(lpar.span, rpar.span)
            return expr

        raise self._unexpected("an expression", hint="Use literals, identifiers, calls, or parenthesized expressions.")

    # Token helpers

    def _unexpected(self, expected: str, hint: str = "") -> ParseError:
        tok = self._peek()
        if tok.token_type == TokenType.INVALID:
            if tok.value.startswith('"'):
                message = "Unterminated string literal."
                hint = "Close the string with a double quote."
            else:
                message = f"Unrecognized character {tok.value!r}."
                hint = "Remove the character or move it inside a string literal."
            return ParseError(
                code="SYN002",
                message=message,
                span=tok.span,
                hint=hint,
                expected=expected,
                found=tok.describe(),
            )
        return ParseError(
            code="SYN001",
            message=f"Expected {expected}, found {tok.describe()}.",
            span=tok.span,
            hint=hint,
            expected=expected,
            found=tok.describe(),
        )

    def _consume(self, token_type: TokenType, expected: str) -> Token:
        if self._check(token_type):
            return self._advance()
        raise self._unexpected(expected)

    def _match(self, *token_types: TokenType) -> bool:
        for token_type in token_types:
            if self._check(token_type):
                self._advance()
                return True
        return False

    def _check(self, token_type: TokenType) -> bool:
        return self._peek().token_type == token_type

    def _advance(self) -> Token:
        tok = self._peek()
        if tok.token_type != TokenType.EOF:
            self._buffer.popleft()
        self._prev = tok
        return tok

    def _peek(self, offset: int = 0) -> Token:
        while len(self._buffer) <= offset:
            if self._eof is not None:
                return self._eof
            tok = next(self._stream, None)
            if tok is None:
                tok = Token(token_type=TokenType.EOF, value="", span=self._end_span())
            if tok.token_type == TokenType.EOF:
                self._eof = tok
            self._buffer.append(tok)
        return self._buffer[offset]

    def _previous(self) -> Token:
        assert self._prev is not None
        return self._prev

    def _end_span(self) -> SourceSpan:
        last = self._buffer[-1] if self._buffer else self._prev
        if last is None:
            return SourceSpan(file="<input>", line=1, column=1, end_line=1, end_column=1)
        span = last.span
        return SourceSpan(
            file=span.file,
            line=span.end_line,
            column=span.end_column,
            end_line=span.end_line,
            end_column=span.end_column,
            offset=span.offset + len(last.value),
        )


def parse(tokens: Iterable[Token]) -> Program:
    """Parse a token iterable into the outermost `Program`."""
    return Parser(tokens).parse_program()
