"""Token definitions for Kotoba lexical analysis."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from kotoba.source_map import SourceSpan


class TokenType(Enum):
    """Finite token categories used by lexer and parser."""

    IDENT = auto()
    NUMBER = auto()
    STRING = auto()

    IF = auto()
    ELSE = auto()
    WHILE = auto()
    FN = auto()
    RET = auto()
    NONLOCAL = auto()
    AND = auto()
    OR = auto()

    TRUE = auto()
    FALSE = auto()
    NIL = auto()

    COMMA = auto()  # continues the current scope
    COLON = auto()  # opens a child scope
    SEMICOLON = auto()  # closes the current scope
    LPAR = auto()
    RPAR = auto()

    ASSIGN = auto()  # =
    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()
    PERCENT = auto()

    EQ = auto()  # ==
    NE = auto()  # !=
    LT = auto()
    LE = auto()
    GT = auto()
    GE = auto()
    NOT = auto()  # !

    INVALID = auto()
    EOF = auto()


KEYWORDS: dict[str, TokenType] = {
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "while": TokenType.WHILE,
    "fn": TokenType.FN,
    "ret": TokenType.RET,
    "nonlocal": TokenType.NONLOCAL,
    "and": TokenType.AND,
    "or": TokenType.OR,
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
    "nil": TokenType.NIL,
}


@dataclass(frozen=True)
class Token:
    """A single lexical token with original source span."""

    token_type: TokenType
    value: str
    span: SourceSpan

    def describe(self) -> str:
        """Human-readable form used in syntax error messages."""
        if self.token_type == TokenType.EOF:
            return "end of input"
        if self.token_type == TokenType.STRING:
            return f"string {self.value!r}"
        return repr(self.value)

    def __str__(self) -> str:
        return f"{self.token_type.name}({self.value!r})@{self.span.line}:{self.span.column}"
