"""Kotoba lexical analyzer."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Final

from kotoba.source_map import SourceSpan
from kotoba.tokens import KEYWORDS, Token, TokenType


_DIGITS: Final[str] = "0123456789"

_SINGLE_CHAR_TOKENS: Final[dict[str, TokenType]] = {
    ",": TokenType.COMMA,
    ":": TokenType.COLON,
    ";": TokenType.SEMICOLON,
    "(": TokenType.LPAR,
    ")": TokenType.RPAR,
    "=": TokenType.ASSIGN,
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.STAR,
    "/": TokenType.SLASH,
    "%": TokenType.PERCENT,
    "<": TokenType.LT,
    ">": TokenType.GT,
    "!": TokenType.NOT,
}

_MULTI_CHAR_TOKENS: Final[dict[str, TokenType]] = {
    "==": TokenType.EQ,
    "!=": TokenType.NE,
    "<=": TokenType.LE,
    ">=": TokenType.GE,
}

_ESCAPES: Final[dict[str, str]] = {
    "n": "\n",
    "t": "\t",
    '"': '"',
    "\\": "\\",
}


class Lexer:
    """Converts Kotoba source text into a token stream.

    Lexing never fails: characters that cannot start a token, and string
    literals that run into the end of input, are emitted as ``INVALID`` tokens
    so the parser can report them with their position.
    """

    def __init__(self, source: str, filename: str = "<input>") -> None:
        self.source = source
        self.filename = filename
        self.index = 0
        self.line = 1
        self.column = 1

    def __iter__(self) -> Iterator[Token]:
        return self.tokens()

    def tokens(self) -> Iterator[Token]:
        """Lazily yield tokens up to and including the final ``EOF``."""
        while not self._is_eof():
            ch = self._peek()
            if ch in " \t\r\n":
                self._consume_whitespace()
                continue

            if ch == "/" and self._peek(1) == "/":
                self._consume_comment()
                continue

            if ch.isalpha() or ch == "_":
                yield self._lex_identifier()
                continue

            if ch in _DIGITS:
                yield self._lex_number()
                continue

            if ch == '"':
                yield self._lex_string()
                continue

            multi = self._lex_multi_char_operator()
            if multi is not None:
                yield multi
                continue

            start = self._mark()
            self._advance()
            token_type = _SINGLE_CHAR_TOKENS.get(ch, TokenType.INVALID)
            yield Token(token_type=token_type, value=ch, span=self._span_from(start))

        yield Token(token_type=TokenType.EOF, value="", span=self._span_from(self._mark()))

    def _lex_multi_char_operator(self) -> Token | None:
        pair = self._peek() + self._peek(1)
        token_type = _MULTI_CHAR_TOKENS.get(pair)
        if token_type is None:
            return None
        start = self._mark()
        self._advance()
        self._advance()
        return Token(token_type=token_type, value=pair, span=self._span_from(start))

    def _lex_identifier(self) -> Token:
        start = self._mark()
        value_chars: list[str] = []
        while not self._is_eof() and (self._peek().isalnum() or self._peek() == "_"):
            value_chars.append(self._advance())
        value = "".join(value_chars)
        token_type = KEYWORDS.get(value, TokenType.IDENT)
        return Token(token_type=token_type, value=value, span=self._span_from(start))

    def _lex_number(self) -> Token:
        start = self._mark()
        value_chars: list[str] = []
        seen_dot = False

        while not self._is_eof():
            ch = self._peek()
            if ch in _DIGITS:
                value_chars.append(self._advance())
                continue
            if ch == "." and not seen_dot and self._peek(1) in _DIGITS:
                seen_dot = True
                value_chars.append(self._advance())
                continue
            break

        return Token(token_type=TokenType.NUMBER, value="".join(value_chars), span=self._span_from(start))

    def _lex_string(self) -> Token:
        start = self._mark()
        self._advance()  # opening quote
        value_chars: list[str] = []

        while not self._is_eof():
            ch = self._advance()
            if ch == '"':
                return Token(token_type=TokenType.STRING, value="".join(value_chars), span=self._span_from(start))
            if ch == "\\":
                if self._is_eof():
                    break
                esc = self._advance()
                value_chars.append(_ESCAPES.get(esc, esc))
                continue
            value_chars.append(ch)

        text = self.source[start[0] : self.index]
        return Token(token_type=TokenType.INVALID, value=text, span=self._span_from(start))

    def _consume_whitespace(self) -> None:
        while not self._is_eof() and self._peek() in " \t\r\n":
            self._advance()

    def _consume_comment(self) -> None:
        while not self._is_eof() and self._peek() != "\n":
            self._advance()

    def _peek(self, offset: int = 0) -> str:
        idx = self.index + offset
        if idx >= len(self.source):
            return "\0"
        return self.source[idx]

    def _advance(self) -> str:
        ch = self.source[self.index]
        self.index += 1
        if ch == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _is_eof(self) -> bool:
        return self.index >= len(self.source)

    def _mark(self) -> tuple[int, int, int]:
        return self.index, self.line, self.column

    def _span_from(self, start: tuple[int, int, int]) -> SourceSpan:
        offset, line, column = start
        return SourceSpan(
            file=self.filename,
            line=line,
            column=column,
            end_line=self.line,
            end_column=self.column,
            offset=offset,
        )


class TokenStream:
    """Restartable lazy token sequence over one source text.

    Every iteration re-lexes the source from the beginning, so a stream can be
    handed to the parser and still be inspected afterwards.
    """

    def __init__(self, source: str, filename: str = "<input>") -> None:
        self.source = source
        self.filename = filename

    def __iter__(self) -> Iterator[Token]:
        return Lexer(self.source, filename=self.filename).tokens()


def tokenize(source: str, filename: str = "<input>") -> TokenStream:
    """Return the lazy token stream for `source`."""
    return TokenStream(source, filename=filename)
