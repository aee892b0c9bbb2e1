"""Structured diagnostics and exception hierarchy for Kotoba."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from kotoba.source_map import SourceSpan


@dataclass(frozen=True)
class Diagnostic:
    """Machine-readable diagnostic emitted by any pipeline phase."""

    code: str
    message: str
    span: SourceSpan | None = None
    hint: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialize the diagnostic for JSON output."""
        payload: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "hint": self.hint,
        }
        if self.span is not None:
            payload["span"] = self.span.to_dict()
        return payload


class KotobaError(Exception):
    """Base error carrying a code and optional source span."""

    def __init__(self, code: str, message: str, span: SourceSpan | None = None, hint: str = "") -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.span = span
        self.hint = hint

    def to_diagnostic(self) -> Diagnostic:
        """Convert exception into serializable diagnostic."""
        return Diagnostic(code=self.code, message=self.message, span=self.span, hint=self.hint)

    def __str__(self) -> str:
        if self.span is None:
            return f"[{self.code}] {self.message}"
        return (
            f"[{self.code}] {self.message} "
            f"({self.span.file}:{self.span.line}:{self.span.column})"
        )


class ParseError(KotobaError):
    """Raised by lexing and parsing failures; parsing stops at the first one."""

    def __init__(
        self,
        code: str,
        message: str,
        span: SourceSpan | None = None,
        hint: str = "",
        *,
        expected: str = "",
        found: str = "",
    ) -> None:
        super().__init__(code, message, span=span, hint=hint)
        self.expected = expected
        self.found = found


class EvalError(KotobaError):
    """Base class for errors raised while evaluating a program."""


class TypeMismatch(EvalError):
    """An operator or condition received a value of the wrong kind."""

    def __init__(
        self,
        message: str,
        span: SourceSpan | None = None,
        *,
        operator: str = "",
        kinds: tuple[str, ...] = (),
    ) -> None:
        super().__init__("RUN001", message, span=span, hint="Kotoba never converts between value kinds implicitly.")
        self.operator = operator
        self.kinds = kinds


class NotCallable(TypeMismatch):
    """A call expression's callee is not a function."""

    def __init__(self, kind: str, span: SourceSpan | None = None) -> None:
        super().__init__(f"Value of kind {kind} is not callable.", span=span, operator="()", kinds=(kind,))
        self.code = "RUN002"
        self.kind = kind


class UndefinedVariable(EvalError):
    """A name was looked up, or assigned with `nonlocal`, without a binding."""

    def __init__(self, name: str, span: SourceSpan | None = None, *, nonlocal_: bool = False) -> None:
        if nonlocal_:
            message = f"No enclosing scope defines '{name}' for nonlocal assignment."
            hint = "Assign the variable in an enclosing scope first, or drop 'nonlocal' to create a local."
        else:
            message = f"Undefined variable '{name}'."
            hint = "Assign the variable or declare the function before using it."
        super().__init__("RUN003", message, span=span, hint=hint)
        self.name = name


class ArityError(EvalError):
    """A function was called with the wrong number of arguments."""

    def __init__(self, name: str, expected: int, got: int, span: SourceSpan | None = None) -> None:
        super().__init__(
            "RUN004",
            f"Function '{name}' expects {expected} argument(s) but got {got}.",
            span=span,
        )
        self.name = name
        self.expected = expected
        self.got = got


class TopLevelReturn(EvalError):
    """`ret` fired outside any function call."""

    def __init__(self, span: SourceSpan | None = None) -> None:
        super().__init__(
            "RUN005",
            "'ret' used outside of a function.",
            span=span,
            hint="The outermost program yields the value of its last statement.",
        )


class CallDepthExceeded(EvalError):
    """Nested calls went deeper than the configured limit."""

    def __init__(self, limit: int, span: SourceSpan | None = None) -> None:
        super().__init__(
            "RUN006",
            f"Maximum call depth of {limit} exceeded.",
            span=span,
            hint="Check for unbounded recursion or raise ExecutionLimits.max_call_depth.",
        )
        self.limit = limit


class HostAbort(EvalError):
    """Raised by the embedding host between statements to stop evaluation."""

    def __init__(self, code: str, reason: str, span: SourceSpan | None = None) -> None:
        super().__init__(code, reason, span=span, hint="The host's execution budget was exhausted.")
        self.reason = reason


class ServiceError(KotobaError):
    """Raised by malformed service requests."""


def format_diagnostic(diag: Diagnostic) -> str:
    """Format diagnostic into a stable human-readable line."""
    if diag.span is None:
        suffix = ""
    else:
        suffix = f" {diag.span.file}:{diag.span.line}:{diag.span.column}"
    hint = f" Hint: {diag.hint}" if diag.hint else ""
    return f"{diag.code}{suffix}: {diag.message}{hint}"
