"""Source location utilities shared by the lexer, parser and diagnostics."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class SourceSpan:
    """Represents a source range in 1-based line/column coordinates."""

    file: str
    line: int
    column: int
    end_line: int
    end_column: int
    offset: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Serialize the span to a JSON-compatible mapping."""
        return {
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "end_line": self.end_line,
            "end_column": self.end_column,
            "offset": self.offset,
        }


def merge_spans(start: SourceSpan, end: SourceSpan) -> SourceSpan:
    """Return the span running from the start of `start` to the end of `end`."""
    return SourceSpan(
        file=start.file,
        line=start.line,
        column=start.column,
        end_line=end.end_line,
        end_column=end.end_column,
        offset=start.offset,
    )
