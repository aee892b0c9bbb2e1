"""Scope-chain frames for the Kotoba evaluator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from kotoba.errors import UndefinedVariable
from kotoba.source_map import SourceSpan


@dataclass(eq=False)
class Environment:
    """One frame of variable bindings with a link to its lexical parent.

    Plain assignment always writes the current frame, shadowing any outer
    binding; only `assign_nonlocal` reaches into enclosing frames.
    """

    parent: "Environment | None" = None
    bindings: dict[str, Any] = field(default_factory=dict)

    def child(self) -> "Environment":
        """Create a new frame whose parent is this one."""
        return Environment(parent=self)

    def declare(self, name: str, value: Any) -> None:
        """Bind `name` in this frame, shadowing enclosing bindings."""
        self.bindings[name] = value

    def assign_local(self, name: str, value: Any) -> None:
        """Update the binding in this frame, creating it if absent."""
        self.bindings[name] = value

    def assign_nonlocal(self, name: str, value: Any, span: SourceSpan | None = None) -> None:
        """Mutate the nearest frame, from this one outward, that defines `name`."""
        frame = self._find(name)
        if frame is None:
            raise UndefinedVariable(name, span=span, nonlocal_=True)
        frame.bindings[name] = value

    def lookup(self, name: str, span: SourceSpan | None = None) -> Any:
        """Resolve `name` in this frame or the nearest enclosing one."""
        frame = self._find(name)
        if frame is None:
            raise UndefinedVariable(name, span=span)
        return frame.bindings[name]

    def defines(self, name: str) -> bool:
        """True when this frame itself (not a parent) binds `name`."""
        return name in self.bindings

    def depth(self) -> int:
        """Number of frames between this one and the root."""
        count = 0
        frame = self.parent
        while frame is not None:
            count += 1
            frame = frame.parent
        return count

    def _find(self, name: str) -> "Environment | None":
        frame: Environment | None = self
        while frame is not None:
            if name in frame.bindings:
                return frame
            frame = frame.parent
        return None
