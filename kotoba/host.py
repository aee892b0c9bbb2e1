"""Host interface: the `print` primitive and embedding-imposed budgets."""

from __future__ import annotations

import logging
import sys
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TextIO

from kotoba.environment import Environment
from kotoba.errors import HostAbort
from kotoba.source_map import SourceSpan
from kotoba.values import Builtin, render


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionLimits:
    """Budgets the host enforces while a program runs.

    `max_steps` counts executed statements and `time_limit` is wall-clock
    seconds; either may be None for no limit.
    """

    max_steps: int | None = None
    time_limit: float | None = None
    max_call_depth: int = 500


class Host:
    """Embedding host: owns the output sink and checks budgets between statements."""

    def __init__(
        self,
        output: TextIO | None = None,
        limits: ExecutionLimits | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._output = output
        self.limits = limits or ExecutionLimits()
        self.clock = clock
        self.steps = 0
        self._deadline: float | None = None

    @property
    def output(self) -> TextIO:
        # Resolved lazily so redirected stdout is honoured.
        return self._output if self._output is not None else sys.stdout

    def start(self) -> None:
        """Reset the budgets at the beginning of a top-level evaluation."""
        self.steps = 0
        if self.limits.time_limit is None:
            self._deadline = None
        else:
            self._deadline = self.clock() + self.limits.time_limit

    def before_statement(self, span: SourceSpan | None = None) -> None:
        """Called by the evaluator before each statement; raises `HostAbort` when over budget."""
        self.steps += 1
        max_steps = self.limits.max_steps
        if max_steps is not None and self.steps > max_steps:
            logger.debug("aborting after %d statements", max_steps)
            raise HostAbort("HOST001", f"Step budget of {max_steps} statements exhausted.", span=span)
        if self._deadline is not None and self.clock() > self._deadline:
            logger.debug("aborting after %.3fs time limit", self.limits.time_limit)
            raise HostAbort("HOST002", f"Time limit of {self.limits.time_limit}s exceeded.", span=span)

    def write(self, text: str) -> None:
        self.output.write(text)

    def print_value(self, value: Any) -> None:
        """The `print` primitive: write the rendered value, return nil."""
        self.write(render(value))
        return None


def make_globals(host: Host) -> Environment:
    """Build a root frame exposing the host primitives."""
    env = Environment()
    env.declare("print", Builtin(name="print", arity=1, impl=host.print_value))
    return env
