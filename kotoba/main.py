"""Top-level pipeline orchestration for Kotoba."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Any, TextIO

from kotoba.ast import Program, ast_to_dict
from kotoba.environment import Environment
from kotoba.host import ExecutionLimits, Host, make_globals
from kotoba.interpreter import Interpreter
from kotoba.lexer import tokenize
from kotoba.parser import parse


logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Outcome of running one translation unit."""

    value: Any
    output: str
    program: Program


def parse_source(source: str, *, filename: str = "<input>") -> Program:
    """Lex and parse source text into the outermost program."""
    program = parse(tokenize(source, filename=filename))
    logger.debug("parsed %s: %d top-level statement(s)", filename, len(program.statements))
    return program


def run_source(
    source: str,
    *,
    filename: str = "<input>",
    host: Host | None = None,
    limits: ExecutionLimits | None = None,
    output: TextIO | None = None,
    globals_env: Environment | None = None,
) -> RunResult:
    """Parse and evaluate source text, returning the final value and printed output.

    Output goes to `output` when given, otherwise it is captured into
    `RunResult.output`. Passing a ready `host` overrides `limits` and
    `output`. Every call gets a fresh root frame unless `globals_env` is given.
    """
    buffer: io.StringIO | None = None
    if host is None:
        if output is None:
            buffer = io.StringIO()
            output = buffer
        host = Host(output=output, limits=limits)

    program = parse_source(source, filename=filename)
    env = globals_env if globals_env is not None else make_globals(host)
    interpreter = Interpreter(host)
    value = interpreter.evaluate(program, env)
    logger.debug("evaluated %s in %d step(s)", filename, host.steps)

    captured = buffer.getvalue() if buffer is not None else ""
    return RunResult(value=value, output=captured, program=program)


def explain_source(source: str, *, filename: str = "<input>") -> dict[str, Any]:
    """Return a JSON-compatible payload with the token stream and AST."""
    tokens = tokenize(source, filename=filename)
    program = parse(tokens)
    return {
        "tokens": [
            {"type": tok.token_type.name, "value": tok.value, "span": tok.span.to_dict()}
            for tok in tokens
        ],
        "ast": ast_to_dict(program),
    }
