"""Kotoba language front-end and evaluator."""

from __future__ import annotations

import logging
from typing import Any


logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "RunResult",
    "dispatch_service",
    "explain_source",
    "parse_source",
    "run_source",
]


def parse_source(*args: Any, **kwargs: Any):
    from kotoba.main import parse_source as _parse_source

    return _parse_source(*args, **kwargs)


def run_source(*args: Any, **kwargs: Any):
    from kotoba.main import run_source as _run_source

    return _run_source(*args, **kwargs)


def explain_source(*args: Any, **kwargs: Any):
    from kotoba.main import explain_source as _explain_source

    return _explain_source(*args, **kwargs)


def dispatch_service(*args: Any, **kwargs: Any):
    from kotoba.service import dispatch as _dispatch

    return _dispatch(*args, **kwargs)


def __getattr__(name: str):
    if name == "RunResult":
        from kotoba.main import RunResult

        return RunResult
    raise AttributeError(name)
