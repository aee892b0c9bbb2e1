"""Request/response service layer for embedding hosts.

Hosts hand over source text and get back either the final value or a
structured diagnostic, without touching the pipeline modules directly.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from kotoba.errors import KotobaError, ServiceError
from kotoba.host import ExecutionLimits
from kotoba.main import explain_source, parse_source, run_source
from kotoba.values import kind_of, to_json


logger = logging.getLogger(__name__)

SERVICE_VERSION = "0.1.0"


def run_request(payload: dict[str, Any]) -> dict[str, Any]:
    """Run source payload and return its final value and printed output."""
    source, filename = _resolve_source_payload(payload)
    limits = _resolve_limits(payload)
    result = run_source(source, filename=filename, limits=limits)
    return {
        "value": to_json(result.value),
        "kind": kind_of(result.value),
        "output": result.output,
    }


def check_request(payload: dict[str, Any]) -> dict[str, Any]:
    """Validate that source payload parses."""
    source, filename = _resolve_source_payload(payload)
    program = parse_source(source, filename=filename)
    return {"ok": True, "statements": len(program.statements)}


def explain_request(payload: dict[str, Any]) -> dict[str, Any]:
    """Return tokens and AST for given payload."""
    source, filename = _resolve_source_payload(payload)
    return explain_source(source, filename=filename)


def capabilities_request(payload: dict[str, Any] | None = None) -> dict[str, Any]:
    """Return service capability metadata for automation clients."""
    return {
        "service": "kotoba",
        "version": SERVICE_VERSION,
        "methods": sorted(_METHODS.keys()),
        "builtins": ["print"],
    }


_METHODS: dict[str, Callable[[dict[str, Any]], dict[str, Any]]] = {
    "run": run_request,
    "check": check_request,
    "explain": explain_request,
    "capabilities": capabilities_request,
}


def dispatch(method: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
    """Dispatch a method call for integration adapters."""
    fn = _METHODS.get(method)
    if fn is None:
        raise ServiceError(
            code="SRV001",
            message=f"Unknown service method '{method}'.",
            span=None,
            hint=f"Available methods: {', '.join(sorted(_METHODS.keys()))}",
        )
    return fn(payload or {})


def safe_dispatch(method: str, payload: dict[str, Any] | None = None) -> tuple[bool, dict[str, Any]]:
    """Dispatch method and normalize Kotoba errors into diagnostic payloads."""
    try:
        return True, dispatch(method, payload)
    except KotobaError as err:
        logger.debug("request %s failed: %s", method, err)
        return False, {"error": err.to_diagnostic().to_dict()}


def _resolve_source_payload(payload: dict[str, Any]) -> tuple[str, str]:
    source = payload.get("source")
    if source is None:
        raise ServiceError(
            code="SRV002",
            message="Missing source input.",
            span=None,
            hint="Provide 'source' with the program text.",
        )
    return str(source), str(payload.get("filename", "<inline>"))


def _resolve_limits(payload: dict[str, Any]) -> ExecutionLimits:
    defaults = ExecutionLimits()
    try:
        max_steps = payload.get("max_steps")
        time_limit = payload.get("time_limit")
        return ExecutionLimits(
            max_steps=None if max_steps is None else int(max_steps),
            time_limit=None if time_limit is None else float(time_limit),
            max_call_depth=int(payload.get("max_call_depth", defaults.max_call_depth)),
        )
    except (TypeError, ValueError) as exc:
        raise ServiceError(
            code="SRV003",
            message=f"Invalid execution limit: {exc}",
            span=None,
            hint="Use integers for max_steps/max_call_depth and seconds for time_limit.",
        ) from exc
