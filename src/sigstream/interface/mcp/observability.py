"""Observability for the rules tools: one structured log line per call plus run counters.

Counters are per process and keyed by tool name. Synthesis tools also add
the rules they emitted, the groups they skipped, and empty runs.
"""

from __future__ import annotations

import logging
from typing import Any

_LOGGER = logging.getLogger("sigstream.mcp")

_COUNTERS = ("tool_calls", "errors", "rules_emitted", "groups_skipped", "empty_runs")
METRICS: dict[str, dict[str, int]] = {name: {} for name in _COUNTERS}


def _bump(counter: str, tool: str, amount: int = 1) -> None:
    METRICS[counter][tool] = METRICS[counter].get(tool, 0) + amount


def log_tool_invocation(
    tool: str,
    trace_id: str | None,
    latency_ms: float,
    error: str | None = None,
    extra: dict[str, Any] | None = None,
) -> None:
    """Log one tool call; errors go out at WARNING and are counted."""
    payload: dict[str, Any] = {
        "tool": tool,
        "trace_id": trace_id,
        "latency_ms": round(latency_ms, 2),
        **(extra or {}),
    }
    _bump("tool_calls", tool)
    if error:
        payload["error"] = error
        _bump("errors", tool)
        _LOGGER.warning("tool_invocation", extra=payload)
        return
    _LOGGER.info("tool_invocation", extra=payload)


def record_synthesis(tool: str, response: Any, latency_ms: float) -> None:
    """Log a finished synthesis call and fold its plan summary into the counters."""
    summary = dict(response.summary)
    _bump("rules_emitted", tool, summary.get("rules", 0))
    _bump("groups_skipped", tool, summary.get("skipped", 0))
    if response.status != "ok":
        _bump("empty_runs", tool)
    log_tool_invocation(
        tool, response.run_id, latency_ms, extra={"status": response.status, **summary}
    )


def metrics_snapshot() -> dict[str, dict[str, int]]:
    """Copy of the counters for the capabilities tool."""
    return {k: dict(v) for k, v in METRICS.items()}
