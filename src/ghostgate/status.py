"""Status and metrics rendering for the /ghostgate command.

Renders a read-only snapshot of the session as fixed-width boxed text.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Optional

from .state import ActivationState, TokenMetrics

INNER_WIDTH = 62
NONE_MARKER = "(none)"


@dataclass
class StatusReport:
    """Snapshot of one session for display."""

    runtime: str
    registry: str
    uptime: str
    stored_tools: int
    active_tools: int
    active_tool_names: list[str] = field(default_factory=list)
    last_status: str = ""
    metrics: Optional[TokenMetrics] = None


def format_uptime(seconds: float) -> str:
    """Format elapsed seconds as e.g. ``1d 2h 3m``, ``2h 3m 4s``, ``3m 4s`` or ``4s``."""
    seconds = max(0, int(seconds))
    minutes, secs = divmod(seconds, 60)
    hours, mins = divmod(minutes, 60)
    days, hrs = divmod(hours, 24)

    if days > 0:
        return f"{days}d {hrs}h {mins}m"
    if hours > 0:
        return f"{hours}h {mins}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def generate_status_report(
    state: ActivationState,
    registry_path: str,
    stored_tool_count: int,
    started_at: float,
    now: Optional[float] = None,
    show_metrics: bool = True,
) -> StatusReport:
    """Build a snapshot.

    Args:
        state: Session state (not modified)
        registry_path: Registry directory to display
        stored_tool_count: Number of catalog entries
        started_at: Session start, ``time.monotonic()`` seconds
        now: Current ``time.monotonic()`` (default: now)
        show_metrics: Include the metrics block
    """
    now = time.monotonic() if now is None else now
    names = state.active_tools
    return StatusReport(
        runtime="In-Process",
        registry=registry_path,
        uptime=format_uptime(now - started_at),
        stored_tools=stored_tool_count,
        active_tools=len(names),
        active_tool_names=names,
        last_status=state.last_status,
        metrics=state.metrics if show_metrics else None,
    )


def _fit(text: str, width: int = INNER_WIDTH) -> str:
    return text[:width].ljust(width)


def _border(left: str, right: str) -> str:
    return left + "═" * INNER_WIDTH + right


def _title(text: str) -> str:
    return "║" + text.center(INNER_WIDTH) + "║"


def _row(label: str, value: object, indent: int = 1, label_width: int = 18) -> str:
    return "║" + _fit(" " * indent + f"{label:<{label_width}}" + str(value)) + "║"


def _section(text: str) -> str:
    return "║" + _fit(" " + text) + "║"


def _metric_rows(metrics: TokenMetrics, indent: int, label_width: int) -> list[str]:
    return [
        _row("Tools Activated:", metrics.tools_activated, indent, label_width),
        _row("Schemas Injected:", metrics.schemas_injected, indent, label_width),
        _row("Est. Tokens Saved:", metrics.estimated_tokens_saved, indent, label_width),
        _row("Calls Intercepted:", metrics.tool_calls_intercepted, indent, label_width),
        _row("Context Prunes:", metrics.context_prunes, indent, label_width),
    ]


def format_status_output(report: StatusReport) -> str:
    """Render the status box."""
    names = ", ".join(report.active_tool_names) or NONE_MARKER
    lines = [
        _border("╔", "╗"),
        _title("GhostGate Status"),
        _border("╠", "╣"),
        _row("Runtime:", report.runtime),
        _row("Registry:", report.registry),
        _row("Uptime:", report.uptime),
        _row("State:", report.last_status or NONE_MARKER),
        _border("╠", "╣"),
        _section("Tool Registry"),
        _row("Stored Tools:", report.stored_tools, indent=3, label_width=16),
        _row("Active Tools:", report.active_tools, indent=3, label_width=16),
        _row("Active Names:", names, indent=3, label_width=16),
    ]
    if report.metrics is not None:
        lines.append(_border("╠", "╣"))
        lines.append(_section("Token Metrics"))
        lines.extend(_metric_rows(report.metrics, indent=3, label_width=20))
    lines.append(_border("╚", "╝"))
    return "\n".join(lines)


def format_metrics_output(metrics: TokenMetrics) -> str:
    """Render the metrics box, including the last reset time."""
    lines = [
        _border("╔", "╗"),
        _title("GhostGate Token Metrics"),
        _border("╠", "╣"),
        *_metric_rows(metrics, indent=1, label_width=21),
        _row("Last Reset:", metrics.last_reset.isoformat(timespec="seconds"), 1, 21),
        _border("╚", "╝"),
    ]
    return "\n".join(lines)


def format_metrics_lines(metrics: TokenMetrics) -> str:
    """Plain one-counter-per-line metrics, for the model-facing tool."""
    return "\n".join(
        [
            f"Tools Activated: {metrics.tools_activated}",
            f"Schemas Injected: {metrics.schemas_injected}",
            f"Est. Tokens Saved: {metrics.estimated_tokens_saved}",
            f"Calls Intercepted: {metrics.tool_calls_intercepted}",
            f"Context Prunes: {metrics.context_prunes}",
        ]
    )


__all__ = [
    "StatusReport",
    "format_uptime",
    "generate_status_report",
    "format_status_output",
    "format_metrics_output",
    "format_metrics_lines",
]
