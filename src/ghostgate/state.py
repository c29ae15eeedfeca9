"""Per-session activation state and token metrics.

A tool name is either inactive (default) or active (its schema is injected
into the system prompt). Transitions:

- activate: name must be in a fresh catalog read; costs the schema's
  estimated size against ``estimated_tokens_saved``
- purge: deactivates everything; credits AVERAGE_SCHEMA_TOKENS per tool
- reset: fresh metrics, no active tools, empty audit trail

``estimated_tokens_saved`` is net savings against "every schema always
injected", so it goes negative when more has been activated than saved.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .errors import NotActivated, ToolNotFound
from .pruning import PruneResult, estimate_schema_tokens
from .registry import ToolDefinition

# Flat per-tool credit on purge; actual sizes are not re-read at that point
AVERAGE_SCHEMA_TOKENS = 200


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TokenMetrics:
    """Session counters. Replaced wholesale on reset."""

    tools_activated: int = 0
    schemas_injected: int = 0
    estimated_tokens_saved: int = 0
    tool_calls_intercepted: int = 0
    context_prunes: int = 0
    last_reset: datetime = field(default_factory=_utcnow)


@dataclass
class PrunedResultRecord:
    """Audit entry for one pruned tool result."""

    tool_name: str
    original: str
    pruned: str
    tokens_saved: int
    timestamp: datetime = field(default_factory=_utcnow)


class ActivationState:
    """Active tool names, metrics and the pruning audit trail for one session.

    Active names are plain strings. A name may outlive its definition on
    disk; readers skip names missing from the current catalog.
    """

    def __init__(self):
        # dict keeps activation order
        self._active: dict[str, None] = {}
        self.last_status = "initialized"
        self.metrics = TokenMetrics()
        self.pruned_results: dict[str, PrunedResultRecord] = {}
        self._prune_seq = 0

    @property
    def active_tools(self) -> list[str]:
        """Active tool names in activation order."""
        return list(self._active)

    def is_active(self, name: str) -> bool:
        return name in self._active

    def require_active(self, name: str) -> None:
        """Raises NotActivated unless ``name`` is active."""
        if name not in self._active:
            raise NotActivated(name)

    def activate(self, name: str, catalog: Mapping[str, ToolDefinition]) -> bool:
        """Activate ``name`` if the catalog has it.

        Activating an already-active tool changes nothing.

        Returns:
            True if the tool became active, False if it already was

        Raises:
            ToolNotFound: ``name`` is not in ``catalog``
        """
        definition = catalog.get(name)
        if definition is None:
            raise ToolNotFound(name)
        if name in self._active:
            return False

        self._active[name] = None
        self.metrics.tools_activated += 1
        self.metrics.estimated_tokens_saved -= estimate_schema_tokens(definition.to_schema())
        self.last_status = f"activated {name}"
        return True

    def purge(self) -> int:
        """Deactivate every tool.

        Returns:
            Number of tools removed
        """
        count = len(self._active)
        self.metrics.estimated_tokens_saved += count * AVERAGE_SCHEMA_TOKENS
        self._active.clear()
        self.metrics.context_prunes += 1
        self.last_status = "purged"
        return count

    def reset(self) -> None:
        """Rewind the session: fresh metrics, no active tools, no audit trail."""
        self._active.clear()
        self.metrics = TokenMetrics()
        self.pruned_results.clear()
        self.last_status = "reset"

    def record_interception(self) -> None:
        self.metrics.tool_calls_intercepted += 1

    def record_injection(self) -> None:
        self.metrics.schemas_injected += 1

    def record_prune(self, tool_name: str, original: str, result: PruneResult) -> PrunedResultRecord:
        """Credit a successful prune and keep an audit entry."""
        record = PrunedResultRecord(
            tool_name=tool_name,
            original=original,
            pruned=result.text,
            tokens_saved=result.tokens_saved,
        )
        self._prune_seq += 1
        self.pruned_results[f"{tool_name}-{time.time_ns()}-{self._prune_seq}"] = record
        self.metrics.estimated_tokens_saved += result.tokens_saved
        self.metrics.context_prunes += 1
        return record


__all__ = [
    "AVERAGE_SCHEMA_TOKENS",
    "TokenMetrics",
    "PrunedResultRecord",
    "ActivationState",
]
