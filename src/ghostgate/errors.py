"""GhostGate error types.

None of these ever reach the host. Each one is caught at the boundary of the
component that raises it and turned into a degraded state or a text result:

- ConfigParseError: one config layer is unreadable (the layer is skipped)
- RegistryUnavailable: registry directory missing or unreadable (empty catalog)
- ToolNotFound: name absent from a fresh catalog read
- NotActivated: action requested for a tool that was never activated
- BootstrapWriteFailure: a best-effort seed file could not be written
"""

from __future__ import annotations


class GhostGateError(Exception):
    """Base class for GhostGate errors."""


class ConfigParseError(GhostGateError):
    """A configuration layer could not be parsed."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class RegistryUnavailable(GhostGateError):
    """The registry directory could not be listed."""


class ToolNotFound(GhostGateError):
    """The named tool is not in the catalog."""

    def __init__(self, name: str):
        super().__init__(f"Tool '{name}' not found.")
        self.name = name


class NotActivated(GhostGateError):
    """The named tool has not been activated in this session."""

    def __init__(self, name: str):
        super().__init__(f"Tool '{name}' is not activated.")
        self.name = name


class BootstrapWriteFailure(GhostGateError):
    """A bootstrap file (global config or registry seed) could not be written."""


__all__ = [
    "GhostGateError",
    "ConfigParseError",
    "RegistryUnavailable",
    "ToolNotFound",
    "NotActivated",
    "BootstrapWriteFailure",
]
