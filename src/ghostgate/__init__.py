"""GhostGate - context budget engine for coding-agent hosts.

Keeps auxiliary tool schemas out of the system prompt until the model asks
for them, and shrinks oversized tool results before they re-enter the
conversation.

Quick Start:
    ```python
    from ghostgate import ToolOutput, create_session

    session = await create_session("/path/to/project")

    print(await session.search_tools("system"))
    print(await session.activate_tool("sys_info"))

    system: list[str] = []
    await session.on_system_prompt(system)  # one fragment per active tool

    result = ToolOutput(tool="bash", output=long_text)
    await session.on_tool_after(result)  # result.output is now pruned
    ```

Module structure:
    - config: layered configuration (global < config dir < project)
    - host: storage and tool-registration capabilities
    - registry: on-disk tool definition catalog
    - pruning: tool result pruning and token estimates
    - state: activation state and token metrics
    - status: status and metrics rendering
    - tools: model-facing tool declarations
    - session: hooks and tools for one host session
    - cli: command line interface
"""

from .config import (
    CommandsConfig,
    GhostGateConfig,
    MetricsConfig,
    PruningConfig,
    RegistryConfig,
    resolve_config,
    resolve_registry_path,
)
from .errors import (
    BootstrapWriteFailure,
    ConfigParseError,
    GhostGateError,
    NotActivated,
    RegistryUnavailable,
    ToolNotFound,
)
from .host import Host, LocalHost, MemoryHost
from .pruning import PruneResult, estimate_schema_tokens, estimate_tokens, prune
from .registry import RegistryCatalog, ToolDefinition
from .session import CommandResult, GhostGateSession, ToolOutput, create_session
from .state import ActivationState, PrunedResultRecord, TokenMetrics
from .tools import Tool, tool

__version__ = "0.1.0"

__all__ = [
    # Config
    "GhostGateConfig",
    "RegistryConfig",
    "PruningConfig",
    "MetricsConfig",
    "CommandsConfig",
    "resolve_config",
    "resolve_registry_path",
    # Errors
    "GhostGateError",
    "ConfigParseError",
    "RegistryUnavailable",
    "ToolNotFound",
    "NotActivated",
    "BootstrapWriteFailure",
    # Host
    "Host",
    "LocalHost",
    "MemoryHost",
    # Registry
    "ToolDefinition",
    "RegistryCatalog",
    # Pruning
    "PruneResult",
    "prune",
    "estimate_tokens",
    "estimate_schema_tokens",
    # State
    "ActivationState",
    "TokenMetrics",
    "PrunedResultRecord",
    # Session
    "GhostGateSession",
    "CommandResult",
    "ToolOutput",
    "create_session",
    # Tools
    "Tool",
    "tool",
]
