"""GhostGate session - hook and tool entry points for one host session.

A session owns its configuration, catalog handle and activation state; no
state is shared between sessions. The host delivers events one at a time:

- on_command: ``/ghostgate status|metrics|reset``
- on_tool_after: count every tool call, prune large text results
- on_system_prompt: inject the schemas of active tools
- on_compacting: add a summary of active tools and counters
- on_host_config: register the command and promote the core tools

Model-facing tools (registered with the host on start):

- search_ghost_tools(query)
- activate_ghost_tool(tool_name)
- execute_ghost_action(tool_name, parameters)
- purge_ghost_context()
- ghostgate_metrics()

Example:
    session = await create_session("/path/to/project")
    await session.activate_tool("sys_info")
    system: list[str] = []
    await session.on_system_prompt(system)
"""

from __future__ import annotations

import inspect
import os
import time
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional, Union

from opentelemetry import trace

from .config import GhostGateConfig, resolve_config, resolve_registry_path
from .errors import NotActivated, ToolNotFound
from .host import Host, LocalHost
from .pruning import prune, should_prune
from .registry import RegistryCatalog
from .state import ActivationState
from .status import (
    format_metrics_lines,
    format_metrics_output,
    format_status_output,
    generate_status_report,
)
from .tools import Tool, collect_tools, tool

tracer = trace.get_tracer(__name__)

COMMAND_NAME = "ghostgate"
COMMAND_DESCRIPTION = "Context management and diagnostics for GhostGate."
COMMAND_TEMPLATE = "usage: /ghostgate [status|metrics|reset]"

CORE_TOOL_NAMES = (
    "search_ghost_tools",
    "activate_ghost_tool",
    "execute_ghost_action",
    "purge_ghost_context",
    "ghostgate_metrics",
)
METRICS_TOOL_NAME = "ghostgate_metrics"

ActionHandler = Callable[[Any], Any]


@dataclass
class CommandResult:
    """Text produced by a handled command; the host skips its default processing."""

    text: str
    handled: bool = True

    def to_parts(self) -> list[dict[str, str]]:
        return [{"type": "text", "text": self.text}]


@dataclass
class ToolOutput:
    """A finished tool call. ``output`` may be replaced by on_tool_after."""

    tool: str
    output: Any


class GhostGateSession:
    """Session context passed to every hook and tool."""

    def __init__(
        self,
        config: GhostGateConfig,
        host: Host,
        working_directory: Union[str, Path],
    ):
        self.config = config
        self.host = host
        self.working_directory = Path(working_directory)
        self.registry_path: Optional[Path] = (
            resolve_registry_path(config, self.working_directory)
            if config.registry.enabled
            else None
        )
        self.catalog = RegistryCatalog(
            host,
            self.registry_path or self.working_directory,
            enabled=config.enabled and config.registry.enabled,
            debug=config.debug,
        )
        self.state = ActivationState()
        self.started_at = time.monotonic()
        self._actions: dict[str, ActionHandler] = {}

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    async def start(self) -> None:
        """Seed the registry if missing and register tools with the host."""
        if not self.enabled:
            return
        await self.catalog.seed()
        for t in self.tools():
            self.host.register_tool(t)

    def tools(self) -> list[Tool]:
        """Model-facing tools enabled by the configuration."""
        if not self.enabled or not self.config.registry.enabled:
            return []
        tools = collect_tools(self)
        if not self.config.metrics.enabled:
            tools = [t for t in tools if t.name != METRICS_TOOL_NAME]
        return tools

    def register_action(self, tool_name: str, handler: ActionHandler) -> None:
        """Route execute_ghost_action for ``tool_name`` to ``handler(parameters)``.

        The handler may be sync or async.
        """
        self._actions[tool_name] = handler

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    async def on_command(self, command: str, arguments: str = "") -> Optional[CommandResult]:
        """Handle ``/ghostgate <subcommand>``; None lets the host carry on."""
        if not self.enabled or not self.config.commands.enabled:
            return None
        if command != COMMAND_NAME:
            return None

        args = arguments.split()
        subcommand = args[0] if args else ""

        with tracer.start_as_current_span("ghostgate.command") as span:
            span.set_attribute("ghostgate.subcommand", subcommand)
            if subcommand == "status":
                return CommandResult(await self.status_text())
            if subcommand == "metrics":
                if not self.config.metrics.enabled:
                    return CommandResult("Metrics tracking is disabled.")
                return CommandResult(format_metrics_output(self.state.metrics))
            if subcommand == "reset":
                self.state.reset()
                return CommandResult("GhostGate state reset complete.")
        return None

    async def on_tool_after(self, output: ToolOutput) -> None:
        """Count the call and prune a large text result in place."""
        if not self.enabled:
            return

        self.state.record_interception()
        if not self.config.pruning.enabled or not should_prune(output.output):
            return

        with tracer.start_as_current_span("ghostgate.tool.after") as span:
            span.set_attribute("ghostgate.tool", output.tool)
            original = output.output
            result = prune(original, self.config.pruning)
            span.set_attribute("ghostgate.tokens_saved", result.tokens_saved)
            if result.changed:
                self.state.record_prune(output.tool, original, result)
                output.output = result.text

    async def on_system_prompt(self, system: list[str]) -> None:
        """Append one fragment per active tool that is still in the catalog."""
        if not self.enabled or not self.state.active_tools:
            return

        with tracer.start_as_current_span("ghostgate.system.transform") as span:
            catalog = await self.catalog.load()
            injected = 0
            for name in self.state.active_tools:
                definition = catalog.get(name)
                if definition is None:
                    continue
                system.append(f"[GHOSTGATE ACTIVE TOOL]: {name}\n{definition.compact_json()}")
                self.state.record_injection()
                injected += 1
            span.set_attribute("ghostgate.schemas_injected", injected)

    async def on_compacting(self, context: list[str]) -> None:
        """Append a summary of active tools and cumulative counters."""
        if not self.enabled:
            return

        metrics = self.state.metrics
        lines = [
            "[GhostGate Context Summary]",
            f"- Active Tools: {', '.join(self.state.active_tools) or 'none'}",
        ]
        if self.config.metrics.enabled:
            lines += [
                f"- Tools Activated: {metrics.tools_activated}",
                f"- Tokens Saved This Session: {metrics.estimated_tokens_saved}",
                f"- Tool Calls Intercepted: {metrics.tool_calls_intercepted}",
                f"- Context Prunes: {metrics.context_prunes}",
            ]
        lines.append("[End GhostGate Context]")
        context.append("\n".join(lines))

    async def on_host_config(self, host_config: dict[str, Any]) -> None:
        """Register /ghostgate and add the core tools to the always-visible list."""
        if not self.enabled:
            return

        if self.config.commands.enabled:
            commands = host_config.get("command") or {}
            commands[COMMAND_NAME] = {
                "description": COMMAND_DESCRIPTION,
                "template": COMMAND_TEMPLATE,
            }
            host_config["command"] = commands

        if self.config.registry.enabled:
            experimental = dict(host_config.get("experimental") or {})
            primary = list(experimental.get("primary_tools") or [])
            core = [t.name for t in self.tools()]
            experimental["primary_tools"] = list(dict.fromkeys([*primary, *core]))
            host_config["experimental"] = experimental

    # ------------------------------------------------------------------
    # Model-facing tools
    # ------------------------------------------------------------------

    @tool(
        "search_ghost_tools",
        description="Search the GhostGate registry for tools. Minimizes initial token bloat.",
    )
    async def search_tools(self, query: str) -> str:
        matches = await self.catalog.search(query)
        if not matches:
            return "No matching tools found in registry."
        return (
            f"Matches found: {', '.join(matches)}. "
            "Use 'activate_ghost_tool' to load a specific schema."
        )

    @tool(
        "activate_ghost_tool",
        description="Injects a specific tool schema into the active system context.",
    )
    async def activate_tool(self, tool_name: str) -> str:
        with tracer.start_as_current_span("ghostgate.activate") as span:
            span.set_attribute("ghostgate.tool", tool_name)
            catalog = await self.catalog.load()
            try:
                activated = self.state.activate(tool_name, catalog)
            except ToolNotFound as e:
                return f"Error: {e}"
            if not activated:
                return f"{tool_name} is already active. Its schema is in your system prompt."
            return f"Activated: {tool_name}. Schema is now visible in your system prompt."

    @tool(
        "execute_ghost_action",
        description="Executes a verified ghost tool action using in-process logic.",
    )
    async def execute_action(self, tool_name: str, parameters: Any = None) -> Any:
        try:
            self.state.require_active(tool_name)
        except NotActivated:
            return f"Error: Tool '{tool_name}' is not activated. Use 'activate_ghost_tool' first."

        handler = self._actions.get(tool_name)
        if handler is None:
            return {
                "status": "success",
                "tool": tool_name,
                "parameters": parameters,
                "results": "Action simulated successfully in-process.",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }

        with tracer.start_as_current_span("ghostgate.execute") as span:
            span.set_attribute("ghostgate.tool", tool_name)
            try:
                result = handler(parameters)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as e:
                span.record_exception(e)
                return f"Error: Action for '{tool_name}' failed: {e}"
            return result

    @tool(
        "purge_ghost_context",
        description="Clears all activated tool schemas to reset context and save tokens.",
    )
    async def purge_context(self) -> str:
        count = self.state.purge()
        return f"GhostGate context purged. {count} tool schemas removed from system prompt."

    @tool(METRICS_TOOL_NAME, description="Display current GhostGate token savings metrics.")
    async def metrics(self) -> str:
        return format_metrics_lines(self.state.metrics)

    # ------------------------------------------------------------------

    async def status_text(self) -> str:
        """Render the /ghostgate status box."""
        catalog = await self.catalog.load()
        report = generate_status_report(
            self.state,
            registry_path=str(self.registry_path) if self.registry_path else "(disabled)",
            stored_tool_count=len(catalog),
            started_at=self.started_at,
            show_metrics=self.config.metrics.enabled and self.config.metrics.show_in_status,
        )
        return format_status_output(report)


async def create_session(
    working_directory: Optional[Union[str, Path]] = None,
    host: Optional[Host] = None,
    environ: Optional[Mapping[str, str]] = None,
    debug: bool = False,
) -> GhostGateSession:
    """Resolve configuration and start a session.

    Args:
        working_directory: Project directory (default: current directory)
        host: Host capabilities (default: LocalHost)
        environ: Environment used for config lookup (default: os.environ)
        debug: Force debug logging on regardless of the config files
    """
    working_directory = Path(working_directory or os.getcwd())
    config = resolve_config(working_directory, environ, debug=debug)
    session = GhostGateSession(config, host or LocalHost(), working_directory)
    await session.start()
    return session


__all__ = [
    "COMMAND_NAME",
    "CORE_TOOL_NAMES",
    "CommandResult",
    "ToolOutput",
    "GhostGateSession",
    "create_session",
]
