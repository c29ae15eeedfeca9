"""Tool registry - the on-disk catalog of activatable tool definitions.

The registry is a directory of ``*.json`` files, one definition per file:

    {"name": "sys_info",
     "description": "Retrieves comprehensive system metrics.",
     "parameters": {"detail_level": "string"}}

The catalog is re-read on every query so edits on disk show up without a
restart. Definitions are keyed by their ``name`` field, not the filename.
When two files declare the same name the one enumerated last wins; the
order is whatever the host's directory listing returns.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .errors import BootstrapWriteFailure, RegistryUnavailable
from .host import Host

DEFINITION_SUFFIX = ".json"

EXAMPLE_FILENAME = "sys_info.json"
EXAMPLE_DEFINITION: dict[str, Any] = {
    "name": "sys_info",
    "description": "Retrieves comprehensive system metrics.",
    "parameters": {"detail_level": "string"},
}


class ToolDefinition(BaseModel):
    """One catalog entry.

    ``parameters`` is an opaque schema document; it is never interpreted,
    only measured and re-serialized. Extra keys in the file are kept.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    name: str = Field(min_length=1)
    description: str = ""
    parameters: Any = Field(default_factory=dict)

    def to_schema(self) -> dict[str, Any]:
        """The definition as a plain JSON object."""
        return self.model_dump(mode="json")

    def compact_json(self) -> str:
        """Single-line JSON, as injected into the system prompt."""
        return json.dumps(self.to_schema(), separators=(",", ":"), ensure_ascii=False)

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on name or description."""
        needle = query.lower()
        return needle in self.name.lower() or needle in self.description.lower()


class RegistryCatalog:
    """Reads tool definitions from a registry directory through a Host.

    Example:
        catalog = RegistryCatalog(host, "/project/.opencode/ghostgate/registry")
        await catalog.seed()
        tools = await catalog.load()  # {"sys_info": ToolDefinition(...)}
    """

    def __init__(
        self,
        host: Host,
        path: Union[str, Path],
        enabled: bool = True,
        debug: bool = False,
    ):
        """Initialize catalog.

        Args:
            host: Storage capability
            path: Absolute registry directory
            enabled: When False every query returns an empty catalog
            debug: Log read failures and name collisions
        """
        self.host = host
        self.path = Path(path)
        self.enabled = enabled
        self.debug = debug

    async def _list(self) -> list[str]:
        try:
            return await self.host.read_dir(self.path)
        except OSError as e:
            raise RegistryUnavailable(f"Cannot list {self.path}: {e}") from e

    async def _read_definition(self, filename: str) -> Optional[ToolDefinition]:
        file_path = self.path / filename
        try:
            content = await self.host.read_file(file_path)
            return ToolDefinition.model_validate(json.loads(content))
        except (OSError, ValueError) as e:
            # ValueError covers JSONDecodeError and pydantic's ValidationError
            if self.debug:
                logging.warning("[ghostgate.registry] Skipping %s: %s", file_path, e)
            return None

    async def load(self) -> dict[str, ToolDefinition]:
        """Read the whole catalog.

        Returns:
            Mapping of tool name to definition; empty when the registry is
            disabled, missing or unreadable
        """
        if not self.enabled:
            return {}

        try:
            filenames = await self._list()
        except RegistryUnavailable as e:
            if self.debug:
                logging.warning("[ghostgate.registry] %s", e)
            return {}

        catalog: dict[str, ToolDefinition] = {}
        for filename in filenames:
            if not filename.endswith(DEFINITION_SUFFIX):
                continue
            definition = await self._read_definition(filename)
            if definition is None:
                continue
            if definition.name in catalog and self.debug:
                logging.warning(
                    "[ghostgate.registry] Duplicate tool name %r; %s replaces earlier definition",
                    definition.name,
                    filename,
                )
            catalog[definition.name] = definition
        return catalog

    async def search(self, query: str) -> list[str]:
        """Names of tools whose name or description contains ``query``."""
        catalog = await self.load()
        return [name for name, definition in catalog.items() if definition.matches(query)]

    async def _write_example(self) -> None:
        try:
            await self.host.mkdir(self.path)
            await self.host.write_file(
                self.path / EXAMPLE_FILENAME,
                json.dumps(EXAMPLE_DEFINITION, indent=2),
            )
        except OSError as e:
            raise BootstrapWriteFailure(f"Failed to seed {self.path}: {e}") from e

    async def seed(self) -> bool:
        """Create the registry with one example definition if it does not exist.

        Best effort: failures are logged in debug mode and otherwise ignored.

        Returns:
            True if the registry was created
        """
        if not self.enabled:
            return False

        try:
            await self.host.read_dir(self.path)
            return False
        except FileNotFoundError:
            pass
        except OSError as e:
            if self.debug:
                logging.warning("[ghostgate.registry] Cannot inspect %s: %s", self.path, e)
            return False

        try:
            await self._write_example()
        except BootstrapWriteFailure as e:
            if self.debug:
                logging.warning("[ghostgate.registry] Setup failed: %s", e)
            return False
        return True


__all__ = [
    "ToolDefinition",
    "RegistryCatalog",
    "EXAMPLE_DEFINITION",
    "EXAMPLE_FILENAME",
]
