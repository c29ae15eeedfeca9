"""Host capabilities consumed by GhostGate.

The session never touches storage or the host's tool table directly; it goes
through a Host:

- read_dir / read_file / write_file / mkdir: registry storage
- register_tool: expose a model-facing tool to the host

LocalHost backs these with the real filesystem. MemoryHost keeps everything
in dictionaries, for tests and for hosts that serve the catalog themselves.
"""

from __future__ import annotations

import asyncio
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from .tools import Tool

PathLike = Union[str, Path]


class Host(ABC):
    """Capability surface supplied by the hosting agent."""

    @abstractmethod
    async def read_dir(self, path: PathLike) -> list[str]:
        """List entry names in a directory (host enumeration order).

        Raises:
            OSError: The directory is missing or unreadable
        """

    @abstractmethod
    async def read_file(self, path: PathLike) -> str:
        """Read a UTF-8 text file."""

    @abstractmethod
    async def write_file(self, path: PathLike, content: str) -> None:
        """Write a UTF-8 text file, replacing any existing content."""

    @abstractmethod
    async def mkdir(self, path: PathLike) -> None:
        """Create a directory and its parents; existing directories are fine."""

    @abstractmethod
    def register_tool(self, tool: Tool) -> None:
        """Make a tool callable by the model."""


class LocalHost(Host):
    """Host backed by the local filesystem.

    Blocking filesystem calls run in a worker thread. Registered tools are
    kept in ``tools`` keyed by name.
    """

    def __init__(self):
        self.tools: dict[str, Tool] = {}

    async def read_dir(self, path: PathLike) -> list[str]:
        return await asyncio.to_thread(os.listdir, path)

    async def read_file(self, path: PathLike) -> str:
        return await asyncio.to_thread(Path(path).read_text, encoding="utf-8")

    async def write_file(self, path: PathLike, content: str) -> None:
        await asyncio.to_thread(Path(path).write_text, content, encoding="utf-8")

    async def mkdir(self, path: PathLike) -> None:
        await asyncio.to_thread(Path(path).mkdir, parents=True, exist_ok=True)

    def register_tool(self, tool: Tool) -> None:
        self.tools[tool.name] = tool


class MemoryHost(Host):
    """In-memory host.

    Example:
        host = MemoryHost()
        host.add_file("/reg/sys_info.json", '{"name": "sys_info", ...}')
        await host.read_dir("/reg")  # ["sys_info.json"]

    Args:
        read_only: Make every write and mkdir fail with PermissionError
    """

    def __init__(self, read_only: bool = False):
        self.read_only = read_only
        self.files: dict[str, str] = {}
        self.dirs: set[str] = set()
        self.tools: dict[str, Tool] = {}

    @staticmethod
    def _key(path: PathLike) -> str:
        return Path(path).as_posix()

    def _add_dirs(self, path: PathLike) -> None:
        p = Path(path)
        for d in [p, *p.parents]:
            self.dirs.add(d.as_posix())

    def add_file(self, path: PathLike, content: str) -> None:
        """Seed a file (and its parent directories), ignoring ``read_only``."""
        self._add_dirs(Path(path).parent)
        self.files[self._key(path)] = content

    async def read_dir(self, path: PathLike) -> list[str]:
        key = self._key(path)
        if key not in self.dirs:
            raise FileNotFoundError(f"No such directory: {key}")
        children = [p for p in self.files if Path(p).parent.as_posix() == key]
        children += [d for d in self.dirs if d != key and Path(d).parent.as_posix() == key]
        return [Path(p).name for p in children]

    async def read_file(self, path: PathLike) -> str:
        key = self._key(path)
        if key not in self.files:
            raise FileNotFoundError(f"No such file: {key}")
        return self.files[key]

    async def write_file(self, path: PathLike, content: str) -> None:
        if self.read_only:
            raise PermissionError(f"Read-only host: {self._key(path)}")
        parent = Path(path).parent.as_posix()
        if parent not in self.dirs:
            raise FileNotFoundError(f"No such directory: {parent}")
        self.files[self._key(path)] = content

    async def mkdir(self, path: PathLike) -> None:
        if self.read_only:
            raise PermissionError(f"Read-only host: {self._key(path)}")
        self._add_dirs(path)

    def register_tool(self, tool: Tool) -> None:
        self.tools[tool.name] = tool


__all__ = ["Host", "LocalHost", "MemoryHost"]
