"""Test fixtures and configuration for ghostgate tests.

Test Structure:
    tests/
    ├── conftest.py          # Shared fixtures
    ├── unit/                # Unit tests (MemoryHost, tmp_path configs)
    └── integration/         # LocalHost sessions on a real directory tree

Running tests:
    pytest tests/unit -v
    pytest tests/integration -v -m integration
"""

import json
import sys
from pathlib import Path

import pytest

# Add tests directory to path so test modules can import shared constants
tests_dir = Path(__file__).parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

from ghostgate import MemoryHost  # noqa: E402

REGISTRY = "/project/.opencode/ghostgate/registry"


@pytest.fixture
def environ(tmp_path: Path) -> dict[str, str]:
    """Config environment isolated from the real user config dir."""
    return {"XDG_CONFIG_HOME": str(tmp_path / "xdg")}


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A project directory with a .opencode marker folder."""
    root = tmp_path / "project"
    (root / ".opencode").mkdir(parents=True)
    return root


@pytest.fixture
def memory_host() -> MemoryHost:
    """MemoryHost with a registry holding sys_info and git_log."""
    host = MemoryHost()
    host.add_file(
        f"{REGISTRY}/sys_info.json",
        json.dumps(
            {
                "name": "sys_info",
                "description": "Retrieves comprehensive system metrics.",
                "parameters": {"detail_level": "string"},
            }
        ),
    )
    host.add_file(
        f"{REGISTRY}/git_log.json",
        json.dumps(
            {
                "name": "git_log",
                "description": "Show recent commit history",
                "parameters": {"type": "object", "properties": {"limit": {"type": "integer"}}},
            }
        ),
    )
    return host
