# ABOUTME: Shared fixtures for mcplens tests
# ABOUTME: Config files are written to tmp_path, child processes use sys.executable
import json
import sys
from pathlib import Path
from typing import Any, Callable

import pytest
import pytest_asyncio

from mcplens.supervisor import ProcessSupervisor


@pytest.fixture
def write_config() -> Callable[..., Path]:
    """Factory writing an mcp.json document and returning its path."""

    def _write(path: Path, servers: dict[str, Any] | None = None, **sections: Any) -> Path:
        document: dict[str, Any] = dict(sections)
        if servers is not None:
            document["servers"] = servers
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def python_server() -> Callable[[str], dict[str, Any]]:
    """Factory for a stdio server definition running a Python snippet."""

    def _server(code: str) -> dict[str, Any]:
        return {"type": "stdio", "command": sys.executable, "args": ["-c", code]}

    return _server


@pytest_asyncio.fixture
async def supervisor():
    """Supervisor with short timeouts, stopping leftovers after the test."""
    sup = ProcessSupervisor(stop_timeout=2.0, kill_timeout=2.0)
    yield sup
    await sup.stop_all()
