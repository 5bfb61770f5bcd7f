# Tests for session lifetime wiring
import sys

import pytest

from mcplens.app import Lens
from mcplens.settings import Settings

SLEEPER = {"command": sys.executable, "args": ["-c", "import time; time.sleep(60)"]}


def make_lens(tmp_path):
    lens = Lens(project_dir=tmp_path, settings=Settings(stop_timeout=2.0))
    lens.registry.set_custom_path("global", tmp_path / "global.json")
    return lens


def test_components_share_one_notifier(tmp_path):
    """Test registry and supervisor publish on the same channel."""
    lens = make_lens(tmp_path)
    assert lens.registry.notifier is lens.notifier
    assert lens.supervisor.notifier is lens.notifier
    assert lens.supervisor.stop_timeout == 2.0


@pytest.mark.asyncio
async def test_resolve_by_name_and_scope(tmp_path, write_config):
    """Test resolve prefers local unless a scope is given."""
    lens = make_lens(tmp_path)
    write_config(tmp_path / "global.json", {"x": {"command": "g"}})
    write_config(tmp_path / ".vscode" / "mcp.json", {"x": {"command": "l"}})

    await lens.refresh()

    assert lens.resolve("x").scope == "local"
    assert lens.resolve("x", "global").scope == "global"
    assert lens.resolve("y") is None


@pytest.mark.asyncio
async def test_refresh_keeps_running_process(tmp_path, write_config):
    """Test a reload does not detach a still-configured running server."""
    lens = make_lens(tmp_path)
    path = write_config(tmp_path / ".vscode" / "mcp.json", {"s": SLEEPER})
    await lens.refresh()
    entry = lens.resolve("s")
    assert await lens.supervisor.start(entry)

    write_config(path, {"s": SLEEPER, "other": {"command": "echo"}})
    assert await lens.refresh() == []

    assert lens.resolve("s") is entry
    assert lens.supervisor.is_running(entry)
    await lens.shutdown()


@pytest.mark.asyncio
async def test_refresh_stops_removed_server(tmp_path, write_config):
    """Test a server dropped from config has its process stopped."""
    lens = make_lens(tmp_path)
    path = write_config(tmp_path / ".vscode" / "mcp.json", {"s": SLEEPER})
    await lens.refresh()
    entry = lens.resolve("s")
    assert await lens.supervisor.start(entry)

    write_config(path, {})
    assert await lens.refresh() == []

    assert lens.resolve("s") is None
    assert entry.status == "stopped"
    assert lens.supervisor.tracked() == []


@pytest.mark.asyncio
async def test_context_manager_shuts_down(tmp_path, write_config):
    """Test leaving the context stops every process."""
    write_config(tmp_path / ".vscode" / "mcp.json", {"a": SLEEPER, "b": SLEEPER})

    async with make_lens(tmp_path) as lens:
        entries = lens.registry.get_entries()
        for entry in entries:
            assert await lens.supervisor.start(entry)

    assert [e.status for e in entries] == ["stopped", "stopped"]
    assert lens.supervisor.tracked() == []
