# Tests for core data models
from collections import deque

import pytest

from mcplens.models import ParsedFile, ServerConfig, ServerEntry


def test_server_config_defaults():
    """Test ServerConfig with default values."""
    config = ServerConfig(command="echo")
    assert config.type == "stdio"
    assert config.args == []
    assert config.env == {}
    assert config.version is None
    assert config.disabled is False
    assert config.always_allow == frozenset()


def test_server_config_immutability():
    """Test that ServerConfig is frozen (immutable)."""
    config = ServerConfig(command="echo")
    with pytest.raises(AttributeError):
        config.command = "npx"


def test_stdio_requires_command():
    """Test that a stdio config cannot have an empty command."""
    with pytest.raises(ValueError, match="non-empty command"):
        ServerConfig(type="stdio", command="")


def test_socket_allows_empty_command():
    """Test that non-stdio transports may omit the command."""
    config = ServerConfig(type="socket")
    assert config.command == ""


def test_server_config_equality():
    """Test ServerConfig equality comparison."""
    assert ServerConfig(command="echo", args=["a"]) == ServerConfig(command="echo", args=["a"])
    assert ServerConfig(command="echo") != ServerConfig(command="npx")


def test_parsed_file_defaults():
    """Test that an empty ParsedFile has no servers, inputs or commands."""
    parsed = ParsedFile()
    assert parsed.servers == {}
    assert parsed.inputs == []
    assert parsed.commands == []


def test_entry_initial_state():
    """Test a fresh entry starts unknown with an empty log."""
    entry = ServerEntry(name="fs", config=ServerConfig(command="echo"), scope="local")
    assert entry.status == "unknown"
    assert list(entry.log_buffer) == []
    assert entry.key == ("local", "fs")
    assert entry.is_global is False
    assert entry.tool_count is None


def test_entry_name_and_scope_are_fixed():
    """Test that name and scope cannot be reassigned."""
    entry = ServerEntry(name="fs", config=ServerConfig(command="echo"), scope="global")
    with pytest.raises(AttributeError):
        entry.scope = "local"
    with pytest.raises(AttributeError):
        entry.name = "other"


def test_entry_status_and_config_are_mutable():
    """Test that runtime fields can change."""
    entry = ServerEntry(name="fs", config=ServerConfig(command="echo"), scope="global")
    entry.status = "running"
    entry.config = ServerConfig(command="npx")
    assert entry.status == "running"
    assert entry.config.command == "npx"


def test_entry_log_buffer_evicts_oldest():
    """Test that the log buffer keeps only the newest lines."""
    entry = ServerEntry(
        name="fs",
        config=ServerConfig(command="echo"),
        scope="local",
        log_buffer=deque(maxlen=2),
    )
    for line in ("one", "two", "three"):
        entry.append_log(line)

    assert list(entry.log_buffer) == ["two", "three"]
    assert entry.log == "two\nthree"


def test_entries_compare_by_identity():
    """Test that two entries with equal fields are still distinct."""
    config = ServerConfig(command="echo")
    first = ServerEntry(name="x", config=config, scope="global")
    second = ServerEntry(name="x", config=config, scope="global")
    assert first != second
    assert first == first
