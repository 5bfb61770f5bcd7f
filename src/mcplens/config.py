# Configuration discovery and parsing for mcplens
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

from mcplens.models import (
    TRANSPORT_TYPES,
    CommandDefinition,
    InputDefinition,
    ParsedFile,
    ServerConfig,
)
from mcplens.utils import expand_env_vars

logger = logging.getLogger(__name__)

# ABOUTME: File name shared by both scopes
CONFIG_FILENAME = "mcp.json"

# ABOUTME: Project-local directory holding the local scope file
LOCAL_CONFIG_DIR = ".vscode"

# ABOUTME: Editor installs checked for a global file, stable first
EDITOR_VARIANTS = ("Code", "Code - Insiders")


def get_base_path() -> Path:
    """Get the per-user application data directory for the current OS.

    ABOUTME: macOS Application Support, Windows %APPDATA%, ~/.config elsewhere
    """
    if sys.platform == "darwin":
        return Path.home() / "Library/Application Support"
    elif sys.platform == "win32":
        return Path(os.environ.get("APPDATA", Path.home() / "AppData/Roaming"))
    else:  # Linux and others
        return Path.home() / ".config"


def get_global_config_path() -> Path:
    """Return the default path of the user-wide (global) mcp.json.

    ABOUTME: Prefers an existing file, checking Code/ then Code - Insiders/
    ABOUTME: Falls back to the Code/ location when neither exists

    Returns:
        Path to the global config file (may not exist)
    """
    base_path = get_base_path()

    for variant in EDITOR_VARIANTS:
        path = base_path / variant / "User" / CONFIG_FILENAME
        if path.exists():
            return path

    return base_path / EDITOR_VARIANTS[0] / "User" / CONFIG_FILENAME


def get_local_config_path(project_dir: Path) -> Path:
    """Return the default path of a project's (local) mcp.json."""
    return project_dir / LOCAL_CONFIG_DIR / CONFIG_FILENAME


def _require_mapping(value: Any, where: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(f"{where} must be an object, got {type(value).__name__}")
    return value


def _string_list(value: Any, where: str) -> list[str]:
    if not isinstance(value, list):
        raise ValueError(f"{where} must be a list, got {type(value).__name__}")
    return [str(item) for item in value]


def parse_server(name: str, data: Any) -> ServerConfig:
    """Convert one entry of the "servers" mapping to a ServerConfig.

    ABOUTME: Missing type defaults to stdio
    ABOUTME: Expands environment variables in command, args and env values
    ABOUTME: Unknown fields are ignored

    Raises:
        ValueError: If a field has the wrong shape or stdio lacks a command
    """
    data = _require_mapping(data, f"Server '{name}'")

    server_type = data.get("type", "stdio")
    if server_type not in TRANSPORT_TYPES:
        raise ValueError(
            f"Server '{name}' has invalid type '{server_type}'. "
            f"Must be one of: {', '.join(TRANSPORT_TYPES)}."
        )

    command = data.get("command", "")
    if not isinstance(command, str):
        raise ValueError(f"Server '{name}' field 'command' must be a string")
    if server_type == "stdio" and not command:
        raise ValueError(f"Server '{name}' missing required 'command' field for stdio type")

    args = _string_list(data.get("args", []), f"Server '{name}' field 'args'")

    env: dict[str, str] = {}
    for key, value in _require_mapping(data.get("env", {}), f"Server '{name}' field 'env'").items():
        # bool is an int subclass but not a valid env value
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            raise ValueError(
                f"Server '{name}' env '{key}' must be a string or number"
            )
        env[str(key)] = expand_env_vars(str(value))

    version = data.get("version")
    if version is not None and not isinstance(version, str):
        raise ValueError(f"Server '{name}' field 'version' must be a string")

    flags = {}
    for field_name in ("disabled", "gallery"):
        flag = data.get(field_name, False)
        if not isinstance(flag, bool):
            raise ValueError(f"Server '{name}' field '{field_name}' must be a boolean")
        flags[field_name] = flag

    always_allow = _string_list(
        data.get("alwaysAllow", []), f"Server '{name}' field 'alwaysAllow'"
    )

    return ServerConfig(
        type=server_type,
        command=expand_env_vars(command),
        args=[expand_env_vars(arg) for arg in args],
        env=env,
        version=version,
        disabled=flags["disabled"],
        gallery=flags["gallery"],
        always_allow=frozenset(always_allow),
    )


def _parse_input(index: int, data: Any) -> InputDefinition:
    data = _require_mapping(data, f"inputs[{index}]")
    for required in ("id", "type"):
        if not isinstance(data.get(required), str):
            raise ValueError(f"inputs[{index}] missing required '{required}' field")
    return InputDefinition(
        id=data["id"],
        type=data["type"],
        description=str(data.get("description", "")),
        default=data.get("default"),
    )


def _parse_command(index: int, data: Any) -> CommandDefinition:
    data = _require_mapping(data, f"commands[{index}]")
    if not isinstance(data.get("name"), str):
        raise ValueError(f"commands[{index}] missing required 'name' field")
    return CommandDefinition(
        name=data["name"],
        args=_string_list(data.get("args", []), f"commands[{index}] field 'args'"),
        description=str(data.get("description", "")),
    )


def parse_config(data: Any) -> ParsedFile:
    """Parse a decoded mcp.json document.

    ABOUTME: Fail-fast: any schema error rejects the whole document
    ABOUTME: A document without "servers" has no servers

    Args:
        data: Result of json.load()

    Returns:
        ParsedFile with servers in file order

    Raises:
        ValueError: If the document does not match the schema
    """
    data = _require_mapping(data, "Config root")

    servers_data = _require_mapping(data.get("servers", {}), "'servers' section")
    servers = {
        str(name): parse_server(str(name), server_data)
        for name, server_data in servers_data.items()
    }

    inputs_data = data.get("inputs", [])
    if not isinstance(inputs_data, list):
        raise ValueError("'inputs' section must be a list")

    commands_data = data.get("commands", [])
    if not isinstance(commands_data, list):
        raise ValueError("'commands' section must be a list")

    return ParsedFile(
        servers=servers,
        inputs=[_parse_input(i, item) for i, item in enumerate(inputs_data)],
        commands=[_parse_command(i, item) for i, item in enumerate(commands_data)],
    )


def read_config_file(path: Path) -> ParsedFile | None:
    """Read and parse one scope's configuration file.

    ABOUTME: Fail-open: never raises, a bad scope must not block the other
    ABOUTME: Missing, unreadable or malformed files are logged and yield None

    Args:
        path: Path to an mcp.json file

    Returns:
        ParsedFile, or None if the file is absent or invalid
    """
    if not path.exists():
        logger.info("No config file at %s", path)
        return None

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        parsed = parse_config(data)
    except json.JSONDecodeError as e:
        logger.warning("Invalid JSON in %s: %s", path, e)
        return None
    except (OSError, ValueError) as e:
        logger.warning("Could not load %s: %s", path, e)
        return None

    logger.info("Loaded %d server(s) from %s", len(parsed.servers), path)
    return parsed
