# Core data models for mcplens
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Literal

# ABOUTME: Enumerations are plain Literal aliases, validated where parsed
TransportType = Literal["stdio", "socket", "ipc"]
Scope = Literal["global", "local"]
Status = Literal["unknown", "running", "stopped", "error"]
Filter = Literal["both", "global", "local"]

TRANSPORT_TYPES: tuple[str, ...] = ("stdio", "socket", "ipc")
SCOPES: tuple[str, ...] = ("global", "local")
FILTERS: tuple[str, ...] = ("both", "global", "local")

# ABOUTME: Entries are addressed by (scope, name); names only unique per scope
EntryKey = tuple[str, str]

DEFAULT_LOG_BUFFER_SIZE = 500


@dataclass(frozen=True)
class ServerConfig:
    """Immutable server definition parsed from a scope's mcp.json.

    ABOUTME: Mirrors one value of the "servers" mapping
    ABOUTME: command is required (non-empty) for stdio servers only
    """
    type: TransportType = "stdio"
    command: str = ""
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    version: str | None = None
    disabled: bool = False
    gallery: bool = False
    always_allow: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        if self.type == "stdio" and not self.command:
            raise ValueError("stdio servers require a non-empty command")


@dataclass(frozen=True)
class InputDefinition:
    """Prompted input declared in the "inputs" section."""
    id: str
    type: str
    description: str = ""
    default: Any = None


@dataclass(frozen=True)
class CommandDefinition:
    """Command declared in the "commands" section."""
    name: str
    args: list[str] = field(default_factory=list)
    description: str = ""


@dataclass(frozen=True)
class ParsedFile:
    """Result of reading one scope's configuration file."""
    servers: dict[str, ServerConfig] = field(default_factory=dict)
    inputs: list[InputDefinition] = field(default_factory=list)
    commands: list[CommandDefinition] = field(default_factory=list)


@dataclass(eq=False)
class ServerEntry:
    """Registry-owned server definition plus its live runtime projection.

    ABOUTME: name and scope are fixed once set; everything else is mutable
    ABOUTME: status and log_buffer are written by the supervisor only
    ABOUTME: Compared by identity, a reload keeps the same object per key
    """
    name: str
    config: ServerConfig
    scope: Scope
    status: Status = "unknown"
    log_buffer: deque[str] = field(
        default_factory=lambda: deque(maxlen=DEFAULT_LOG_BUFFER_SIZE)
    )
    tool_count: int | None = None
    description: str | None = None

    def __setattr__(self, key: str, value: Any) -> None:
        if key in ("name", "scope") and key in self.__dict__:
            raise AttributeError(f"ServerEntry.{key} cannot be changed")
        super().__setattr__(key, value)

    @property
    def key(self) -> EntryKey:
        return (self.scope, self.name)

    @property
    def is_global(self) -> bool:
        return self.scope == "global"

    @property
    def log(self) -> str:
        """Log buffer joined into one block of text."""
        return "\n".join(self.log_buffer)

    def append_log(self, line: str) -> None:
        # deque(maxlen=...) evicts the oldest line
        self.log_buffer.append(line)
