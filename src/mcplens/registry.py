# Two-scope server registry for mcplens
import asyncio
import logging
from collections import deque
from pathlib import Path

from mcplens.config import get_global_config_path, get_local_config_path, read_config_file
from mcplens.models import (
    DEFAULT_LOG_BUFFER_SIZE,
    FILTERS,
    SCOPES,
    CommandDefinition,
    EntryKey,
    Filter,
    InputDefinition,
    ParsedFile,
    Scope,
    ServerConfig,
    ServerEntry,
)
from mcplens.notifier import Notifier

logger = logging.getLogger(__name__)


def _check_scope(scope: str) -> None:
    if scope not in SCOPES:
        raise ValueError(f"Invalid scope '{scope}'. Must be one of: {', '.join(SCOPES)}.")


def describe(config: ServerConfig) -> str | None:
    """Best-effort display description for a server."""
    return f"{config.command} - MCP Server" if config.command else None


class Registry:
    """Merged view of the global and local mcp.json files.

    ABOUTME: Entries are not deduplicated across scopes
    ABOUTME: Name lookup prefers local over global
    ABOUTME: load() keeps the entry object for every (scope, name) still present
    """

    def __init__(
        self,
        notifier: Notifier | None = None,
        project_dir: Path | None = None,
        log_buffer_size: int = DEFAULT_LOG_BUFFER_SIZE,
    ) -> None:
        self.notifier = notifier if notifier is not None else Notifier()
        self.project_dir = project_dir
        self._log_buffer_size = log_buffer_size
        self._filter: Filter = "both"
        self._custom_paths: dict[str, Path] = {}
        self._entries: dict[str, list[ServerEntry]] = {scope: [] for scope in SCOPES}
        # Entries dropped by a reload, revived if their key comes back
        self._detached: dict[EntryKey, ServerEntry] = {}
        self._inputs: dict[str, list[InputDefinition]] = {scope: [] for scope in SCOPES}
        self._commands: dict[str, list[CommandDefinition]] = {scope: [] for scope in SCOPES}

    @property
    def filter(self) -> Filter:
        return self._filter

    def set_filter(self, filter: Filter) -> None:
        """Store the view filter; does not reload or publish."""
        if filter not in FILTERS:
            raise ValueError(f"Invalid filter '{filter}'. Must be one of: {', '.join(FILTERS)}.")
        logger.debug("Filter set to %s", filter)
        self._filter = filter

    def set_custom_path(self, scope: Scope, path: Path | None) -> None:
        """Override the config path of a scope; None restores the default.

        ABOUTME: Takes effect on the next load()
        """
        _check_scope(scope)
        if path is None:
            self._custom_paths.pop(scope, None)
        else:
            self._custom_paths[scope] = Path(path)

    def get_config_path(self, scope: Scope) -> Path | None:
        """Effective config path of a scope, or None if it has none."""
        _check_scope(scope)
        if scope in self._custom_paths:
            return self._custom_paths[scope]
        if scope == "global":
            return get_global_config_path()
        if self.project_dir is None:
            return None
        return get_local_config_path(self.project_dir)

    async def _read_scope(self, scope: Scope) -> ParsedFile | None:
        path = self.get_config_path(scope)
        if path is None:
            logger.debug("No project directory, %s scope is empty", scope)
            return None
        logger.debug("Reading %s config from %s", scope, path)
        return await asyncio.to_thread(read_config_file, path)

    async def load(self) -> None:
        """Re-read both scopes and publish a single change event.

        ABOUTME: Scopes are read concurrently and independently (fail-open)
        ABOUTME: Held entries are swapped only after both reads resolved
        """
        results = await asyncio.gather(
            *(self._read_scope(scope) for scope in SCOPES),
            return_exceptions=True,
        )

        for scope, result in zip(SCOPES, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.error("Failed to read %s config: %s", scope, result)
                result = None
            self._entries[scope] = self._reconcile(scope, result)
            self._inputs[scope] = list(result.inputs) if result else []
            self._commands[scope] = list(result.commands) if result else []

        logger.info(
            "Total: %d global, %d local",
            len(self._entries["global"]),
            len(self._entries["local"]),
        )
        self.notifier.publish()

    def _reconcile(self, scope: Scope, parsed: ParsedFile | None) -> list[ServerEntry]:
        """Map parsed servers onto entry objects, one object per (scope, name).

        ABOUTME: A key that disappears and later returns gets its old entry back
        ABOUTME: so a process still tracked for it stays attached to it
        """
        previous = {entry.name: entry for entry in self._entries[scope]}
        servers = parsed.servers if parsed else {}
        for name, entry in previous.items():
            if name not in servers:
                logger.debug("%s server '%s' removed from config", scope, name)
                self._detached[entry.key] = entry

        entries: list[ServerEntry] = []
        for name, config in servers.items():
            entry = previous.get(name) or self._detached.pop((scope, name), None)
            if entry is None:
                entry = ServerEntry(
                    name=name,
                    config=config,
                    scope=scope,
                    log_buffer=deque(maxlen=self._log_buffer_size),
                )
            elif entry.config != config:
                logger.info("Config of %s server '%s' changed", scope, name)
                entry.config = config
            entry.description = describe(config)
            entries.append(entry)

        return entries

    def get_entries(self, filter: Filter | None = None) -> list[ServerEntry]:
        """Entries visible under a filter, global before local.

        Args:
            filter: View to return; None uses the stored filter

        Returns:
            New list of entries (the entries themselves are live)
        """
        if filter is None:
            filter = self._filter
        if filter not in FILTERS:
            raise ValueError(f"Invalid filter '{filter}'. Must be one of: {', '.join(FILTERS)}.")

        entries: list[ServerEntry] = []
        if filter in ("both", "global"):
            entries.extend(self._entries["global"])
        if filter in ("both", "local"):
            entries.extend(self._entries["local"])
        return entries

    def find(self, scope: Scope, name: str) -> ServerEntry | None:
        """Exact lookup by (scope, name)."""
        _check_scope(scope)
        for entry in self._entries[scope]:
            if entry.name == name:
                return entry
        return None

    def find_by_name(self, name: str) -> ServerEntry | None:
        """Lookup by name alone; a local entry shadows a global one."""
        return self.find("local", name) or self.find("global", name)

    def inputs(self, scope: Scope) -> list[InputDefinition]:
        _check_scope(scope)
        return list(self._inputs[scope])

    def commands(self, scope: Scope) -> list[CommandDefinition]:
        _check_scope(scope)
        return list(self._commands[scope])
