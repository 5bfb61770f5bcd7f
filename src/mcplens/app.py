# Session lifetime wiring for mcplens
import logging
from pathlib import Path
from types import TracebackType

from mcplens.models import Scope, ServerEntry
from mcplens.notifier import Notifier
from mcplens.registry import Registry
from mcplens.settings import Settings
from mcplens.supervisor import ProcessSupervisor, StopAllReport

logger = logging.getLogger(__name__)


class Lens:
    """One registry, one supervisor and the notifier they share.

    ABOUTME: Created at activation, shutdown() must run at teardown
    ABOUTME: refresh() reloads config and stops processes of removed entries
    """

    def __init__(self, project_dir: Path | None = None, settings: Settings | None = None) -> None:
        self.settings = settings if settings is not None else Settings.from_env()
        self.notifier = Notifier()
        self.registry = Registry(
            self.notifier,
            project_dir=project_dir,
            log_buffer_size=self.settings.log_buffer_size,
        )
        self.supervisor = ProcessSupervisor(
            self.notifier,
            stop_timeout=self.settings.stop_timeout,
            kill_timeout=self.settings.kill_timeout,
        )

    async def refresh(self) -> list[ServerEntry]:
        """Reload both scopes.

        ABOUTME: Entries whose (scope, name) disappeared are detached
        ABOUTME: Their processes are stopped so none is left orphaned

        Returns:
            Detached entries whose process could not be confirmed stopped
        """
        await self.registry.load()

        orphans = [
            entry for entry in self.supervisor.tracked()
            if self.registry.find(entry.scope, entry.name) is not entry
        ]
        failed: list[ServerEntry] = []
        for entry in orphans:
            logger.info("Stopping '%s' (%s), no longer configured", entry.name, entry.scope)
            if not await self.supervisor.stop(entry):
                failed.append(entry)
        return failed

    def resolve(self, name: str, scope: Scope | None = None) -> ServerEntry | None:
        """Find an entry by name, optionally pinned to one scope."""
        if scope is None:
            return self.registry.find_by_name(name)
        return self.registry.find(scope, name)

    async def shutdown(self) -> StopAllReport:
        return await self.supervisor.stop_all()

    async def __aenter__(self) -> "Lens":
        await self.refresh()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.shutdown()
