# Child process supervision for mcplens servers
import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Literal

from mcplens.models import EntryKey, ServerEntry
from mcplens.notifier import Notifier

logger = logging.getLogger(__name__)

# ABOUTME: How a stop attempt ended
# ABOUTME: "killed" means exit was confirmed only after the forced kill
StopOutcome = Literal["not-running", "stopped", "killed", "failed"]

# ABOUTME: Prefix of lines the supervisor itself writes to a log buffer
LOG_PREFIX = "[mcplens]"
STDERR_PREFIX = "[stderr] "

# ABOUTME: Upper bound for one output line, longer lines are dropped
STREAM_LIMIT = 1024 * 1024

# ABOUTME: How long the exit handler waits for output readers to drain
READER_DRAIN_TIMEOUT = 1.0


@dataclass
class StopAllReport:
    """Report from stop_all.

    ABOUTME: Failures are non-fatal, every tracked process is attempted
    ABOUTME: failed holds entries needing a forced kill or never confirmed exited
    """
    stopped: list[ServerEntry] = field(default_factory=list)
    failed: list[ServerEntry] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def add_result(self, entry: ServerEntry, outcome: StopOutcome) -> None:
        if outcome == "stopped":
            self.stopped.append(entry)
        elif outcome in ("killed", "failed"):
            self.failed.append(entry)

    def summary(self) -> str:
        """One-line summary for a single aggregated notification."""
        text = f"Stopped {len(self.stopped)} server(s)"
        if self.failed:
            names = ", ".join(f"{entry.name} ({entry.scope})" for entry in self.failed)
            text += f"; {len(self.failed)} did not stop cleanly: {names}"
        return text


@dataclass(eq=False)
class _ProcessHandle:
    """Supervisor-owned state of one running child process."""
    entry: ServerEntry
    process: asyncio.subprocess.Process
    # Consulted once by the exit handler to tell a stop from a crash
    stop_requested: bool = False
    exited: asyncio.Event = field(default_factory=asyncio.Event)
    readers: list["asyncio.Task[None]"] = field(default_factory=list)
    watcher: "asyncio.Task[None] | None" = None


class ProcessSupervisor:
    """Starts, watches and stops the child processes behind registry entries.

    ABOUTME: Owns the (scope, name) -> process mapping exclusively
    ABOUTME: Projects state onto entries only through status and log_buffer
    ABOUTME: Never restarts on its own, a crash leaves status "error"
    """

    def __init__(
        self,
        notifier: Notifier | None = None,
        *,
        stop_timeout: float = 5.0,
        kill_timeout: float = 2.0,
    ) -> None:
        self.notifier = notifier if notifier is not None else Notifier()
        self.stop_timeout = stop_timeout
        self.kill_timeout = kill_timeout
        self._handles: dict[EntryKey, _ProcessHandle] = {}
        # Spawns in flight; the event is set once the spawn settled
        self._starting: dict[EntryKey, asyncio.Event] = {}
        # Set while stop_all runs, new starts are refused
        self._closing = False

    def is_running(self, entry: ServerEntry) -> bool:
        return entry.key in self._handles

    def get_pid(self, entry: ServerEntry) -> int | None:
        handle = self._handles.get(entry.key)
        return handle.process.pid if handle else None

    def tracked(self) -> list[ServerEntry]:
        """Entries that currently have a live process."""
        return [handle.entry for handle in self._handles.values()]

    async def wait(self, entry: ServerEntry, timeout: float | None = None) -> bool:
        """Wait for the tracked process of an entry to exit.

        Returns:
            True once no process is tracked for the entry, False on timeout
        """
        handle = self._handles.get(entry.key)
        if handle is None:
            return True
        return await self._wait_exited(handle, timeout)

    async def start(self, entry: ServerEntry) -> bool:
        """Spawn the process for an entry.

        ABOUTME: Not a restart: fails if the entry is disabled or already tracked
        ABOUTME: Environment is os.environ overlaid with config.env
        ABOUTME: Spawn errors set status "error" and are not retried

        Returns:
            True if a process was spawned
        """
        key = entry.key
        config = entry.config

        if config.disabled:
            logger.info("Server '%s' (%s) is disabled, not starting", entry.name, entry.scope)
            return False

        if self._closing:
            logger.warning("Not starting '%s' (%s): stopping all servers", entry.name, entry.scope)
            return False

        if key in self._handles or key in self._starting:
            logger.warning("Server '%s' (%s) is already running", entry.name, entry.scope)
            return False

        if not config.command:
            logger.error("Server '%s' (%s) has no command", entry.name, entry.scope)
            entry.status = "error"
            entry.append_log(f"{LOG_PREFIX} no command configured")
            self.notifier.publish()
            return False

        env = {**os.environ, **config.env}
        settled = self._starting[key] = asyncio.Event()
        try:
            process = await asyncio.create_subprocess_exec(
                config.command,
                *config.args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
                limit=STREAM_LIMIT,
            )
        except (OSError, ValueError) as e:
            logger.error("Failed to start server '%s' (%s): %s", entry.name, entry.scope, e)
            entry.status = "error"
            entry.append_log(f"{LOG_PREFIX} failed to start: {e}")
            self.notifier.publish()
            return False
        finally:
            # Waiters resume only after the handle below is registered
            self._starting.pop(key, None)
            settled.set()

        handle = _ProcessHandle(entry=entry, process=process)
        self._handles[key] = handle
        entry.status = "running"
        entry.append_log(f"{LOG_PREFIX} started {config.command} (pid {process.pid})")

        handle.readers = [
            asyncio.create_task(self._read_stream(entry, stream, prefix))
            for stream, prefix in ((process.stdout, ""), (process.stderr, STDERR_PREFIX))
            if stream is not None
        ]
        handle.watcher = asyncio.create_task(self._watch(handle))

        logger.info("Started server '%s' (%s), pid %d", entry.name, entry.scope, process.pid)
        self.notifier.publish()
        return True

    async def _read_stream(
        self, entry: ServerEntry, stream: asyncio.StreamReader, prefix: str
    ) -> None:
        while True:
            try:
                line = await stream.readline()
            except ValueError:
                # Line exceeded STREAM_LIMIT; the reader has discarded it
                logger.warning("Dropped an oversized output line from '%s'", entry.name)
                continue
            if not line:
                break
            entry.append_log(prefix + line.decode("utf-8", errors="replace").rstrip("\r\n"))

    async def _watch(self, handle: _ProcessHandle) -> None:
        """Exit handler: attribute the exit, untrack the handle, publish."""
        entry = handle.entry
        returncode = await handle.process.wait()

        # Let buffered output land before reporting the exit
        if handle.readers:
            _, pending = await asyncio.wait(handle.readers, timeout=READER_DRAIN_TIMEOUT)
            for task in pending:
                task.cancel()
        if handle.process.stdin is not None:
            handle.process.stdin.close()

        deliberate = handle.stop_requested
        handle.stop_requested = False

        if deliberate:
            entry.status = "stopped"
            logger.info("Server '%s' (%s) stopped", entry.name, entry.scope)
        else:
            entry.status = "error"
            logger.warning(
                "Server '%s' (%s) exited unexpectedly with code %s",
                entry.name, entry.scope, returncode,
            )
        entry.append_log(f"{LOG_PREFIX} process exited with code {returncode}")

        if self._handles.get(entry.key) is handle:
            del self._handles[entry.key]
        handle.exited.set()
        self.notifier.publish()

    @staticmethod
    async def _wait_exited(handle: _ProcessHandle, timeout: float | None) -> bool:
        try:
            await asyncio.wait_for(handle.exited.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def _stop(self, entry: ServerEntry) -> StopOutcome:
        handle = self._handles.get(entry.key)
        if handle is None:
            logger.debug("Server '%s' (%s) is not running", entry.name, entry.scope)
            return "not-running"

        handle.stop_requested = True
        try:
            handle.process.terminate()
        except ProcessLookupError:
            pass  # Already exited, the watcher will report it

        if await self._wait_exited(handle, self.stop_timeout):
            return "stopped"

        logger.warning(
            "Server '%s' (%s) did not exit within %.1fs, killing",
            entry.name, entry.scope, self.stop_timeout,
        )
        entry.append_log(f"{LOG_PREFIX} no exit after {self.stop_timeout:g}s, killing")
        try:
            handle.process.kill()
        except ProcessLookupError:
            pass

        if await self._wait_exited(handle, self.kill_timeout):
            return "killed"

        logger.error(
            "Server '%s' (%s) pid %d did not exit after kill",
            entry.name, entry.scope, handle.process.pid,
        )
        return "failed"

    async def stop(self, entry: ServerEntry) -> bool:
        """Terminate the process of an entry and wait for it to exit.

        ABOUTME: No-op returning False if nothing is tracked for the entry
        ABOUTME: Escalates to kill after stop_timeout
        ABOUTME: Status becomes "stopped" only once the exit is observed

        Returns:
            True if the process exit was confirmed
        """
        outcome = await self._stop(entry)
        if outcome == "not-running":
            return False
        self.notifier.publish()
        return outcome in ("stopped", "killed")

    async def restart(self, entry: ServerEntry) -> bool:
        """Stop the entry (if running) and start it again.

        ABOUTME: Fails without spawning if the old process did not stop cleanly
        ABOUTME: A forced kill counts as a timed-out stop, as in stop_all

        Returns:
            True if a new process was started
        """
        if entry.key in self._handles:
            outcome = await self._stop(entry)
            if outcome in ("killed", "failed"):
                logger.error(
                    "Not restarting '%s' (%s): stop timed out (%s)",
                    entry.name, entry.scope, outcome,
                )
                self.notifier.publish()
                return False
        return await self.start(entry)

    async def stop_all(self) -> StopAllReport:
        """Stop every tracked process concurrently, best-effort.

        ABOUTME: Continues past individual failures
        ABOUTME: Waits for in-flight starts, refuses new ones until done
        ABOUTME: Must be awaited on teardown

        Returns:
            StopAllReport listing clean stops and failures
        """
        self._closing = True
        try:
            while self._starting:
                await asyncio.gather(*(event.wait() for event in list(self._starting.values())))
            entries = self.tracked()
            report = StopAllReport()
            if not entries:
                return report

            outcomes = await asyncio.gather(
                *(self._stop(entry) for entry in entries),
                return_exceptions=True,
            )
        finally:
            self._closing = False

        for entry, outcome in zip(entries, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.error("Error stopping '%s' (%s): %s", entry.name, entry.scope, outcome)
                report.failed.append(entry)
            else:
                report.add_result(entry, outcome)

        if report.failed:
            logger.warning(report.summary())
        else:
            logger.info(report.summary())
        self.notifier.publish()
        return report
