# Runtime tunables for mcplens, read from the environment
import os
from collections.abc import Mapping
from dataclasses import dataclass

from mcplens.models import DEFAULT_LOG_BUFFER_SIZE

# ABOUTME: Prefix shared by every mcplens environment variable
ENV_PREFIX = "MCPLENS_"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Settings:
    """Supervisor and logging tunables.

    ABOUTME: stop_timeout is the grace period between terminate and kill
    ABOUTME: kill_timeout bounds the wait for exit after a forced kill
    """
    stop_timeout: float = 5.0
    kill_timeout: float = 2.0
    log_buffer_size: int = DEFAULT_LOG_BUFFER_SIZE
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        if self.stop_timeout <= 0:
            raise ValueError(f"stop_timeout must be positive, got {self.stop_timeout}")
        if self.kill_timeout <= 0:
            raise ValueError(f"kill_timeout must be positive, got {self.kill_timeout}")
        if self.log_buffer_size < 1:
            raise ValueError(f"log_buffer_size must be at least 1, got {self.log_buffer_size}")
        if self.log_level not in LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {', '.join(LOG_LEVELS)}, got '{self.log_level}'"
            )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from MCPLENS_* environment variables.

        ABOUTME: Unset variables keep their defaults
        ABOUTME: Fail-fast with ValueError naming the offending variable

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            Settings instance
        """
        source = os.environ if environ is None else environ
        values: dict[str, float | int | str] = {}

        def lookup(name: str) -> str | None:
            raw = source.get(ENV_PREFIX + name)
            return raw.strip() if raw is not None and raw.strip() else None

        for name, field_name, convert in (
            ("STOP_TIMEOUT", "stop_timeout", float),
            ("KILL_TIMEOUT", "kill_timeout", float),
            ("LOG_LINES", "log_buffer_size", int),
        ):
            raw = lookup(name)
            if raw is None:
                continue
            try:
                values[field_name] = convert(raw)
            except ValueError as e:
                raise ValueError(f"{ENV_PREFIX}{name} is not a valid number: {raw!r}") from e

        level = lookup("LOG_LEVEL")
        if level is not None:
            values["log_level"] = level.upper()

        return cls(**values)  # type: ignore[arg-type]
