# mcplens - Explorer and supervisor for global and project MCP servers
# ABOUTME: Version information
__version__ = "0.1.0"

# ABOUTME: Export core data models
# ABOUTME: Export config loading, registry and supervisor
from mcplens.app import Lens
from mcplens.config import get_global_config_path, get_local_config_path, read_config_file
from mcplens.models import (
    CommandDefinition,
    InputDefinition,
    ParsedFile,
    ServerConfig,
    ServerEntry,
)
from mcplens.notifier import Notifier
from mcplens.registry import Registry
from mcplens.settings import Settings
from mcplens.supervisor import ProcessSupervisor, StopAllReport

__all__ = [
    "__version__",
    "CommandDefinition",
    "InputDefinition",
    "Lens",
    "Notifier",
    "ParsedFile",
    "ProcessSupervisor",
    "Registry",
    "ServerConfig",
    "ServerEntry",
    "Settings",
    "StopAllReport",
    "get_global_config_path",
    "get_local_config_path",
    "read_config_file",
]
