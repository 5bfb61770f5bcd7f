# ABOUTME: Utility modules for mcplens
# ABOUTME: Exports env expansion helpers

from mcplens.utils.env import ENV_VAR_PATTERN, expand_env_vars

__all__ = [
    "ENV_VAR_PATTERN",
    "expand_env_vars",
]
