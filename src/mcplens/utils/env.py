# Environment variable expansion utilities
import os
import re
import warnings

# ABOUTME: Matches ${VAR_NAME} (uppercase) and VS Code style ${env:AnyName}
# ABOUTME: ${input:id} and ${workspaceFolder} do not match and are kept as written
ENV_VAR_PATTERN = re.compile(
    r'\$\{(?:env:([A-Za-z_][A-Za-z0-9_]*)|([A-Z_][A-Z0-9_]*))\}'
)


def expand_env_vars(value: str, environ: dict[str, str] | None = None) -> str:
    """Expand environment variables in ${VAR} or ${env:VAR} format.

    ABOUTME: Returns original reference if variable not found (with warning)

    Args:
        value: String potentially containing variable references
        environ: Mapping to expand from (defaults to os.environ)

    Returns:
        String with environment variables expanded

    Examples:
        >>> expand_env_vars("${HOME}/projects")
        '/Users/user/projects'
        >>> expand_env_vars("--token=${env:GithubToken}")
        '--token=ghp_xxxx'
    """
    source = os.environ if environ is None else environ

    def replace_var(match: re.Match[str]) -> str:
        var_name = match.group(1) or match.group(2)
        if var_name in source:
            return source[var_name]
        warnings.warn(
            f"Environment variable '{var_name}' not found, keeping original",
            UserWarning,
            stacklevel=3
        )
        return match.group(0)

    return ENV_VAR_PATTERN.sub(replace_var, value)
