# Tests for environment variable expansion
import warnings

from mcplens.utils.env import ENV_VAR_PATTERN, expand_env_vars


def test_expand_single_env_var(monkeypatch):
    """Test expanding a single environment variable."""
    monkeypatch.setenv("HOME", "/home/user")

    result = expand_env_vars("${HOME}/projects")
    assert result == "/home/user/projects"


def test_expand_multiple_vars(monkeypatch):
    """Test expanding multiple variables in one string."""
    monkeypatch.setenv("HOME", "/home/user")
    monkeypatch.setenv("PROJECT", "myproject")

    result = expand_env_vars("${HOME}/${PROJECT}")
    assert result == "/home/user/myproject"


def test_expand_env_prefix(monkeypatch):
    """Test VS Code style ${env:Name} references, any case."""
    monkeypatch.setenv("GithubToken", "ghp_xxxx")

    result = expand_env_vars("--token=${env:GithubToken}")
    assert result == "--token=ghp_xxxx"


def test_expand_from_explicit_mapping():
    """Test expanding from a mapping instead of os.environ."""
    result = expand_env_vars("${API_KEY}", environ={"API_KEY": "secret"})
    assert result == "secret"


def test_missing_var_returns_original(monkeypatch):
    """Test that missing variables are kept and a warning is emitted."""
    monkeypatch.delenv("MCPLENS_UNSET_VAR", raising=False)

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        result = expand_env_vars("npx ${MCPLENS_UNSET_VAR}")

    assert result == "npx ${MCPLENS_UNSET_VAR}"
    assert len(caught) == 1
    assert "MCPLENS_UNSET_VAR" in str(caught[0].message)


def test_editor_placeholders_untouched():
    """Test that ${input:...} and ${workspaceFolder} are not expanded."""
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        result = expand_env_vars("${workspaceFolder}/${input:api-key}")

    assert result == "${workspaceFolder}/${input:api-key}"
    assert caught == []


def test_no_vars_unchanged():
    """Test plain strings pass through."""
    assert expand_env_vars("npx -y server") == "npx -y server"


def test_pattern_matches_both_forms():
    """Test the pattern recognises both reference forms."""
    assert ENV_VAR_PATTERN.fullmatch("${MY_VAR}")
    assert ENV_VAR_PATTERN.fullmatch("${env:myVar}")
    assert not ENV_VAR_PATTERN.fullmatch("${lower}")
    assert not ENV_VAR_PATTERN.fullmatch("$MY_VAR")
