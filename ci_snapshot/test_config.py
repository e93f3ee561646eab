"""
Pytest tests for ci_snapshot/config.py and ci_snapshot/repo.py.

HOME is pointed at tmp_path so the real ~/.config and ~/.circleci are never read.
"""

from pathlib import Path

import pytest

from ci_snapshot.config import CircleCIConfig, read_cli_config
from ci_snapshot.exceptions import ConfigError
from ci_snapshot.repo import RepoInfo, parse_remote_url


@pytest.fixture
def home(tmp_path, monkeypatch):
    h = tmp_path / "home"
    h.mkdir()
    monkeypatch.setenv("HOME", str(h))
    for var in ("CIRCLECI_TOKEN", "CIRCLECI_HOST", "CIRCLECI_ORG", "CIRCLECI_VCS"):
        monkeypatch.delenv(var, raising=False)
    return h


def _write_cli_yml(home: Path, text: str) -> None:
    (home / ".circleci").mkdir(exist_ok=True)
    (home / ".circleci" / "cli.yml").write_text(text)


# ============================================================================
# Token / host precedence
# ============================================================================

def test_defaults_without_any_source(home):
    cfg = CircleCIConfig.from_sources()
    assert cfg.token is None
    assert cfg.host == "https://circleci.com"
    assert cfg.api_base_url == "https://circleci.com/api/v2"
    assert cfg.web_host == "https://app.circleci.com"
    assert cfg.vcs == "gh"
    assert cfg.max_workers == 8


def test_cli_yml_is_last_resort(home):
    _write_cli_yml(home, "host: https://circleci.example.com\nendpoint: graphql-unstable\ntoken: from-yml\n")
    cfg = CircleCIConfig.from_sources()
    assert cfg.token == "from-yml"
    assert cfg.host == "https://circleci.example.com"


def test_token_file_beats_cli_yml(home):
    _write_cli_yml(home, "token: from-yml\n")
    (home / ".config").mkdir()
    (home / ".config" / "circleci-token").write_text("from-file\n")
    assert CircleCIConfig.from_sources().token == "from-file"


def test_env_beats_files_and_args_beat_env(home, monkeypatch):
    (home / ".config").mkdir()
    (home / ".config" / "circleci-token").write_text("from-file\n")
    monkeypatch.setenv("CIRCLECI_TOKEN", "from-env")
    monkeypatch.setenv("CIRCLECI_ORG", "env-org")
    assert CircleCIConfig.from_sources().token == "from-env"
    assert CircleCIConfig.from_sources().organization == "env-org"
    cfg = CircleCIConfig.from_sources(token="from-arg", organization="arg-org")
    assert (cfg.token, cfg.organization) == ("from-arg", "arg-org")


def test_unreadable_cli_yml_is_ignored(home):
    _write_cli_yml(home, "token: [unclosed\n")
    assert read_cli_config() == {}
    assert CircleCIConfig.from_sources().token is None


def test_require_network():
    with pytest.raises(ConfigError) as ei:
        CircleCIConfig(organization="acme", repo_name="w").require_network()
    assert "token" in str(ei.value)
    CircleCIConfig(token="t", organization="acme", repo_name="w").require_network()


def test_with_helpers_do_not_override_explicit_values():
    cfg = CircleCIConfig(organization="explicit", repo_name="explicit-repo")
    assert cfg.with_organization("remote").organization == "explicit"
    assert cfg.with_repo_name("dir").repo_name == "explicit-repo"
    assert CircleCIConfig().with_repo_name("dir").project_slug == "gh//dir"


# ============================================================================
# Repository facts
# ============================================================================

@pytest.mark.parametrize(
    "url,expected",
    [
        ("git@github.com:acme/widgets.git", ("acme", "widgets")),
        ("https://github.com/acme/widgets", ("acme", "widgets")),
        ("https://github.com/acme/widgets.git/", ("acme", "widgets")),
        ("ssh://git@bitbucket.org/team/proj.git", ("team", "proj")),
        ("", None),
    ],
)
def test_parse_remote_url(url, expected):
    assert parse_remote_url(url) == expected


def test_repo_discover(make_repo):
    root = make_repo()
    info = RepoInfo.discover(root / ".circleci")  # any path inside the work tree
    assert info.root == root.resolve()
    assert info.git_dir == (root / ".git").resolve()
    assert info.branch == "main"
    assert info.name == "widgets"
    assert info.has_ci_config()
    assert info.organization_from_remote() == "acme"


def test_repo_without_ci_config(make_repo):
    info = RepoInfo.discover(make_repo(ci_config=False, origin=""))
    assert not info.has_ci_config()
    assert info.origin_url is None
    assert info.organization_from_remote() is None
