"""Shared pytest fixtures for ci_snapshot tests."""

from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import git
import pytest

from ci_snapshot.config import CircleCIConfig
from ci_snapshot.exceptions import NotFoundError


class FakeClient:
    """Stands in for CircleCIAPIClient: canned JSON per (method, path), records every call."""

    def __init__(self, routes: Optional[Dict[Tuple[str, str], Any]] = None, *, delays: Optional[Dict[str, float]] = None):
        self.routes: Dict[Tuple[str, str], Any] = dict(routes or {})
        self.delays: Dict[str, float] = dict(delays or {})
        self.calls: List[Tuple[str, str, Optional[Dict[str, Any]]]] = []
        self._mu = threading.Lock()

    def request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None, *, label: Optional[str] = None) -> Any:
        with self._mu:
            self.calls.append((method, path, dict(params) if params else None))
        if path in self.delays:
            time.sleep(self.delays[path])
        key = (method, path)
        if key not in self.routes:
            raise NotFoundError(status_code=404, endpoint=path, message=f"no route for {method} {path}")
        value = self.routes[key]
        if isinstance(value, BaseException):
            raise value
        if callable(value):
            return value(params)
        return value

    def get(self, path: str, params: Optional[Dict[str, Any]] = None, *, label: Optional[str] = None) -> Any:
        return self.request("GET", path, params, label=label)

    def post(self, path: str, params: Optional[Dict[str, Any]] = None, *, label: Optional[str] = None) -> Any:
        return self.request("POST", path, params, label=label)

    def paths(self, method: Optional[str] = None) -> List[str]:
        return [p for (m, p, _) in self.calls if method is None or m == method]


def circleci_routes(
    *,
    slug: str = "gh/acme/widgets",
    pipelines: Optional[List[Dict[str, Any]]] = None,
    workflows: Optional[Dict[str, List[Dict[str, Any]]]] = None,
    jobs: Optional[Dict[str, List[Dict[str, Any]]]] = None,
) -> Dict[Tuple[str, str], Any]:
    """Build FakeClient routes for one project.

    Args:
        pipelines: pipeline list items (newest first)
        workflows: pipeline_id -> workflow items
        jobs: workflow_id -> job items
    """
    routes: Dict[Tuple[str, str], Any] = {
        ("GET", f"/project/{slug}"): {"slug": slug, "name": slug.rsplit("/", 1)[-1], "id": "proj-1"},
        ("GET", f"/project/{slug}/pipeline"): {"items": list(pipelines or []), "next_page_token": None},
    }
    for pid, wfs in (workflows or {}).items():
        routes[("GET", f"/pipeline/{pid}/workflow")] = {"items": list(wfs), "next_page_token": None}
    for wid, js in (jobs or {}).items():
        routes[("GET", f"/workflow/{wid}/job")] = {"items": list(js), "next_page_token": None}
    return routes


@pytest.fixture
def config() -> CircleCIConfig:
    return CircleCIConfig(token="tok", organization="acme", repo_name="widgets")


@pytest.fixture
def make_repo(tmp_path: Path) -> Callable[..., Path]:
    """Create a git repo named `widgets` on branch `main`, optionally with a CircleCI config."""

    def _make(*, ci_config: bool = True, name: str = "widgets", origin: str = "git@github.com:acme/widgets.git") -> Path:
        root = tmp_path / name
        root.mkdir()
        repo = git.Repo.init(str(root))
        repo.git.symbolic_ref("HEAD", "refs/heads/main")
        if origin:
            repo.create_remote("origin", origin)
        if ci_config:
            (root / ".circleci").mkdir()
            (root / ".circleci" / "config.yml").write_text("version: 2.1\n")
        repo.close()
        return root

    return _make
