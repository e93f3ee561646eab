# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Local repository facts: working tree root, git dir, current branch, CI config presence."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import git  # GitPython

logger = logging.getLogger(__name__)

CI_CONFIG_CANDIDATES = (".circleci/config.yml", ".circleci/config.yaml")

# git@github.com:acme/widgets.git | https://github.com/acme/widgets(.git) | ssh://git@host/acme/widgets
_REMOTE_RE = re.compile(r"[:/](?P<org>[^/:]+)/(?P<repo>[^/]+?)(?:\.git)?/?$")


def parse_remote_url(url: str) -> Optional[tuple]:
    """Return (org, repo) parsed from a git remote URL, or None."""
    m = _REMOTE_RE.search(str(url or "").strip())
    if not m:
        return None
    return m.group("org"), m.group("repo")


@dataclass(frozen=True)
class RepoInfo:
    """Where a repository lives and what is checked out."""
    root: Path
    git_dir: Path
    branch: Optional[str]  # None when HEAD is detached
    origin_url: Optional[str] = None

    @property
    def name(self) -> str:
        return self.root.name

    def has_ci_config(self) -> bool:
        return any((self.root / rel).is_file() for rel in CI_CONFIG_CANDIDATES)

    def organization_from_remote(self) -> Optional[str]:
        parsed = parse_remote_url(self.origin_url or "")
        return parsed[0] if parsed else None

    @classmethod
    def discover(cls, path: Path) -> "RepoInfo":
        """Open the repository containing `path`.

        Raises:
            git.InvalidGitRepositoryError / git.NoSuchPathError if `path` is not in a repo.
        """
        repo = git.Repo(str(path), search_parent_directories=True)
        try:
            root = Path(repo.working_tree_dir or path).resolve()
            git_dir = Path(repo.git_dir).resolve()

            # Get current branch (handle detached HEAD state)
            branch: Optional[str] = None
            if not repo.head.is_detached:
                try:
                    branch = repo.active_branch.name
                except TypeError:
                    branch = None

            origin_url: Optional[str] = None
            try:
                origin_url = next(iter(repo.remote("origin").urls), None)
            except (ValueError, git.GitCommandError):
                origin_url = None

            logger.debug("Repository %s (git dir %s) on branch %s", root, git_dir, branch)
            return cls(root=root, git_dir=git_dir, branch=branch, origin_url=origin_url)
        finally:
            repo.close()
