# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Top-level context: owns the client, the builder and the snapshot cache.

Construct one `CIContext` per process (or per editor session) and pass it around;
there is no module-level cache.

Example:
    ctx = CIContext.for_repo(Path.cwd(), organization="acme")
    ctx.pull()
    for line in ctx.render():
        print(line.text)
    url = ctx.browse_url("101 - unit-tests")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .builder import SnapshotBuilder
from .client import CircleCIAPIClient
from .config import CircleCIConfig
from .exceptions import BuildNotFound, CISnapshotError, NoCIActivity
from .render import RenderedLine, render_lines
from .repo import RepoInfo
from .resolver import (
    ApprovalTarget,
    BrowseTarget,
    LineKey,
    Resolution,
    is_pending_approval_line,
    resolve_key,
    resolve_line,
)
from .snapshot_cache import SnapshotCache, default_cache_file
from .types import WorkflowRecord

logger = logging.getLogger(__name__)


@dataclass
class CIContext:
    config: CircleCIConfig
    repo: RepoInfo
    client: CircleCIAPIClient
    cache: SnapshotCache
    builder: SnapshotBuilder

    @classmethod
    def for_repo(
        cls,
        path: Path,
        *,
        config: Optional[CircleCIConfig] = None,
        client: Optional[CircleCIAPIClient] = None,
        cache_file: Optional[Path] = None,
        **config_overrides,
    ) -> "CIContext":
        """Discover the repository at `path` and wire up all collaborators.

        `config_overrides` are forwarded to `CircleCIConfig.from_sources()` when no
        config is given. Missing organization falls back to the `origin` remote.
        """
        repo = RepoInfo.discover(Path(path))
        cfg = config or CircleCIConfig.from_sources(**config_overrides)
        cfg = cfg.with_repo_name(repo.name).with_organization(repo.organization_from_remote())
        api = client or CircleCIAPIClient(cfg)
        cache = SnapshotCache(cache_file=cache_file or default_cache_file(repo.git_dir))
        builder = SnapshotBuilder(api, cfg, has_ci_config=repo.has_ci_config)
        return cls(config=cfg, repo=repo, client=api, cache=cache, builder=builder)

    def _branch(self, branch: Optional[str]) -> str:
        b = branch or self.repo.branch
        if not b:
            raise CISnapshotError("HEAD is detached; pass a branch name explicitly")
        return str(b)

    def pull(self, branch: Optional[str] = None) -> List[WorkflowRecord]:
        """Fetch the branch's newest pipeline and replace its cache entry.

        - No CI config: returns [] and leaves the cache untouched (no network calls).
        - ProjectNotFound / NoPipeline: stores [] for the branch (nothing to show).
        - TransportError / DecodeError: propagate; the cache is unchanged.
        """
        b = self._branch(branch)
        if not self.repo.has_ci_config():
            logger.info("No CircleCI config in %s; nothing to pull", self.repo.root)
            return []
        self.config.require_network()
        logger.info("Pulling CircleCI state for %s (%s)", b, self.config.project_slug)
        try:
            workflows = self.builder.build(b)
        except NoCIActivity as e:
            logger.info("No CI activity for %s: %s", b, e)
            workflows = []
        self.cache.update(b, workflows)
        return workflows

    def snapshot(self, branch: Optional[str] = None) -> List[WorkflowRecord]:
        return self.cache.get(self._branch(branch))

    def render(self, branch: Optional[str] = None) -> List[RenderedLine]:
        return render_lines(self.snapshot(branch))

    def resolve(self, line: str, branch: Optional[str] = None) -> Resolution:
        return resolve_line(self.config, self.snapshot(branch), line)

    def browse_url(self, line: str, branch: Optional[str] = None) -> str:
        """Browse URL for a job/workflow line.

        Raises:
            BuildNotFound: the line does not resolve, or resolves to an approval gate
        """
        res = self.resolve(line, branch)
        if not isinstance(res.target, BrowseTarget):
            raise BuildNotFound(line, "line is a pending approval, not a browsable job")
        return res.target.url

    def browse_url_for_key(self, key: LineKey, branch: Optional[str] = None) -> str:
        res = resolve_key(self.config, self.snapshot(branch), key)
        if not isinstance(res.target, BrowseTarget):
            raise BuildNotFound(f"{key.workflow_id}:{key.job_name or ''}", "pending approval, not browsable")
        return res.target.url

    def approve_line(self, line: str, branch: Optional[str] = None) -> bool:
        """Approve the gate shown on `line`, then pull again.

        Returns:
            False if the line is not a pending-approval line (no-op), True once
            the approval POST succeeded and the branch was re-pulled.

        Raises:
            BuildNotFound: the line does not resolve to an approval gate
            TransportError / DecodeError: the POST failed (no re-pull happens)
        """
        if not is_pending_approval_line(line):
            logger.debug("Not a pending-approval line: %r", line)
            return False
        b = self._branch(branch)
        res = resolve_line(self.config, self.snapshot(b), line)
        if not isinstance(res.target, ApprovalTarget):
            raise BuildNotFound(line, "matched job has no approval request")
        self._approve(res.target)
        self.pull(b)
        return True

    def approve_key(self, key: LineKey, branch: Optional[str] = None) -> bool:
        b = self._branch(branch)
        res = resolve_key(self.config, self.snapshot(b), key)
        if not isinstance(res.target, ApprovalTarget):
            return False
        self._approve(res.target)
        self.pull(b)
        return True

    def _approve(self, target: ApprovalTarget) -> None:
        self.config.require_network()
        logger.info("Approving request %s of workflow %s", target.approval_request_id, target.workflow_id)
        self.client.post(target.path, label="approve")
