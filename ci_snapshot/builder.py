# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Assemble one branch's snapshot from the CircleCI API.

Call chain (per pull):
  GET /project/{slug}                          -> ProjectNotFound if missing
  GET /project/{slug}/pipeline?branch=<b>      -> newest pipeline is items[0]; NoPipeline if empty
  GET /pipeline/{id}/workflow                  -> workflows (provider order)
  GET /workflow/{id}/job   (one per workflow, bounded thread pool)

The returned list is in workflow order from the API, not in fetch-completion order.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote

from .client import CircleCIAPIClient
from .config import CircleCIConfig
from .exceptions import NoPipeline, NotFoundError, ProjectNotFound
from .types import JobRecord, PipelineRef, WorkflowRecord

logger = logging.getLogger(__name__)

MAX_PAGES = 20
# ^ Safety cap when following `next_page_token` on workflow/job lists.


def _items(payload: Any) -> List[Dict[str, Any]]:
    if isinstance(payload, dict) and isinstance(payload.get("items"), list):
        return [it for it in payload["items"] if isinstance(it, dict)]
    return []


class SnapshotBuilder:
    """Fetches project -> newest pipeline -> workflows -> jobs for a branch."""

    def __init__(
        self,
        client: CircleCIAPIClient,
        config: CircleCIConfig,
        *,
        has_ci_config: Callable[[], bool],
    ):
        self.client = client
        self.config = config
        self._has_ci_config = has_ci_config

    def _slug_path(self) -> str:
        return quote(self.config.project_slug, safe="/")

    def _get_all_pages(self, path: str, *, label: str) -> List[Dict[str, Any]]:
        out: List[Dict[str, Any]] = []
        page_token: Optional[str] = None
        for _ in range(MAX_PAGES):
            params = {"page-token": page_token} if page_token else None
            payload = self.client.get(path, params, label=label)
            out.extend(_items(payload))
            page_token = payload.get("next_page_token") if isinstance(payload, dict) else None
            if not page_token:
                break
        else:
            logger.warning("Stopped after %d pages of %s; remaining items were not fetched", MAX_PAGES, path)
        return out

    def fetch_project(self) -> Dict[str, Any]:
        slug = self.config.project_slug
        try:
            project = self.client.get(f"/project/{self._slug_path()}", label="project")
        except NotFoundError as e:
            raise ProjectNotFound(f"CircleCI project not found: {slug}") from e
        if not isinstance(project, dict) or not project.get("slug"):
            raise ProjectNotFound(f"CircleCI project not found: {slug}")
        return project

    def fetch_latest_pipeline(self, branch: str) -> PipelineRef:
        payload = self.client.get(f"/project/{self._slug_path()}/pipeline", {"branch": branch}, label="pipelines")
        items = _items(payload)
        if not items:
            raise NoPipeline(f"No pipelines for branch {branch!r} in {self.config.project_slug}", branch=branch)
        # Newest first: the provider sorts pipelines by creation time, descending.
        return PipelineRef.from_api(items[0])

    def fetch_workflows(self, pipeline: PipelineRef) -> List[Dict[str, Any]]:
        return self._get_all_pages(f"/pipeline/{pipeline.id}/workflow", label="workflows")

    def fetch_jobs(self, workflow_id: str) -> List[JobRecord]:
        return [JobRecord.from_api(it) for it in self._get_all_pages(f"/workflow/{workflow_id}/job", label="jobs")]

    def build(self, branch: str) -> List[WorkflowRecord]:
        """Return the workflows of `branch`'s newest pipeline.

        Returns [] without any network call if the repository has no CircleCI config.

        Raises:
            ProjectNotFound, NoPipeline: nothing to show for this branch
            TransportError, DecodeError: propagated from the client
        """
        if not self._has_ci_config():
            logger.info("No .circleci/config.yml in repository; skipping pull for %s", branch)
            return []

        t0 = time.monotonic()
        self.fetch_project()
        pipeline = self.fetch_latest_pipeline(branch)
        workflows = self.fetch_workflows(pipeline)
        logger.debug("Pipeline #%d (%s) has %d workflow(s)", pipeline.number, pipeline.id, len(workflows))

        def fetch_one(wf: Dict[str, Any]) -> WorkflowRecord:
            wf_id = str(wf.get("id") or "")
            return WorkflowRecord(
                workflow_id=wf_id,
                workflow_name=str(wf.get("name") or ""),
                workflow_status=str(wf.get("status") or "unknown"),
                pipeline_number=int(wf.get("pipeline_number") or pipeline.number),
                branch=branch,
                jobs=self.fetch_jobs(wf_id),
            )

        out: List[WorkflowRecord] = []
        if workflows:
            max_workers = max(1, min(int(self.config.max_workers), len(workflows)))
            with ThreadPoolExecutor(max_workers=max_workers) as ex:
                futures = [ex.submit(fetch_one, wf) for wf in workflows]
                # Collect in submission order to keep the provider's workflow order.
                for fut in futures:
                    out.append(fut.result())

        logger.info(
            "Pulled %s: pipeline #%d, %d workflow(s), %d job(s) in %.2fs",
            branch,
            pipeline.number,
            len(out),
            sum(len(w.jobs) for w in out),
            max(0.0, time.monotonic() - t0),
        )
        return out
