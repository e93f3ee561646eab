# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Map a displayed workflow/job line back to what it represents.

Two entry points:
- `resolve_key()`  : match on the stable LineKey the renderer emits next to each line.
- `resolve_line()` : compatibility path that re-parses the rendered text.

Text path rules (kept exactly):
  1. split on " - "; if the line contains "approve" the filter name is segment 0,
     otherwise segment 1
  2. first workflow (snapshot order) with a job named like the filter name wins;
     inside it, the first such job
  3. approval lines only: otherwise the first workflow *named* like the filter name
     that holds an approval job
  4. nothing matched -> BuildNotFound

Known limitation: names that themselves contain " - " are not supported.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

from .config import CircleCIConfig
from .exceptions import BuildNotFound
from .types import JobRecord, WorkflowRecord

logger = logging.getLogger(__name__)

LINE_SEPARATOR = " - "
APPROVAL_MARKER = "approve"
PENDING_APPROVAL_MARKER = "wait for"


@dataclass(frozen=True)
class LineKey:
    """Opaque identity of a rendered line: a workflow, or one job inside it."""
    workflow_id: str
    job_name: Optional[str] = None


@dataclass(frozen=True)
class BrowseTarget:
    url: str


@dataclass(frozen=True)
class ApprovalTarget:
    """POST-only target; not browsable."""
    workflow_id: str
    approval_request_id: str

    @property
    def path(self) -> str:
        return f"/workflow/{self.workflow_id}/approve/{self.approval_request_id}"


Target = Union[BrowseTarget, ApprovalTarget]


@dataclass(frozen=True)
class Resolution:
    workflow: WorkflowRecord
    job: Optional[JobRecord]
    target: Target


def is_pending_approval_line(line: str) -> bool:
    return PENDING_APPROVAL_MARKER in str(line or "").lower()


def filter_name_from_line(line: str) -> Optional[str]:
    """Job name a display line refers to, or None if the line has no such segment."""
    parts = str(line or "").split(LINE_SEPARATOR)
    idx = 0 if APPROVAL_MARKER in str(line or "") else 1
    return parts[idx] if len(parts) > idx else None


def browse_url(config: CircleCIConfig, workflow: WorkflowRecord, job_number: Optional[int] = None) -> str:
    """e.g. https://app.circleci.com/pipelines/gh/acme/widgets/57/workflows/wf1/jobs/101"""
    url = (
        f"{str(config.web_host).rstrip('/')}/pipelines/{config.vcs}/{config.organization}/{config.repo_name}"
        f"/{int(workflow.pipeline_number)}/workflows/{workflow.workflow_id}"
    )
    if job_number is not None:
        url += f"/jobs/{int(job_number)}"
    return url


def target_for(config: CircleCIConfig, workflow: WorkflowRecord, job: Optional[JobRecord]) -> Target:
    if job is not None and job.approval_request_id is not None:
        return ApprovalTarget(workflow_id=workflow.workflow_id, approval_request_id=job.approval_request_id)
    return BrowseTarget(url=browse_url(config, workflow, job.job_number if job is not None else None))


def _first_job_named(workflow: WorkflowRecord, name: str) -> Optional[JobRecord]:
    for job in workflow.jobs:
        if job.name == name:
            return job
    return None


def _match_line(workflows: Sequence[WorkflowRecord], line: str) -> Tuple[WorkflowRecord, JobRecord]:
    name = filter_name_from_line(line)
    if name is None:
        raise BuildNotFound(line, "no job segment")

    for wf in workflows:
        job = _first_job_named(wf, name)
        if job is not None:
            return wf, job

    # Approval headings may carry the workflow's name rather than the gate job's.
    if APPROVAL_MARKER in line:
        for wf in workflows:
            if wf.workflow_name != name:
                continue
            for job in wf.jobs:
                if job.approval_request_id is not None:
                    return wf, job

    raise BuildNotFound(line, f"no job named {name!r}")


def resolve_line(config: CircleCIConfig, workflows: Sequence[WorkflowRecord], line: str) -> Resolution:
    """Resolve rendered text to a browse URL or approval target.

    Raises:
        BuildNotFound: nothing in `workflows` matches the line
    """
    wf, job = _match_line(workflows or [], str(line or ""))
    target = target_for(config, wf, job)
    logger.debug("Resolved %r -> workflow %s job %r -> %s", line, wf.workflow_id, job.name, target)
    return Resolution(workflow=wf, job=job, target=target)


def resolve_key(config: CircleCIConfig, workflows: Sequence[WorkflowRecord], key: LineKey) -> Resolution:
    """Resolve a LineKey; a key without `job_name` targets the workflow page.

    Raises:
        BuildNotFound: no workflow with that id, or no such job in it
    """
    for wf in workflows or []:
        if wf.workflow_id != key.workflow_id:
            continue
        if key.job_name is None:
            return Resolution(workflow=wf, job=None, target=target_for(config, wf, None))
        job = _first_job_named(wf, key.job_name)
        if job is None:
            break
        return Resolution(workflow=wf, job=job, target=target_for(config, wf, job))
    raise BuildNotFound(f"{key.workflow_id}:{key.job_name or ''}", "no such workflow/job in snapshot")
