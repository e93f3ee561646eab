# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Plain-text rendering of a branch snapshot.

Each line is a view-model: the human text plus a stable LineKey. Callers that can
keep the key next to the text (editor sections, menus) should resolve with
`resolver.resolve_key`; the text itself stays parseable by `resolver.resolve_line`.

Line formats:
  workflow heading   "<workflow_name> (<workflow_status>)"
  executed job       "<job_number> - <job_name>"
  approval gate      "<job_name> - Wait for approve"
  job without ids    "- - <job_name>"
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from .resolver import LINE_SEPARATOR, LineKey
from .types import CIStatus, JobRecord, WorkflowRecord, is_failure, is_pending, is_success

APPROVAL_SUFFIX = "Wait for approve"


@dataclass(frozen=True)
class RenderedLine:
    """View-model for one rendered line (depth 0 = workflow, 1 = job)."""
    text: str
    key: LineKey
    status: str
    depth: int = 0


def job_text(job: JobRecord) -> str:
    if job.approval_request_id is not None:
        return f"{job.name}{LINE_SEPARATOR}{APPROVAL_SUFFIX}"
    if job.job_number is not None:
        return f"{int(job.job_number)}{LINE_SEPARATOR}{job.name}"
    return f"-{LINE_SEPARATOR}{job.name}"


def workflow_text(workflow: WorkflowRecord) -> str:
    return f"{workflow.workflow_name} ({workflow.workflow_status})"


def render_lines(workflows: Sequence[WorkflowRecord]) -> List[RenderedLine]:
    out: List[RenderedLine] = []
    for wf in workflows or []:
        out.append(RenderedLine(text=workflow_text(wf), key=LineKey(wf.workflow_id), status=wf.workflow_status, depth=0))
        for job in wf.jobs:
            out.append(
                RenderedLine(
                    text=job_text(job),
                    key=LineKey(wf.workflow_id, job.name),
                    status=job.status,
                    depth=1,
                )
            )
    return out


def status_glyph(status: str) -> str:
    if is_success(status):
        return "✓"
    if CIStatus.parse(status) == CIStatus.ON_HOLD:
        return "⏸"
    if is_failure(status):
        return "✗"
    if is_pending(status):
        return "…"
    return "·"


def format_snapshot(workflows: Sequence[WorkflowRecord], *, with_keys: bool = False) -> str:
    """Terminal text: status glyph column, indentation, then the resolvable line text."""
    rows: List[str] = []
    for line in render_lines(workflows):
        row = f"{status_glyph(line.status)} {'  ' * line.depth}{line.text}"
        if with_keys:
            row += f"\t[{line.key.workflow_id}{':' + line.key.job_name if line.key.job_name else ''}]"
        rows.append(row)
    return "\n".join(rows)
