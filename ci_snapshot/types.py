# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Snapshot data model shared by the builder, the cache and the resolver.

This module MUST NOT import the client, cache or resolver modules to avoid cycles.

Records are frozen: a pull creates fresh WorkflowRecords and the cache replaces a
branch's list wholesale, so nothing here is ever patched in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class CIStatus(str, Enum):
    """Workflow/job status strings reported by CircleCI v2."""

    SUCCESS = "success"
    RUNNING = "running"
    NOT_RUN = "not_run"
    FAILED = "failed"
    ERROR = "error"
    FAILING = "failing"
    ON_HOLD = "on_hold"
    CANCELED = "canceled"
    UNAUTHORIZED = "unauthorized"
    BLOCKED = "blocked"
    QUEUED = "queued"
    NOT_RUNNING = "not_running"
    INFRASTRUCTURE_FAIL = "infrastructure_fail"
    TIMEDOUT = "timedout"
    RETRIED = "retried"
    TERMINATED_UNKNOWN = "terminated-unknown"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "CIStatus":
        """Map a raw status string onto the enum (UNKNOWN for anything unrecognized)."""
        s = str(value or "").strip().lower()
        try:
            return cls(s)
        except ValueError:
            return cls.UNKNOWN


_FAILURE_STATUSES = frozenset(
    {
        CIStatus.FAILED,
        CIStatus.ERROR,
        CIStatus.FAILING,
        CIStatus.INFRASTRUCTURE_FAIL,
        CIStatus.TIMEDOUT,
        CIStatus.UNAUTHORIZED,
        CIStatus.TERMINATED_UNKNOWN,
    }
)
_PENDING_STATUSES = frozenset(
    {
        CIStatus.RUNNING,
        CIStatus.ON_HOLD,
        CIStatus.BLOCKED,
        CIStatus.QUEUED,
        CIStatus.NOT_RUNNING,
        CIStatus.FAILING,
    }
)


def is_failure(status: Any) -> bool:
    return CIStatus.parse(status) in _FAILURE_STATUSES


def is_pending(status: Any) -> bool:
    return CIStatus.parse(status) in _PENDING_STATUSES


def is_success(status: Any) -> bool:
    return CIStatus.parse(status) == CIStatus.SUCCESS


def _opt_int(x: Any) -> Optional[int]:
    if x is None or isinstance(x, bool):
        return None
    try:
        return int(x)
    except (ValueError, TypeError):
        return None


def _opt_str(x: Any) -> Optional[str]:
    if x is None:
        return None
    s = str(x)
    return s if s else None


@dataclass(frozen=True)
class PipelineRef:
    """One CI run of a branch."""
    id: str
    number: int

    @classmethod
    def from_api(cls, item: Dict[str, Any]) -> "PipelineRef":
        return cls(id=str(item.get("id") or ""), number=int(item.get("number") or 0))


@dataclass(frozen=True)
class JobRecord:
    """A job (or a pending manual-approval gate) inside a workflow.

    Executed jobs carry `job_number`; approval gates carry `approval_request_id`
    only while they are pending (`on_hold`).
    """
    name: str
    status: str
    job_number: Optional[int] = None
    approval_request_id: Optional[str] = None

    @property
    def is_approval(self) -> bool:
        return self.approval_request_id is not None

    @classmethod
    def from_api(cls, item: Dict[str, Any]) -> "JobRecord":
        """Build from one element of `GET /workflow/{id}/job` -> `items`.

        Example item (executed job):
            {"id": "...", "name": "build-x", "status": "success", "job_number": 42, "type": "build"}

        Example item (approval gate):
            {"id": "...", "name": "hold", "status": "on_hold", "type": "approval",
             "approval_request_id": "a1"}
        """
        job_number = _opt_int(item.get("job_number"))
        approval_request_id = _opt_str(item.get("approval_request_id"))
        # An approval gate never has a job number worth linking to.
        if approval_request_id is not None or item.get("type") == "approval":
            job_number = None
        # Once approved the gate is just a finished job; the request id stays on the item.
        if CIStatus.parse(item.get("status")) != CIStatus.ON_HOLD:
            approval_request_id = None
        return cls(
            name=str(item.get("name") or ""),
            status=str(item.get("status") or CIStatus.UNKNOWN.value),
            job_number=job_number,
            approval_request_id=approval_request_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"name": self.name, "status": self.status}
        if self.job_number is not None:
            d["job_number"] = int(self.job_number)
        if self.approval_request_id is not None:
            d["approval_request_id"] = str(self.approval_request_id)
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "JobRecord":
        if not isinstance(d, dict):
            raise ValueError(f"job entry must be an object, got {type(d).__name__}")
        return cls(
            name=str(d["name"]),
            status=str(d["status"]),
            job_number=_opt_int(d.get("job_number")),
            approval_request_id=_opt_str(d.get("approval_request_id")),
        )


@dataclass(frozen=True)
class WorkflowRecord:
    """One workflow of the newest pipeline of a branch, with its jobs in execution order."""
    workflow_id: str
    workflow_name: str
    workflow_status: str
    pipeline_number: int
    branch: str
    jobs: Tuple[JobRecord, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        # Accept any iterable of jobs but always store an immutable tuple.
        object.__setattr__(self, "jobs", tuple(self.jobs or ()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "workflow_id": self.workflow_id,
            "workflow_name": self.workflow_name,
            "workflow_status": self.workflow_status,
            "pipeline_number": int(self.pipeline_number),
            "branch": self.branch,
            "jobs": [j.to_dict() for j in self.jobs],
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WorkflowRecord":
        if not isinstance(d, dict):
            raise ValueError(f"workflow entry must be an object, got {type(d).__name__}")
        jobs = d.get("jobs")
        if not isinstance(jobs, list):
            raise ValueError("workflow entry has no 'jobs' list")
        return cls(
            workflow_id=str(d["workflow_id"]),
            workflow_name=str(d["workflow_name"]),
            workflow_status=str(d["workflow_status"]),
            pipeline_number=int(d["pipeline_number"]),
            branch=str(d["branch"]),
            jobs=tuple(JobRecord.from_dict(j) for j in jobs),
        )


# branch name -> workflows of that branch's newest pipeline
Snapshot = Dict[str, List[WorkflowRecord]]


def snapshot_to_dict(snapshot: Snapshot) -> Dict[str, List[Dict[str, Any]]]:
    return {str(branch): [w.to_dict() for w in (workflows or [])] for branch, workflows in snapshot.items()}


def snapshot_from_dict(raw: Dict[str, Any]) -> Snapshot:
    """Inverse of `snapshot_to_dict`; raises ValueError/KeyError/TypeError on malformed input."""
    if not isinstance(raw, dict):
        raise ValueError(f"snapshot must be an object, got {type(raw).__name__}")
    out: Snapshot = {}
    for branch, workflows in raw.items():
        if not isinstance(workflows, list):
            raise ValueError(f"snapshot entry for {branch!r} must be a list")
        out[str(branch)] = [WorkflowRecord.from_dict(w) for w in workflows]
    return out
