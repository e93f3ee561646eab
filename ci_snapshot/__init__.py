# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""
CircleCI snapshot cache and line resolver for the checked-out branch.

This package contains:
- `client`         : authenticated CircleCI v2 JSON client
- `builder`        : project -> newest pipeline -> workflows -> jobs for a branch
- `snapshot_cache` : per-branch snapshot in memory, mirrored to <git-dir>/ci-snapshot/
- `resolver`       : display line / LineKey -> browse URL or approval target
- `actions`        : CIContext wiring it together (pull, render, browse, approve)

Command line: `python3 -m ci_snapshot --help`.
"""

from .actions import CIContext  # noqa: F401
from .builder import SnapshotBuilder  # noqa: F401
from .client import CircleCIAPIClient  # noqa: F401
from .config import CircleCIConfig  # noqa: F401
from .exceptions import (  # noqa: F401
    BuildNotFound,
    CacheCorrupt,
    CircleCIAPIError,
    CISnapshotError,
    ConfigError,
    DecodeError,
    NoCIActivity,
    NoPipeline,
    NotFoundError,
    ProjectNotFound,
    TransportError,
)
from .render import RenderedLine, render_lines  # noqa: F401
from .resolver import ApprovalTarget, BrowseTarget, LineKey, resolve_key, resolve_line  # noqa: F401
from .snapshot_cache import SnapshotCache  # noqa: F401
from .types import CIStatus, JobRecord, PipelineRef, WorkflowRecord  # noqa: F401

__all__ = [
    "ApprovalTarget",
    "BrowseTarget",
    "BuildNotFound",
    "CIContext",
    "CIStatus",
    "CISnapshotError",
    "CacheCorrupt",
    "CircleCIAPIClient",
    "CircleCIAPIError",
    "CircleCIConfig",
    "ConfigError",
    "DecodeError",
    "JobRecord",
    "LineKey",
    "NoCIActivity",
    "NoPipeline",
    "NotFoundError",
    "PipelineRef",
    "ProjectNotFound",
    "RenderedLine",
    "SnapshotBuilder",
    "SnapshotCache",
    "TransportError",
    "WorkflowRecord",
    "render_lines",
    "resolve_key",
    "resolve_line",
]
