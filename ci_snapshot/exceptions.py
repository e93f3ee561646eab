# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""ci_snapshot error types.

These are intentionally lightweight so every layer (client, builder, cache,
resolver) can catch specific classes without creating import cycles.

Handling contract:
- TransportError / DecodeError: a pull aborts, the cache is left unchanged.
- ProjectNotFound / NoPipeline (NoCIActivity): "no CI activity" for the branch.
- CacheCorrupt: treat as a cache miss.
- BuildNotFound: the display line cannot be resolved; no side effects.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class CISnapshotError(Exception):
    """Base class for all ci_snapshot errors."""


class ConfigError(CISnapshotError):
    """Required configuration (token, organization) is missing."""


class CircleCIAPIError(CISnapshotError):
    def __init__(self, *, status_code: int, endpoint: str, message: str):
        super().__init__(message)
        self.status_code = int(status_code)
        self.endpoint = str(endpoint or "")


class TransportError(CircleCIAPIError):
    """Connection failure or non-2xx HTTP status."""


class NotFoundError(TransportError):
    """HTTP 404 (still a TransportError; callers may opt in to interpreting it)."""


class DecodeError(CircleCIAPIError):
    """The response body was not valid JSON."""


class NoCIActivity(CISnapshotError):
    """A pull found nothing to show for the branch."""

    def __init__(self, message: str, *, branch: Optional[str] = None):
        super().__init__(message)
        self.branch = branch


class ProjectNotFound(NoCIActivity):
    pass


class NoPipeline(NoCIActivity):
    pass


class CacheCorrupt(CISnapshotError):
    def __init__(self, path: Path, reason: str = ""):
        msg = f"snapshot cache is unreadable: {path}"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)
        self.path = Path(path)


class BuildNotFound(CISnapshotError):
    def __init__(self, line: str, reason: str = ""):
        msg = f"cannot resolve line to a workflow/job: {line!r}"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)
        self.line = str(line or "")
