# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Per-branch CI snapshot cache.

Caching strategy:
  - Key: branch name
  - Value: ordered list of WorkflowRecord (the newest pipeline's workflows)
  - A pull replaces the branch's list wholesale; entries are never merged
  - File: <git-dir>/ci-snapshot/snapshot.json (override: CI_SNAPSHOT_CACHE_FILE)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Sequence

from .cache_base import BaseMirroredCache
from .exceptions import CacheCorrupt
from .types import Snapshot, WorkflowRecord, snapshot_from_dict, snapshot_to_dict

logger = logging.getLogger(__name__)

CACHE_DIR_NAME = "ci-snapshot"
CACHE_FILE_NAME = "snapshot.json"


def default_cache_file(git_dir: Path) -> Path:
    """Cache location for a repository: inside its git dir, never in the working tree."""
    override = os.environ.get("CI_SNAPSHOT_CACHE_FILE")
    if override:
        return Path(override).expanduser()
    return Path(git_dir) / CACHE_DIR_NAME / CACHE_FILE_NAME


class SnapshotCache(BaseMirroredCache):
    """Latest snapshot per branch, in memory and mirrored to one JSON file.

    Stats (hit/miss/write) are tracked automatically by BaseMirroredCache.
    """

    _SCHEMA_VERSION = 1

    def __init__(self, *, cache_file: Path):
        super().__init__(cache_file=cache_file, schema_version=self._SCHEMA_VERSION)

    def _encode_items(self, items: Dict[str, Any]) -> Dict[str, Any]:
        return snapshot_to_dict(items)

    def _decode_items(self, raw_items: Dict[str, Any]) -> Dict[str, Any]:
        return snapshot_from_dict(raw_items)

    def update(self, branch: str, workflows: Sequence[WorkflowRecord]) -> None:
        """Replace `branch`'s entry and rewrite the whole file atomically."""
        self._replace_item(str(branch), list(workflows or []))
        logger.debug("Cache updated: %s -> %d workflow(s) (%s)", branch, len(workflows or []), self.cache_file)

    def read(self, *, populate: bool = False) -> Snapshot:
        """Return the full snapshot map (memory first, else the file).

        Raises:
            CacheCorrupt: the durable file is malformed
        """
        items = self._read_items(populate=populate)
        return {branch: list(workflows) for branch, workflows in items.items()}

    def get(self, branch: str) -> List[WorkflowRecord]:
        """One branch's workflows; a corrupt cache counts as a miss."""
        try:
            snapshot = self.read()
        except CacheCorrupt as e:
            logger.warning("%s; treating as empty", e)
            return []
        return list(snapshot.get(str(branch)) or [])
