# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Base class for a disk-mirrored in-memory cache with locking.

Unlike a merge-on-write cache, the file here is a *mirror*: every write
serializes the whole in-memory map and atomically replaces the file.
"""

from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from threading import Lock, get_ident
from typing import Any, Dict, Optional

from .exceptions import CacheCorrupt

try:
    import fcntl  # type: ignore
except ImportError:  # pragma: no cover - best-effort on non-POSIX
    fcntl = None  # type: ignore

logger = logging.getLogger(__name__)


@dataclass
class BaseCacheStats:
    """Basic cache statistics tracked automatically by BaseMirroredCache."""
    hit: int = 0
    miss: int = 0
    write: int = 0


class BaseMirroredCache:
    """Thread-safe in-memory map mirrored to one JSON file.

    Provides:
    - `_mu` Lock guarding the in-memory items and the file write (the critical section)
    - Inter-process lock file next to the cache file (fcntl, best-effort)
    - Atomic write (tmp file + os.replace) of the *entire* map
    - Strict load: a malformed file raises CacheCorrupt

    On-disk schema:
      {"version": <int>, "items": {<key>: <subclass-encoded value>, ...}}

    Subclasses implement `_encode_items` / `_decode_items`.
    """

    def __init__(self, *, cache_file: Path, schema_version: int = 1):
        self._mu = Lock()
        self._cache_file = Path(cache_file)
        self._schema_version = schema_version
        self._items: Optional[Dict[str, Any]] = None  # None = memory not populated
        self._seeded = False
        self.stats = BaseCacheStats()

    @property
    def cache_file(self) -> Path:
        return self._cache_file

    def _lock_file_path(self) -> Path:
        """Path to lock file (next to cache file)."""
        return self._cache_file.with_name(f".{self._cache_file.name}.lock")

    def _acquire_disk_lock(self, *, timeout_s: float = 10.0) -> Optional[Any]:
        """Best-effort inter-process lock for the cache file.

        Returns file handle on success, None on failure/timeout.
        """
        if fcntl is None:
            return None

        lock_path = self._lock_file_path()
        lock_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            fh = open(lock_path, "w")
        except OSError as e:
            logger.warning("Cannot open cache lock file %s: %s", lock_path, e)
            return None

        start = time.monotonic()
        while time.monotonic() - start < float(timeout_s):
            try:
                fcntl.flock(fh.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                return fh
            except OSError:
                time.sleep(0.1)

        logger.warning("Timed out waiting for cache lock %s; writing without it", lock_path)
        fh.close()
        return None

    def _release_disk_lock(self, lock_fh: Optional[Any]) -> None:
        """Release inter-process lock."""
        if lock_fh is None:
            return
        try:
            if fcntl is not None:
                fcntl.flock(lock_fh.fileno(), fcntl.LOCK_UN)
        finally:
            lock_fh.close()

    def exists(self) -> bool:
        return self._cache_file.is_file()

    def _read_disk(self) -> Dict[str, Any]:
        """Deserialize the whole file. Raises CacheCorrupt on any malformed content."""
        try:
            text = self._cache_file.read_text()
        except OSError as e:
            raise CacheCorrupt(self._cache_file, str(e)) from e
        try:
            raw = json.loads(text)
        except ValueError as e:
            raise CacheCorrupt(self._cache_file, f"invalid JSON: {e}") from e
        if not isinstance(raw, dict) or not isinstance(raw.get("items"), dict):
            raise CacheCorrupt(self._cache_file, "missing 'items' object")
        version = raw.get("version")
        if version != self._schema_version:
            raise CacheCorrupt(self._cache_file, f"unsupported schema version {version!r}")
        try:
            return self._decode_items(raw["items"])
        except (KeyError, ValueError, TypeError) as e:
            raise CacheCorrupt(self._cache_file, f"bad entry: {e}") from e

    def _seed_once(self) -> None:
        """Populate memory from disk before the first write so other keys survive.

        Caller must hold `_mu`.
        """
        if self._seeded:
            return
        self._seeded = True
        if self._items is not None:
            return
        if not self.exists():
            self._items = {}
            return
        try:
            self._items = self._read_disk()
        except CacheCorrupt as e:
            logger.warning("Discarding corrupt cache: %s", e)
            self._items = {}

    def _persist(self) -> None:
        """Write the entire in-memory map (tmp file + rename). Caller must hold `_mu`."""
        items = dict(self._items or {})
        payload = {"version": self._schema_version, "items": self._encode_items(items)}
        self._cache_file.parent.mkdir(parents=True, exist_ok=True)

        lock_fh = self._acquire_disk_lock(timeout_s=10.0)
        tmp = Path(f"{self._cache_file}.tmp.{os.getpid()}.{get_ident()}")
        try:
            tmp.write_text(json.dumps(payload, indent=1, sort_keys=True))
            os.replace(str(tmp), str(self._cache_file))
        except BaseException:
            # Leave the previous file untouched; drop the half-written temp file.
            try:
                tmp.unlink()
            except OSError:
                pass
            raise
        finally:
            self._release_disk_lock(lock_fh)
        self.stats.write += 1

    def _replace_item(self, key: str, value: Any) -> None:
        """Drop any existing entry for `key`, insert `value`, persist everything."""
        with self._mu:
            self._seed_once()
            assert self._items is not None
            # Copy-on-write so a reader holding the previous map never sees it change.
            items = dict(self._items)
            items.pop(key, None)
            items[key] = value
            previous = self._items
            self._items = items
            try:
                self._persist()
            except BaseException:
                self._items = previous
                raise

    def _read_items(self, *, populate: bool = False) -> Dict[str, Any]:
        """Memory first, then disk; never merged.

        Raises:
            CacheCorrupt: memory is empty and the file is malformed
        """
        with self._mu:
            if self._items is not None:
                self.stats.hit += 1
                return dict(self._items)
            if not self.exists():
                self.stats.miss += 1
                return {}
            items = self._read_disk()
            self.stats.hit += 1
            if populate:
                self._items = items
                self._seeded = True
            return dict(items)

    def _encode_items(self, items: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def _decode_items(self, raw_items: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError
