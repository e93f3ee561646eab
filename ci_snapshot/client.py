# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""CircleCI v2 REST API client.

Resources used by ci_snapshot:
  GET  /project/{slug}
  GET  /project/{slug}/pipeline?branch={branch}
  GET  /pipeline/{id}/workflow
  GET  /workflow/{id}/job
  POST /workflow/{id}/approve/{approval_request_id}

No retries: every failure surfaces to the caller as TransportError / DecodeError.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Dict, Optional

import requests

from .config import CircleCIConfig
from .exceptions import DecodeError, NotFoundError, TransportError

logger = logging.getLogger(__name__)


class CircleCIAPIClient:
    """Thin authenticated JSON client (one instance per CIContext)."""

    def __init__(self, config: CircleCIConfig, *, session: Optional[requests.Session] = None):
        self.config = config
        self.base_url = config.api_base_url
        self.token = config.token
        self.timeout_s = int(config.timeout_s)
        self.headers: Dict[str, str] = {"Accept": "application/json"}
        self._session = session

        # Per-run REST stats (label-based, shared shape with the other API clients).
        self._stats_mu = threading.Lock()
        self._rest_calls_total: int = 0
        self._rest_calls_by_label: Dict[str, int] = {}
        self._rest_success_total: int = 0
        self._rest_errors_total: int = 0
        self._rest_time_total_s: float = 0.0
        self._rest_time_by_label_s: Dict[str, float] = {}
        self._rest_errors_by_status: Dict[int, int] = {}

    def has_token(self) -> bool:
        return bool(self.token)

    def _rest_record(self, *, label: str, status_code: Optional[int], dt_s: float) -> None:
        """Record one REST call (called from worker threads during a pull)."""
        lbl = str(label or "").strip() or "unknown"
        dt = max(0.0, float(dt_s or 0.0))
        with self._stats_mu:
            self._rest_calls_total += 1
            self._rest_calls_by_label[lbl] = int(self._rest_calls_by_label.get(lbl, 0)) + 1
            self._rest_time_total_s += dt
            self._rest_time_by_label_s[lbl] = float(self._rest_time_by_label_s.get(lbl, 0.0)) + dt
            if status_code is None:
                return
            sc = int(status_code)
            if 200 <= sc < 300:
                self._rest_success_total += 1
            elif sc >= 400:
                self._rest_errors_total += 1
                self._rest_errors_by_status[sc] = int(self._rest_errors_by_status.get(sc, 0)) + 1

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        *,
        label: Optional[str] = None,
    ) -> Any:
        """Issue one authenticated call and return the decoded JSON body.

        Args:
            method: "GET" or "POST"
            path: API path below /api/v2 (e.g. "/pipeline/<id>/workflow")
            params: Query parameters (the token is added here as `circle-token`)
            label: Logical name used for stats/log lines

        Raises:
            NotFoundError: HTTP 404
            TransportError: connection failure, timeout, or any other non-2xx status
            DecodeError: body is not JSON
        """
        ep = str(path or "")
        m = str(method or "GET").upper()
        url = f"{self.base_url}{ep}" if ep.startswith("/") else f"{self.base_url}/{ep}"
        lbl = str(label or "").strip() or f"{m} {ep}"
        query: Dict[str, Any] = dict(params or {})
        if self.token:
            query["circle-token"] = self.token

        t0 = time.monotonic()
        status_code: Optional[int] = None
        try:
            requester = self._session.request if self._session is not None else requests.request
            response = requester(m, url, headers=self.headers, params=query, timeout=self.timeout_s)
            status_code = int(response.status_code)

            if status_code == 404:
                raise NotFoundError(status_code=404, endpoint=ep, message=f"CircleCI API returned 404 Not Found for {m} {ep}")
            if not 200 <= status_code < 300:
                raise TransportError(
                    status_code=status_code,
                    endpoint=ep,
                    message=f"CircleCI API returned HTTP {status_code} for {m} {ep}: {str(response.text or '')[:200]}",
                )
            try:
                return response.json()
            except ValueError as e:  # requests' JSONDecodeError subclasses ValueError
                raise DecodeError(
                    status_code=status_code, endpoint=ep, message=f"CircleCI API returned non-JSON body for {m} {ep}: {e}"
                ) from e
        except requests.exceptions.RequestException as e:
            raise TransportError(
                status_code=int(status_code or 0), endpoint=ep, message=f"CircleCI API request failed for {m} {ep}: {e}"
            ) from e
        finally:
            dt = max(0.0, time.monotonic() - t0)
            self._rest_record(label=lbl, status_code=status_code, dt_s=dt)
            logger.debug("%s %s -> %s (%.2fs)", m, ep, status_code, dt)

    def get(self, path: str, params: Optional[Dict[str, Any]] = None, *, label: Optional[str] = None) -> Any:
        return self.request("GET", path, params, label=label)

    def post(self, path: str, params: Optional[Dict[str, Any]] = None, *, label: Optional[str] = None) -> Any:
        return self.request("POST", path, params, label=label)

    def get_rest_call_stats(self) -> Dict[str, Any]:
        """Return REST call stats for the current process/run."""
        with self._stats_mu:
            return {
                "total": int(self._rest_calls_total),
                "success_total": int(self._rest_success_total),
                "error_total": int(self._rest_errors_total),
                "time_total_s": float(self._rest_time_total_s),
                "by_label": dict(sorted(self._rest_calls_by_label.items(), key=lambda kv: (-int(kv[1]), kv[0]))),
                "time_by_label_s": dict(sorted(self._rest_time_by_label_s.items(), key=lambda kv: (-float(kv[1]), kv[0]))),
                "errors_by_status": dict(sorted(self._rest_errors_by_status.items(), key=lambda kv: (-int(kv[1]), int(kv[0])))),
            }
