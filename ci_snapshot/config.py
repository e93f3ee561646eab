# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Configuration for ci_snapshot.

The core has no opinion on where values come from; `CircleCIConfig.from_sources()`
is the one place that looks at the environment and local config files.

Precedence (first match wins), per field:
  1) explicit argument (e.g. CLI flag)
  2) environment: CIRCLECI_TOKEN, CIRCLECI_HOST, CIRCLECI_ORG, CIRCLECI_VCS
  3) ~/.config/circleci-token   (single line token)
  4) ~/.circleci/cli.yml        (CircleCI CLI config; `token`, `host`)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_HOST = "https://circleci.com"
DEFAULT_WEB_HOST = "https://app.circleci.com"
DEFAULT_VCS = "gh"
API_PREFIX = "/api/v2"
DEFAULT_MAX_WORKERS = 8
# ^ Upper bound on concurrent `GET /workflow/{id}/job` calls during one pull.
DEFAULT_TIMEOUT_S = 10
# ^ Connect/read timeout handed to requests. A server that keeps the socket open but
#   never answers still blocks the pull until this expires.


def _token_file_path() -> Path:
    return Path.home() / ".config" / "circleci-token"


def _cli_config_path() -> Path:
    return Path.home() / ".circleci" / "cli.yml"


def read_token_file() -> Optional[str]:
    """Get a CircleCI token from `~/.config/circleci-token` (best-effort)."""
    try:
        token_file = _token_file_path()
        if token_file.exists():
            tok = (token_file.read_text() or "").strip()
            if tok:
                return tok
    except OSError:
        pass
    return None


def read_cli_config() -> Dict[str, Any]:
    """Read the CircleCI CLI config (`~/.circleci/cli.yml`).

    Returns:
        Dict with whatever of `token` / `host` is present, or {} if unreadable.

        Example file:
            host: https://circleci.com
            endpoint: graphql-unstable
            token: 0123abcd...
    """
    try:
        path = _cli_config_path()
        if path.exists():
            with open(path, "r") as f:
                config = yaml.safe_load(f)
            if isinstance(config, dict):
                out: Dict[str, Any] = {}
                for k in ("token", "host"):
                    v = str(config.get(k) or "").strip()
                    if v:
                        out[k] = v
                return out
    except (OSError, yaml.YAMLError) as e:  # File read or YAML parse errors
        logger.debug("Ignoring unreadable CircleCI CLI config: %s", e)
    return {}


@dataclass(frozen=True)
class CircleCIConfig:
    """Plain values the core needs to talk to CircleCI and build browse URLs."""
    token: Optional[str] = None
    organization: Optional[str] = None
    repo_name: Optional[str] = None
    host: str = DEFAULT_HOST
    web_host: str = DEFAULT_WEB_HOST
    vcs: str = DEFAULT_VCS
    max_workers: int = DEFAULT_MAX_WORKERS
    timeout_s: int = DEFAULT_TIMEOUT_S

    @property
    def api_base_url(self) -> str:
        return f"{str(self.host or DEFAULT_HOST).rstrip('/')}{API_PREFIX}"

    @property
    def project_slug(self) -> str:
        """`<vcs>/<org>/<repo>`, e.g. `gh/acme/widgets`."""
        return f"{self.vcs}/{self.organization or ''}/{self.repo_name or ''}"

    def with_repo_name(self, repo_name: Optional[str]) -> "CircleCIConfig":
        if self.repo_name or not repo_name:
            return self
        return replace(self, repo_name=str(repo_name))

    def with_organization(self, organization: Optional[str]) -> "CircleCIConfig":
        if self.organization or not organization:
            return self
        return replace(self, organization=str(organization))

    def require_network(self) -> None:
        """Raise ConfigError unless everything needed for API calls is present."""
        missing = []
        if not self.token:
            missing.append("token (CIRCLECI_TOKEN, ~/.config/circleci-token or ~/.circleci/cli.yml)")
        if not self.organization:
            missing.append("organization (--org or CIRCLECI_ORG)")
        if not self.repo_name:
            missing.append("repository name")
        if missing:
            raise ConfigError("Missing CircleCI configuration: " + "; ".join(missing))

    @classmethod
    def from_sources(
        cls,
        *,
        token: Optional[str] = None,
        organization: Optional[str] = None,
        repo_name: Optional[str] = None,
        host: Optional[str] = None,
        web_host: Optional[str] = None,
        vcs: Optional[str] = None,
        max_workers: Optional[int] = None,
        timeout_s: Optional[int] = None,
    ) -> "CircleCIConfig":
        # Token priority: 1) provided token, 2) environment variable, 3) token file, 4) CLI config
        cli_cfg: Optional[Dict[str, Any]] = None

        def _cli(key: str) -> Optional[str]:
            nonlocal cli_cfg
            if cli_cfg is None:
                cli_cfg = read_cli_config()
            return cli_cfg.get(key)

        tok = token or os.environ.get("CIRCLECI_TOKEN") or read_token_file() or _cli("token")
        h = host or os.environ.get("CIRCLECI_HOST") or _cli("host") or DEFAULT_HOST
        return cls(
            token=(str(tok).strip() or None) if tok else None,
            organization=organization or os.environ.get("CIRCLECI_ORG") or None,
            repo_name=repo_name or None,
            host=str(h).rstrip("/"),
            web_host=str(web_host or DEFAULT_WEB_HOST).rstrip("/"),
            vcs=str(vcs or os.environ.get("CIRCLECI_VCS") or DEFAULT_VCS),
            max_workers=int(max_workers or DEFAULT_MAX_WORKERS),
            timeout_s=int(timeout_s or DEFAULT_TIMEOUT_S),
        )
