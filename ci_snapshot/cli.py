# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""
CLI wrapper for ci_snapshot.

CLI glue lives here so the library modules (builder/cache/resolver) stay reusable
from editor integrations.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import webbrowser
from pathlib import Path
from typing import Optional, Sequence

import git

from .actions import CIContext
from .exceptions import BuildNotFound, CacheCorrupt, CircleCIAPIError, CISnapshotError, ConfigError
from .render import format_snapshot

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ci-snapshot",
        description="Show and act on the CircleCI state of the checked-out branch.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables:
  CIRCLECI_TOKEN
      CircleCI personal API token (alternative to --token)
      Priority: --token > CIRCLECI_TOKEN > ~/.config/circleci-token > ~/.circleci/cli.yml

  CIRCLECI_ORG / CIRCLECI_HOST / CIRCLECI_VCS
      Organization, API host and VCS prefix (default vcs: gh)

  CI_SNAPSHOT_CACHE_FILE
      Override the cache file (default: <git-dir>/ci-snapshot/snapshot.json)

Examples:
  %(prog)s pull
  %(prog)s show --keys
  %(prog)s browse "101 - unit-tests" --open
  %(prog)s approve "hold - Wait for approve"
        """,
    )
    parser.add_argument("--repo-root", type=Path, default=Path.cwd(), help="Path inside the repository (default: cwd)")
    parser.add_argument("--branch", default=None, help="Branch to use (default: checked-out branch)")
    parser.add_argument("--org", default=None, help="CircleCI organization (default: CIRCLECI_ORG or origin remote owner)")
    parser.add_argument("--repo-name", default=None, help="Repository name in CircleCI (default: repository directory name)")
    parser.add_argument("--token", default=None, help="CircleCI API token")
    parser.add_argument("--host", default=None, help="CircleCI host (default: https://circleci.com)")
    parser.add_argument("--max-workers", type=int, default=None, help="Concurrent job-list fetches per pull (default: 8)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("pull", help="Fetch the newest pipeline for the branch and update the cache")
    p_show = sub.add_parser("show", help="Print the cached snapshot for the branch")
    p_show.add_argument("--keys", action="store_true", help="Append each line's stable key")
    p_show.add_argument("--json", action="store_true", help="Print the cached records as JSON")
    p_browse = sub.add_parser("browse", help="Print the browse URL for a displayed line")
    p_browse.add_argument("line", help='Displayed line, e.g. "101 - unit-tests"')
    p_browse.add_argument("--open", action="store_true", help="Open the URL in a web browser")
    p_approve = sub.add_parser("approve", help="Approve the pending gate on a displayed line, then pull")
    p_approve.add_argument("line", help='Displayed line, e.g. "hold - Wait for approve"')
    sub.add_parser("stats", help="Print cache location and stats")
    return parser


def _cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    # Configure logging
    if args.debug:
        logging.basicConfig(level=logging.DEBUG, format="[%(levelname)s] %(message)s")
    else:
        logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")

    try:
        ctx = CIContext.for_repo(
            args.repo_root,
            token=args.token,
            organization=args.org,
            repo_name=args.repo_name,
            host=args.host,
            max_workers=args.max_workers,
        )
    except (git.InvalidGitRepositoryError, git.NoSuchPathError) as e:
        logger.error("ERROR: not a git repository: %s", e)
        return 2

    try:
        if args.command == "pull":
            workflows = ctx.pull(args.branch)
            sys.stdout.write(format_snapshot(workflows) + ("\n" if workflows else ""))
            return 0

        if args.command == "show":
            if args.json:
                workflows = ctx.snapshot(args.branch)
                sys.stdout.write(json.dumps([w.to_dict() for w in workflows], indent=2) + "\n")
                return 0
            text = format_snapshot(ctx.snapshot(args.branch), with_keys=bool(args.keys))
            if not text:
                logger.info("(no cached CI data for this branch; run `pull`)")
                return 0
            sys.stdout.write(text + "\n")
            return 0

        if args.command == "browse":
            url = ctx.browse_url(args.line, args.branch)
            sys.stdout.write(url + "\n")
            if args.open:
                webbrowser.open(url)
            return 0

        if args.command == "approve":
            if not ctx.approve_line(args.line, args.branch):
                logger.info("Line is not a pending approval; nothing to do")
                return 0
            sys.stdout.write(format_snapshot(ctx.snapshot(args.branch)) + "\n")
            return 0

        if args.command == "stats":
            try:
                snap = ctx.cache.read()
            except CacheCorrupt as e:
                logger.warning("%s", e)
                snap = {}
            out = {
                "cache_file": str(ctx.cache.cache_file),
                "cache_exists": ctx.cache.exists(),
                "branches": {b: len(w) for b, w in sorted(snap.items())},
                "project_slug": ctx.config.project_slug,
            }
            sys.stdout.write(json.dumps(out, indent=2) + "\n")
            return 0
    except ConfigError as e:
        logger.error("ERROR: %s", e)
        return 2
    except BuildNotFound as e:
        logger.error("ERROR: %s", e)
        return 1
    except CircleCIAPIError as e:
        logger.error("ERROR: CircleCI request failed (%s): %s", e.endpoint, e)
        return 1
    except CISnapshotError as e:
        logger.error("ERROR: %s", e)
        return 1


def main() -> int:
    return _cli()
