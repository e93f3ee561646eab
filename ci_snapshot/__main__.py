#!/usr/bin/env python3
"""Module entrypoint for `ci_snapshot`.

Usage (from inside a repository):
  - `python3 -m ci_snapshot pull`
  - `python3 -m ci_snapshot show --keys`
"""

from __future__ import annotations

from .cli import _cli


if __name__ == "__main__":
    raise SystemExit(_cli())
