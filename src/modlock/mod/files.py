"""
modlock.mod.files — Filesystem listing with include/exclude patterns.

Patterns are fnmatch-style and matched against the path relative to
the listing root, with `/` separators:

    include: ["**/*.yaml"]      → a.yaml, sub/b.yaml
    exclude: ["**/.*/**"]       → skips .hidden/c.yaml, sub/.git/d.yaml

A leading `**/` also matches at the top level.
"""

from __future__ import annotations

import fnmatch
import os
from pathlib import Path


def matches(rel_path: str, patterns: list[str] | tuple[str, ...]) -> bool:
    """Whether a relative path matches any of the patterns."""
    for pattern in patterns:
        if fnmatch.fnmatchcase(rel_path, pattern):
            return True
        if pattern.startswith("**/") and fnmatch.fnmatchcase(rel_path, pattern[3:]):
            return True
    return False


def list_files(
    root: str | Path,
    include: list[str] | tuple[str, ...] = ("**/*",),
    exclude: list[str] | tuple[str, ...] = (),
    recursive: bool = True,
) -> list[Path]:
    """List files under `root` matching `include` and not `exclude`.

    Returns:
        Sorted absolute paths; empty if `root` does not exist
    """
    base = Path(root)
    if not base.is_dir():
        return []

    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(base):
        dirnames.sort()
        if not recursive:
            dirnames.clear()
        for filename in sorted(filenames):
            path = Path(dirpath) / filename
            rel = path.relative_to(base).as_posix()
            if not matches(rel, include):
                continue
            if exclude and matches(rel, exclude):
                continue
            found.append(path)
    return sorted(found)
