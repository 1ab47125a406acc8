"""modlock.workspace — Workspace lock."""

from modlock.workspace.lock import (
    WorkspaceLock, read_install_cache, pinned_constraint,
)

__all__ = [
    "WorkspaceLock", "read_install_cache", "pinned_constraint",
]
