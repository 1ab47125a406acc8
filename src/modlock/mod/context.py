"""
modlock.mod.context — Parse context for a (recursive) mod load.

The root load owns one ParseContext; each dependency gets a child
context derived from its parent. Everything shared between concurrent
branches (paths, lock, parser, cancellation) is read-only; state that
changes during a load (current mod, loaded dependencies) lives on the
branch's own context.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from modlock.config import WorkspacePaths
from modlock.errors import (
    Diagnostic, DependencyNotInstalledError, LoadCancelledError,
)
from modlock.mod.model import Mod, ResourceCollection
from modlock.versionmap.constraint import ResolvedVersionConstraint

if TYPE_CHECKING:
    from modlock.workspace.lock import WorkspaceLock


class ModParser(Protocol):
    """Configuration parser used by the loader."""

    def parse_mod_definition(
        self, mod_file: Path, ctx: ParseContext,
    ) -> tuple[Mod | None, list[Diagnostic]]:
        ...

    def parse_mod_resources(
        self, mod: Mod, files: list[Path], ctx: ParseContext,
    ) -> tuple[ResourceCollection, list[Diagnostic]]:
        ...


@dataclass
class ParseContext:
    """State for loading one mod."""
    paths: WorkspacePaths
    parser: ModParser
    workspace_lock: WorkspaceLock | None = None
    allow_default_mod: bool = False
    cancel_event: threading.Event = field(default_factory=threading.Event)
    deadline: float | None = None           # time.monotonic() value
    dependency: ResolvedVersionConstraint | None = None
    parent: ParseContext | None = None
    args: dict[str, Any] = field(default_factory=dict)
    current_mod: Mod | None = None
    loaded_dependency_mods: dict[str, Mod] = field(default_factory=dict)

    @property
    def config(self):
        return self.paths.config

    def child(self, dependency: ResolvedVersionConstraint, args: dict[str, Any] | None = None) -> ParseContext:
        """Context for loading `dependency` below this mod."""
        return ParseContext(
            paths=self.paths,
            parser=self.parser,
            workspace_lock=self.workspace_lock,
            allow_default_mod=False,
            cancel_event=self.cancel_event,
            deadline=self.deadline,
            dependency=dependency,
            parent=self,
            args=dict(args or {}),
        )

    def chain(self) -> list[str]:
        """Dependency chain from the root mod to this context."""
        if self.parent is None:
            if self.current_mod is not None:
                return [str(self.current_mod)]
            return [self.paths.workspace_path.name]
        tail = self.dependency.dependency_path if self.dependency else "?"
        return self.parent.chain() + [tail]

    # ── cancellation ──────────────────────────

    def cancel(self) -> None:
        self.cancel_event.set()

    def cancelled(self) -> bool:
        if self.cancel_event.is_set():
            return True
        if self.deadline is not None and time.monotonic() >= self.deadline:
            self.cancel_event.set()
            return True
        return False

    def check_cancelled(self) -> None:
        if self.cancelled():
            raise LoadCancelledError(
                f"load of {' -> '.join(self.chain())} was cancelled"
            )

    # ── lock ──────────────────────────────────

    def ensure_workspace_lock(self, mod: Mod) -> None:
        """A mod with dependencies needs a non-empty lock."""
        lock = self.workspace_lock
        if lock is None or (lock.empty and not lock.incomplete):
            raise DependencyNotInstalledError(
                f"mod '{mod}' has dependencies but no lock file was found "
                f"- run '{self.config.install_command}'"
            )

    def resource_exclude(self) -> list[str]:
        """Exclude patterns for the current mod's resource files."""
        cfg = self.config
        return (
            list(cfg.resource_exclude)
            + list(cfg.mod_file_names)
            + [cfg.lock_file_name, f"{cfg.data_dir}/**"]
        )
