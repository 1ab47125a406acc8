"""
modlock.workspace.lock — Workspace lock.

The lock file (<workspace>/.mod.cache.json) records, for every parent
mod, the exact version installed for each of its dependencies:

    {
      "app": {
        "github.com/acme/lib-a": {
          "name": "github.com/acme/lib-a",
          "constraint": "^1.0.0",
          "version": "1.0.3",
          "struct_version": 20240429
        }
      }
    }

Loading a WorkspaceLock reconciles that record with what is actually
on disk under <workspace>/.modlock/mods:

    install_cache     locked AND installed
    missing_versions  locked but NOT installed (run install)

Only the install cache is persisted; the installer is the only writer.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Iterable

from modlock.config import WorkspacePaths
from modlock.errors import (
    LockFileError, ConstraintViolationError, DependencyNotInstalledError,
)
from modlock.mod.files import list_files
from modlock.versionmap.constraint import (
    ModVersionConstraint, ResolvedVersionConstraint,
    WORKSPACE_LOCK_STRUCT_VERSION,
)
from modlock.versionmap.dependency import (
    DependencyVersion, SemverVersion, BranchVersion, LocalPathVersion,
    parse_dependency_path, sort_key,
)
from modlock.versionmap.maps import (
    DependencyVersionListMap, ResolvedVersionListMap,
    InstalledDependencyVersionsMap,
)
from modlock.versionmap.summary import InstallSummary, build_install_summary
from modlock.versionmap.tree import DependencyTree

logger = logging.getLogger(__name__)


def _parent_key(parent: Any) -> str:
    """Install cache key of a parent given as a Mod or a string."""
    return getattr(parent, "install_cache_key", parent)


class WorkspaceLock:
    """Lock state of one workspace."""

    def __init__(
        self,
        paths: WorkspacePaths,
        install_cache: InstalledDependencyVersionsMap | None = None,
        missing_versions: InstalledDependencyVersionsMap | None = None,
        installed_mods: DependencyVersionListMap | None = None,
    ):
        self.paths = paths
        self.install_cache = install_cache if install_cache is not None else InstalledDependencyVersionsMap()
        self.missing_versions = missing_versions if missing_versions is not None else InstalledDependencyVersionsMap()
        self._installed_mods = installed_mods if installed_mods is not None else DependencyVersionListMap()

    @property
    def workspace_path(self) -> Path:
        return self.paths.workspace_path

    @property
    def mod_installation_path(self) -> Path:
        return self.paths.mod_install_path

    @property
    def lock_path(self) -> Path:
        return self.paths.lock_path

    @property
    def installed_mods(self) -> DependencyVersionListMap:
        """Mod versions found on disk (not persisted)."""
        return self._installed_mods

    # ── loading ───────────────────────────────

    @classmethod
    def load(cls, paths: WorkspacePaths) -> WorkspaceLock:
        """Read the lock file, scan the install folder and reconcile.

        A missing lock file gives an empty lock.

        Raises:
            LockFileError: lock file unreadable or malformed
        """
        lock = cls(paths, install_cache=read_install_cache(paths.lock_path))
        lock._scan_installed_mods()
        lock._set_missing()
        return lock

    @classmethod
    def empty_from(cls, existing: WorkspaceLock) -> WorkspaceLock:
        """Empty lock sharing paths and on-disk state with `existing`."""
        return cls(existing.paths, installed_mods=existing._installed_mods)

    def _scan_installed_mods(self) -> None:
        """Build the on-disk version set from the install folder."""
        install_path = self.mod_installation_path
        includes = [f"**/{name}" for name in self.paths.config.mod_file_names]
        installed = DependencyVersionListMap()

        for mod_file in list_files(install_path, include=includes):
            rel = mod_file.parent.relative_to(install_path).as_posix()
            try:
                name, version = parse_dependency_path(rel)
            except ValueError as e:
                tail = rel.rsplit("@", 1)[-1] if "@" in rel else rel.rsplit("#", 1)[-1]
                if "/" in tail:
                    # a child folder of an installed mod
                    logger.debug("ignoring mod file %s: %s is not a dependency path", mod_file, rel)
                else:
                    logger.warning("ignoring install folder %s: %s", mod_file.parent, e)
                continue
            if version is None:
                continue

            if isinstance(version, SemverVersion):
                if not self._fix_folder_name(version, mod_file.parent):
                    continue

            installed.add(name, version)

        for _, dep in self.install_cache.entries():
            if isinstance(dep.version, LocalPathVersion):
                # local mods are checked for existence, not discovered
                if Path(dep.version.path).is_dir():
                    installed.add(dep.name, dep.version)

        self._installed_mods = installed

    def _fix_folder_name(self, version: SemverVersion, mod_dir: Path) -> bool:
        """Rename a legacy folder (`lib@v1.2`) to its canonical name (`lib@v1.2.0`).

        Returns False if the rename failed; the installation is then
        skipped.
        """
        current = mod_dir.name.rsplit("@", 1)[1]
        desired = version.render()
        if current == desired:
            return True

        desired_dir = mod_dir.with_name(f"{mod_dir.name.rsplit('@', 1)[0]}@{desired}")
        logger.debug("renaming dependency mod folder %s to %s", mod_dir, desired_dir)
        try:
            if desired_dir.exists():
                raise FileExistsError(f"{desired_dir} already exists")
            os.rename(mod_dir, desired_dir)
        except OSError as e:
            logger.warning("failed to rename dependency mod folder %s: %s", mod_dir, e)
            return False
        return True

    def _set_missing(self) -> None:
        """Move locked entries that are not installed into missing_versions."""
        installed = self._installed_mods.flat_map()
        for parent, dep in list(self.install_cache.entries()):
            if dep.dependency_path in installed:
                continue
            logger.debug("locked dependency %s of %s is not installed", dep.dependency_path, parent)
            self.missing_versions.put(parent, dep)
            self.install_cache.remove(parent, dep.name)

    # ── persistence ───────────────────────────

    def save(self) -> None:
        """Write the install cache; an empty cache deletes the file."""
        if not self.install_cache:
            self.delete()
            return
        content = json.dumps(self.install_cache.to_dict(), indent=2)
        self.lock_path.write_text(content + "\n")

    def delete(self) -> None:
        if self.lock_path.exists():
            self.lock_path.unlink()

    def delete_mods(self, names: Iterable[str], parent: Any) -> None:
        """Remove dependencies of `parent` from the install cache."""
        key = _parent_key(parent)
        for name in names:
            self.install_cache.remove(key, name)

    # ── lookups ───────────────────────────────

    def get_mod(self, name: str, parent: Any) -> ResolvedVersionConstraint | None:
        """Locked entry for dependency `name` of `parent`."""
        return self.install_cache.get(_parent_key(parent), name)

    def find_mod(self, name: str) -> list[ResolvedVersionConstraint]:
        """Locked entries for `name` under any parent."""
        return self.install_cache.find(name)

    def get_locked_mod_version(
        self, constraint: ModVersionConstraint, parent: Any,
    ) -> ResolvedVersionConstraint | None:
        """Locked entry if it exists and satisfies the constraint, else None."""
        locked = self.get_mod(constraint.name, parent)
        if locked is None or not locked.satisfies(constraint):
            return None
        return locked

    def get_locked_mod_versions(
        self, constraints: Iterable[ModVersionConstraint], parent: Any,
    ) -> ResolvedVersionListMap:
        res = ResolvedVersionListMap()
        for constraint in constraints:
            locked = self.get_locked_mod_version(constraint, parent)
            if locked is not None:
                res.add(constraint.name, locked)
        return res

    def find_locked_mod_version(
        self, constraint: ModVersionConstraint,
    ) -> ResolvedVersionConstraint | None:
        """Best locked entry satisfying the constraint, under any parent.

        Used when the parent is not known yet. Prefers the highest
        semantic version.
        """
        candidates = [v for v in self.find_mod(constraint.name) if v.satisfies(constraint)]
        if not candidates:
            return None
        return max(candidates, key=lambda c: sort_key(c.version))

    def ensure_locked_mod_version(
        self, constraint: ModVersionConstraint, parent: Any,
    ) -> ResolvedVersionConstraint | None:
        """Locked entry for the constraint.

        Returns None if nothing is locked.

        Raises:
            ConstraintViolationError: locked version fails the constraint
        """
        locked = self.get_mod(constraint.name, parent)
        if locked is None:
            return None
        if not locked.satisfies(constraint):
            raise ConstraintViolationError(
                parent=_parent_key(parent),
                dependency_path=locked.dependency_path,
                constraint=constraint.original_constraint(),
                app_name=self.paths.config.app_name,
            )
        return locked

    def get_locked_mod_version_constraint(
        self, constraint: ModVersionConstraint, parent: Any,
    ) -> ModVersionConstraint | None:
        """A constraint pinned to the locked version, or None."""
        locked = self.ensure_locked_mod_version(constraint, parent)
        if locked is None:
            return None
        return pinned_constraint(locked)

    def contains_mod_version(self, name: str, version: DependencyVersion) -> bool:
        return any(
            dep.name == name and dep.version.same_as(version)
            for _, dep in self.install_cache.entries()
        )

    def unreferenced_mods(self) -> DependencyVersionListMap:
        """Installed mod versions the lock does not reference."""
        res = DependencyVersionListMap()
        for name, versions in self._installed_mods.items():
            for version in versions:
                if not self.contains_mod_version(name, version):
                    res.add(name, version)
        return res

    def find_installed_dependency(self, dep: ResolvedVersionConstraint) -> Path:
        """Install folder of a locked dependency.

        Raises:
            DependencyNotInstalledError: folder does not exist
        """
        if isinstance(dep.version, LocalPathVersion):
            path = Path(dep.version.path)
        else:
            path = self.mod_installation_path / dep.dependency_path

        if path.is_dir():
            return path
        raise DependencyNotInstalledError(
            f"dependency mod '{dep.dependency_path}' is not installed "
            f"- run '{self.paths.config.install_command}'"
        )

    # ── state ─────────────────────────────────

    @property
    def incomplete(self) -> bool:
        """Whether locked dependencies are missing from disk."""
        return bool(self.missing_versions)

    @property
    def empty(self) -> bool:
        return not self.install_cache

    def struct_version(self) -> int:
        """Struct version of the persisted entries.

        Only the install cache is persisted, so it is read from the
        first entry; a lock without entries is current.
        """
        for _, dep in self.install_cache.entries():
            return dep.struct_version
        for _, dep in self.missing_versions.entries():
            return dep.struct_version
        return WORKSPACE_LOCK_STRUCT_VERSION

    def requires_migration(self) -> bool:
        """Whether the lock was written by an older format (full reinstall)."""
        return self.struct_version() != WORKSPACE_LOCK_STRUCT_VERSION

    # ── traversal & diffing ───────────────────

    def walk_cache(
        self, root: str, fn: Callable[[list[str], ResolvedVersionConstraint], None],
    ) -> None:
        self.install_cache.walk(root, fn)

    def dependency_tree(self, root: str) -> DependencyTree:
        return self.install_cache.dependency_tree(root)

    def missing_from(self, other: WorkspaceLock) -> InstalledDependencyVersionsMap:
        return self.install_cache.missing_from(other.install_cache)

    def upgraded_in(self, other: WorkspaceLock) -> InstalledDependencyVersionsMap:
        return self.install_cache.upgraded_in(other.install_cache)

    def downgraded_in(self, other: WorkspaceLock) -> InstalledDependencyVersionsMap:
        return self.install_cache.downgraded_in(other.install_cache)

    def install_summary(self, new_lock: WorkspaceLock, root: str) -> InstallSummary:
        return build_install_summary(self.install_cache, new_lock.install_cache, root)


def read_install_cache(lock_path: str | Path) -> InstalledDependencyVersionsMap:
    """Read a lock document.

    Returns an empty map if the file does not exist.

    Raises:
        LockFileError: unreadable or malformed content
    """
    p = Path(lock_path)
    if not p.exists():
        return InstalledDependencyVersionsMap()

    logger.debug("reading lock file %s", p)
    try:
        content = p.read_text()
    except OSError as e:
        logger.debug("error reading lock file %s: %s", p, e)
        raise LockFileError(f"Failed to read lock file {p}: {e}") from e

    try:
        data = json.loads(content)
        return InstalledDependencyVersionsMap.from_dict(data)
    except (json.JSONDecodeError, ValueError, TypeError) as e:
        logger.debug("failed to parse lock file %s: %s", p, e)
        raise LockFileError(f"Invalid lock file {p}: {e}") from e


def pinned_constraint(dep: ResolvedVersionConstraint) -> ModVersionConstraint:
    """Constraint that only the given locked version satisfies."""
    version = dep.version
    if isinstance(version, SemverVersion):
        return ModVersionConstraint(name=dep.name, version=str(version.version), alias=dep.alias or None)
    if isinstance(version, BranchVersion):
        return ModVersionConstraint(name=dep.name, branch=version.branch, alias=dep.alias or None)
    return ModVersionConstraint(name=dep.name, file_path=version.render(), alias=dep.alias or None)
