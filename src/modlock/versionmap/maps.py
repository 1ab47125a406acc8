"""
modlock.versionmap.maps — Version collections.

InstalledDependencyVersionsMap is the install cache, the shape of the
lock file:

    {
      "app": {                                    # parent install cache key
        "github.com/acme/lib-a": {...},           # dependency name → entry
      },
      "github.com/acme/lib-a@v1.0.3": {           # a dependency as parent
        "github.com/acme/lib-c": {...},
      }
    }

The root mod is keyed by its name; every other parent by its
dependency path.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable, Iterator

from modlock.versionmap.constraint import (
    ResolvedVersionConstraint, WORKSPACE_LOCK_STRUCT_VERSION,
)
from modlock.versionmap.dependency import (
    DependencyVersion, SemverVersion, BranchVersion,
    build_dependency_path, sort_key,
)
from modlock.versionmap.tree import DependencyTree


class DependencyVersionListMap:
    """Dependency name → installed versions, newest first."""

    def __init__(self):
        self._versions: dict[str, list[DependencyVersion]] = {}

    def add(self, name: str, version: DependencyVersion) -> None:
        versions = self._versions.setdefault(name, [])
        if any(v == version for v in versions):
            return
        versions.append(version)
        versions.sort(key=sort_key, reverse=True)

    def get(self, name: str) -> list[DependencyVersion]:
        return list(self._versions.get(name, []))

    def flat_map(self) -> set[str]:
        """Set of dependency paths, for membership checks."""
        return {
            build_dependency_path(name, v)
            for name, versions in self._versions.items()
            for v in versions
        }

    def items(self) -> Iterator[tuple[str, list[DependencyVersion]]]:
        for name in sorted(self._versions):
            yield name, list(self._versions[name])

    def __contains__(self, name: str) -> bool:
        return name in self._versions

    def __len__(self) -> int:
        return sum(len(v) for v in self._versions.values())

    def __bool__(self) -> bool:
        return bool(self._versions)


class ResolvedVersionListMap:
    """Dependency name → resolved entries."""

    def __init__(self):
        self._items: dict[str, list[ResolvedVersionConstraint]] = {}

    def add(self, name: str, resolved: ResolvedVersionConstraint) -> None:
        self._items.setdefault(name, []).append(resolved)

    def get(self, name: str) -> list[ResolvedVersionConstraint]:
        return list(self._items.get(name, []))

    def flat_map(self) -> dict[str, ResolvedVersionConstraint]:
        return {
            r.dependency_path: r
            for entries in self._items.values()
            for r in entries
        }

    def __contains__(self, name: str) -> bool:
        return name in self._items

    def __len__(self) -> int:
        return sum(len(v) for v in self._items.values())


WalkFunc = Callable[[list[str], ResolvedVersionConstraint], None]


class InstalledDependencyVersionsMap:
    """Parent key → dependency name → ResolvedVersionConstraint."""

    def __init__(self):
        self._items: dict[str, dict[str, ResolvedVersionConstraint]] = {}

    # ── mutation ──────────────────────────────

    def add_dependency(self, parent: str, dep: ResolvedVersionConstraint) -> None:
        """Record `dep` as installed for `parent`.

        Stamps the current struct version on a copy of the entry, so a lock
        rewritten by the installer is migrated.
        """
        stamped = replace(dep, struct_version=WORKSPACE_LOCK_STRUCT_VERSION)
        self._items.setdefault(parent, {})[dep.name] = stamped

    def put(self, parent: str, dep: ResolvedVersionConstraint) -> None:
        """Record `dep` as-is (no struct version stamp)."""
        self._items.setdefault(parent, {})[dep.name] = dep

    def remove(self, parent: str, name: str) -> ResolvedVersionConstraint | None:
        deps = self._items.get(parent)
        if not deps:
            return None
        removed = deps.pop(name, None)
        if not deps:
            del self._items[parent]
        return removed

    # ── access ────────────────────────────────

    def get(self, parent: str, name: str) -> ResolvedVersionConstraint | None:
        return self._items.get(parent, {}).get(name)

    def deps_for(self, parent: str) -> dict[str, ResolvedVersionConstraint]:
        return dict(self._items.get(parent, {}))

    def parents(self) -> list[str]:
        return sorted(self._items)

    def entries(self) -> Iterator[tuple[str, ResolvedVersionConstraint]]:
        """(parent, entry) pairs in sorted order."""
        for parent in sorted(self._items):
            deps = self._items[parent]
            for name in sorted(deps):
                yield parent, deps[name]

    def find(self, name: str) -> list[ResolvedVersionConstraint]:
        """Entries for `name` under any parent."""
        return [dep for _, dep in self.entries() if dep.name == name]

    def flat_map(self) -> dict[str, ResolvedVersionConstraint]:
        """Dependency path → entry."""
        return {dep.dependency_path: dep for _, dep in self.entries()}

    def clone(self) -> InstalledDependencyVersionsMap:
        res = InstalledDependencyVersionsMap()
        for parent, deps in self._items.items():
            res._items[parent] = dict(deps)
        return res

    def __contains__(self, parent: str) -> bool:
        return parent in self._items

    def __len__(self) -> int:
        return sum(len(deps) for deps in self._items.values())

    def __bool__(self) -> bool:
        return any(self._items.values())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InstalledDependencyVersionsMap):
            return NotImplemented
        return self._items == other._items

    def __repr__(self) -> str:
        return f"InstalledDependencyVersionsMap({self._items!r})"

    # ── traversal ─────────────────────────────

    def get_dependency(
        self, path: list[str],
    ) -> tuple[ResolvedVersionConstraint | None, list[str] | None]:
        """Resolve a name path from the root.

        Args:
            path: [root key, dependency name, dependency name, ...]

        Returns:
            (entry, full path) where the full path uses dependency paths
            (`name@v1.0.0`) instead of names; (None, None) if not found.
        """
        if len(path) < 2:
            return None, None

        full_path = [path[0]]
        parent = path[0]
        entry: ResolvedVersionConstraint | None = None
        for name in path[1:]:
            entry = self.get(parent, name)
            if entry is None:
                return None, None
            parent = entry.dependency_path
            full_path.append(parent)
        return entry, full_path

    def walk(self, root: str, fn: WalkFunc) -> None:
        """Depth-first walk from `root`.

        `fn` receives the name path to each entry (root first, entry
        name last) and the entry.
        """
        self._walk(root, [root], fn, {root})

    def _walk(self, parent: str, path: list[str], fn: WalkFunc, seen: set[str]) -> None:
        deps = self._items.get(parent, {})
        for name in sorted(deps):
            dep = deps[name]
            fn(path + [name], dep)
            child_key = dep.dependency_path
            if child_key in seen:
                continue
            self._walk(child_key, path + [name], fn, seen | {child_key})

    def dependency_tree(self, root: str) -> DependencyTree:
        """Dependency tree of `root`.

        A cache written for a root under a different key has no literal
        `root` entry; its top-level parents (keys that are not the
        dependency path of any entry) are attached directly under the
        root so their dependencies are still shown.
        """
        tree = DependencyTree(root)
        for parent in self._root_parents(root):
            self._build_tree(parent, tree, {root, parent})
        return tree

    def _root_parents(self, root: str) -> list[str]:
        if root in self._items:
            return [root]
        dependency_paths = {dep.dependency_path for _, dep in self.entries()}
        return [p for p in self.parents() if p not in dependency_paths]

    def _build_tree(self, parent: str, node: DependencyTree, seen: set[str]) -> None:
        deps = self._items.get(parent, {})
        for name in sorted(deps):
            full_name = deps[name].dependency_path
            child = node.add_branch(full_name)
            if full_name in seen:
                continue
            self._build_tree(full_name, child, seen | {full_name})

    # ── diffing ───────────────────────────────

    def missing_from(self, other: InstalledDependencyVersionsMap) -> InstalledDependencyVersionsMap:
        """Entries of this map with no (parent, name) entry in `other`."""
        res = InstalledDependencyVersionsMap()
        for parent, dep in self.entries():
            if other.get(parent, dep.name) is None:
                res.put(parent, dep)
        return res

    def upgraded_in(self, other: InstalledDependencyVersionsMap) -> InstalledDependencyVersionsMap:
        """Entries whose version in `other` is newer.

        Semver: strictly greater. Branch: same branch, different commit.
        Local path: never. Values are the entries from `other`.
        """
        return self._changed_in(other, 1)

    def downgraded_in(self, other: InstalledDependencyVersionsMap) -> InstalledDependencyVersionsMap:
        """Entries whose semver version in `other` is strictly lower."""
        return self._changed_in(other, -1)

    def _changed_in(self, other: InstalledDependencyVersionsMap, direction: int) -> InstalledDependencyVersionsMap:
        res = InstalledDependencyVersionsMap()
        for parent, old in self.entries():
            new = other.get(parent, old.name)
            if new is not None and version_change(old.version, new.version) == direction:
                res.put(parent, new)
        return res

    # ── serialisation ─────────────────────────

    def to_dict(self) -> dict[str, dict[str, dict[str, Any]]]:
        return {
            parent: {name: deps[name].to_dict() for name in sorted(deps)}
            for parent, deps in sorted(self._items.items())
            if deps
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InstalledDependencyVersionsMap:
        """Build from the persisted document.

        Raises:
            ValueError: malformed document
        """
        if not isinstance(data, dict):
            raise ValueError(f"install cache must be a mapping, got {type(data).__name__}")
        res = cls()
        for parent, deps in data.items():
            if not isinstance(deps, dict):
                raise ValueError(f"dependencies of '{parent}' must be a mapping")
            for name, raw in deps.items():
                entry = ResolvedVersionConstraint.from_dict(raw)
                if entry.name != name:
                    raise ValueError(
                        f"lock entry '{parent}' → '{name}' has mismatched name '{entry.name}'"
                    )
                res.put(parent, entry)
        return res


def version_change(old: DependencyVersion, new: DependencyVersion) -> int:
    """1 if `new` is an upgrade of `old`, -1 for a downgrade, else 0."""
    if isinstance(old, SemverVersion) and isinstance(new, SemverVersion):
        return new.compare(old) or 0
    if isinstance(old, BranchVersion) and isinstance(new, BranchVersion):
        if old.branch == new.branch and old.commit != new.commit:
            return 1
    return 0
