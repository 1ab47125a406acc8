"""
modlock.mod.model — Mods and their resources.

A Mod is a folder holding a mod definition (mod.yaml) and resource
files. After loading, `Mod.resources` holds the mod's own resources
plus those of every (transitive) dependency.

Resources are keyed by `<mod short name>.<type>.<name>`, so resources
of different mods never clash by name.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator

from modlock.errors import ConfigurationError, Diagnostic, SEVERITY_ERROR
from modlock.versionmap.constraint import (
    ModVersionConstraint, ResolvedVersionConstraint,
)
from modlock.versionmap.dependency import DependencyVersion

DEFAULT_MOD_NAME = "local"


@dataclass(frozen=True)
class Resource:
    """A single declared resource."""
    mod_name: str
    type: str
    name: str
    body: dict[str, Any] = field(default_factory=dict, compare=True, hash=False)
    file: str | None = None
    line: int | None = None
    dependency_path: str | None = None   # None for the root mod
    dependency_name: str | None = None
    dependency_version: DependencyVersion | None = None

    @property
    def qualified_name(self) -> str:
        return f"{self.mod_name}.{self.type}.{self.name}"

    @property
    def source(self) -> tuple[str | None, str | None]:
        return self.dependency_path, self.file


class ResourceCollection:
    """Ordered resources keyed by qualified name."""

    def __init__(self, resources: list[Resource] | None = None):
        self._items: dict[str, Resource] = {}
        for r in resources or []:
            self.add(r)

    def add(self, resource: Resource) -> None:
        key = resource.qualified_name
        if key in self._items:
            raise ValueError(f"Duplicate resource: '{key}'")
        self._items[key] = resource

    def merge(self, other: ResourceCollection) -> None:
        """Add all resources of `other`.

        The same resource reached twice through the dependency graph is
        added once. Different locked versions of one dependency (two
        parents pinning it differently) keep the highest semver version,
        or the first merged one when versions are not orderable. Two
        different mods defining one name are an error.

        Raises:
            ConfigurationError: name collision
        """
        collisions: list[Diagnostic] = []
        for key, resource in other._items.items():
            existing = self._items.get(key)
            if existing is None:
                self._items[key] = resource
            elif existing.source == resource.source:
                continue
            elif _same_dependency(existing, resource):
                if _newer(resource, existing):
                    self._items[key] = resource
            else:
                collisions.append(Diagnostic(
                    severity=SEVERITY_ERROR,
                    summary=f"Duplicate resource name '{key}'",
                    detail=(f"defined in {_describe(existing)} "
                            f"and {_describe(resource)}"),
                    file=resource.file,
                    line=resource.line,
                ))
        if collisions:
            raise ConfigurationError("resource name collision", collisions)

    def get(self, qualified_name: str) -> Resource | None:
        return self._items.get(qualified_name)

    def names(self) -> list[str]:
        return list(self._items)

    def for_mod(self, mod_name: str) -> list[Resource]:
        return [r for r in self._items.values() if r.mod_name == mod_name]

    def counts_by_mod(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for r in self._items.values():
            counts[r.mod_name] = counts.get(r.mod_name, 0) + 1
        return counts

    def __contains__(self, qualified_name: str) -> bool:
        return qualified_name in self._items

    def __iter__(self) -> Iterator[Resource]:
        return iter(self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResourceCollection):
            return NotImplemented
        return list(self._items.items()) == list(other._items.items())

    def __repr__(self) -> str:
        return f"ResourceCollection({self.names()!r})"


def _same_dependency(a: Resource, b: Resource) -> bool:
    return a.dependency_name is not None and a.dependency_name == b.dependency_name


def _newer(candidate: Resource, current: Resource) -> bool:
    if candidate.dependency_version is None or current.dependency_version is None:
        return False
    return candidate.dependency_version.compare(current.dependency_version) == 1


def _describe(resource: Resource) -> str:
    where = resource.dependency_path or "root mod"
    if resource.file:
        where += f" ({resource.file})"
    return where


@dataclass
class Mod:
    """A parsed mod."""
    name: str
    short_name: str
    mod_path: Path
    title: str | None = None
    require: list[ModVersionConstraint] = field(default_factory=list)
    version: DependencyVersion | None = None
    dependency_path: str | None = None
    resources: ResourceCollection = field(default_factory=ResourceCollection)
    definition_file: str | None = None
    is_default: bool = False

    @classmethod
    def default(cls, mod_path: str | Path) -> Mod:
        """Mod used for a folder without a mod definition."""
        return cls(
            name=DEFAULT_MOD_NAME,
            short_name=DEFAULT_MOD_NAME,
            mod_path=Path(mod_path),
            is_default=True,
        )

    @property
    def install_cache_key(self) -> str:
        """Parent key of this mod's dependencies in the install cache."""
        return self.dependency_path or self.short_name

    @property
    def is_dependency(self) -> bool:
        return self.dependency_path is not None

    def set_dependency_properties(self, dep: ResolvedVersionConstraint) -> None:
        """Apply the identity it was installed under to a dependency mod."""
        self.name = dep.name
        self.version = dep.version
        self.dependency_path = dep.dependency_path

    def require_names(self) -> list[str]:
        return [r.name for r in self.require]

    def __str__(self) -> str:
        return self.dependency_path or self.short_name
