"""
modlock.versionmap.constraint — Version constraints and resolved versions.

A mod's require block lists its dependencies:

    require:
      - name: github.com/acme/lib-a
        version: "^1.0.0"        # semver range (default: any)
      - name: github.com/acme/lib-b
        branch: main             # git branch
      - name: lib-c
        path: ../lib-c           # local folder

Each entry becomes a ModVersionConstraint. Once installed, the lock
records a ResolvedVersionConstraint for it: the concrete version plus
the constraint text it was resolved from.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

import semantic_version

from modlock.versionmap.dependency import (
    DependencyVersion, SemverVersion, BranchVersion, LocalPathVersion,
    build_dependency_path,
)

# Bump when the lock entry format changes; an older lock needs a full reinstall
WORKSPACE_LOCK_STRUCT_VERSION = 20240429

FILE_PREFIX = "file:"
BRANCH_PREFIX = "branch:"

_ANY_VERSION = ("", "*", "latest")

# caret on a full X.Y.Z (X >= 1) stays within the declared minor; 0.x keeps npm meaning
_FULL_CARET = re.compile(r"\^\s*v?([1-9]\d*\.\d+\.\d+)")
_V_PREFIX = re.compile(r"(?<![\w.])v(?=\d)")


def build_version_spec(constraint: str) -> semantic_version.NpmSpec:
    """Build the range matcher for a version constraint string.

    Uses npm range syntax (`^`, `~`, `x`, hyphen ranges, `||`). A caret
    on a full `X.Y.Z` version with X >= 1 is limited to that minor
    release line; `^0.Y.Z` is already that narrow (or narrower) in npm:

    >>> spec = build_version_spec("^1.2.0")
    >>> spec.match(semantic_version.Version("1.2.5"))
    True
    >>> spec.match(semantic_version.Version("1.3.0"))
    False
    """
    text = (constraint or "").strip()
    if text in _ANY_VERSION:
        text = "*"
    text = _V_PREFIX.sub("", text)
    text = _FULL_CARET.sub(r"~\1", text)
    return semantic_version.NpmSpec(text)


@dataclass
class ModVersionConstraint:
    """A required dependency as declared by a mod.

    Exactly one of `version`, `branch`, `file_path` applies; when none is
    given the version defaults to any (`*`).
    """
    name: str
    version: str | None = None
    branch: str | None = None
    file_path: str | None = None
    alias: str | None = None
    args: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.name:
            raise ValueError("dependency name is required")

        set_fields = [k for k in ("version", "branch", "file_path")
                      if getattr(self, k)]
        if len(set_fields) > 1:
            raise ValueError(
                f"{self.name}: only one of 'version', 'branch' or 'file_path' "
                f"should be set"
            )

        self._spec: semantic_version.NpmSpec | None = None
        if not self.branch and not self.file_path:
            if self.version in (None, "", "latest"):
                self.version = "*"
            try:
                self._spec = build_version_spec(self.version)
            except ValueError as e:
                raise ValueError(
                    f"{self.name}: invalid version constraint '{self.version}'"
                ) from e

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ModVersionConstraint:
        """Build from a require entry mapping."""
        args = data.get("args") or {}
        if not isinstance(args, dict):
            raise ValueError(f"{data.get('name')}: 'args' must be a mapping")
        version = data.get("version")
        return cls(
            name=str(data.get("name") or ""),
            version=str(version) if version is not None else None,
            branch=data.get("branch"),
            file_path=data.get("path") or data.get("file_path"),
            alias=data.get("alias"),
            args=dict(args),
        )

    @classmethod
    def parse(cls, full_name: str) -> ModVersionConstraint:
        """Parse `name`, `name@<range>` or `name#<branch>`."""
        if full_name.startswith(FILE_PREFIX):
            raise ValueError(
                "file path constraints must be built with file_path=..."
            )
        if "@" in full_name:
            segments = full_name.split("@")
            if len(segments) != 2:
                raise ValueError(f"invalid mod name {full_name}")
            return cls(name=segments[0], version=segments[1])
        if "#" in full_name:
            segments = full_name.split("#")
            if len(segments) != 2:
                raise ValueError(f"invalid mod name {full_name}")
            return cls(name=segments[0], branch=segments[1])
        return cls(name=full_name)

    @property
    def has_version(self) -> bool:
        """False when any version is acceptable."""
        return self.version not in (None, "", "*", "latest")

    @property
    def is_prerelease(self) -> bool:
        return bool(self.version) and "-" in self.version

    @property
    def dependency_path(self) -> str:
        if self.branch:
            return f"{self.name}#{self.branch}"
        if self.file_path:
            return f"{FILE_PREFIX}{self.file_path}"
        if self.has_version:
            return f"{self.name}@{self.version}"
        return self.name

    def original_constraint(self) -> str:
        """The constraint as the user wrote it, for messages and the lock."""
        if self.branch:
            return f"{BRANCH_PREFIX}{self.branch}"
        if self.file_path:
            return f"{FILE_PREFIX}{self.file_path}"
        return self.version or "*"

    def satisfied_by(self, version: DependencyVersion | None) -> bool:
        """Whether a locked version satisfies this constraint.

        - local path (either side): always satisfied
        - branch: branch names must match; the commit is irrelevant
        - version: npm-style range match on the semantic version
        """
        if version is None:
            return False
        if self.file_path or isinstance(version, LocalPathVersion):
            return True
        if self.branch:
            return isinstance(version, BranchVersion) and version.branch == self.branch
        if isinstance(version, SemverVersion) and self._spec is not None:
            return self._spec.match(version.version)
        return False

    def __str__(self) -> str:
        return self.dependency_path


@dataclass
class ResolvedVersionConstraint:
    """A dependency as recorded in the lock file."""
    name: str
    version: DependencyVersion
    constraint: str = ""
    git_ref: str = ""
    alias: str = ""
    struct_version: int = WORKSPACE_LOCK_STRUCT_VERSION

    def __post_init__(self):
        if not self.name:
            raise ValueError("resolved dependency name is required")
        if not isinstance(self.version, DependencyVersion):
            raise TypeError(
                f"{self.name}: version must be a DependencyVersion, "
                f"got {type(self.version).__name__}"
            )

    @property
    def commit(self) -> str | None:
        """Installed commit; only branch dependencies have one."""
        if isinstance(self.version, BranchVersion):
            return self.version.commit
        return None

    @property
    def dependency_path(self) -> str:
        return build_dependency_path(self.name, self.version)

    @property
    def is_prerelease(self) -> bool:
        return isinstance(self.version, SemverVersion) and self.version.is_prerelease

    @property
    def is_local(self) -> bool:
        return isinstance(self.version, LocalPathVersion)

    def satisfies(self, constraint: ModVersionConstraint) -> bool:
        return constraint.satisfied_by(self.version)

    def same_as(self, other: ResolvedVersionConstraint | None) -> bool:
        """Same dependency, version, constraint, commit and ref."""
        if other is None:
            return False
        return (
            self.name == other.name
            and self.version.same_as(other.version)
            and self.constraint == other.constraint
            and self.commit == other.commit
            and self.git_ref == other.git_ref
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name}
        if self.alias:
            data["alias"] = self.alias
        if self.constraint:
            data["constraint"] = self.constraint
        data.update(self.version.to_dict())
        if self.git_ref:
            data["git_ref"] = self.git_ref
        data["struct_version"] = self.struct_version
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResolvedVersionConstraint:
        if not isinstance(data, dict):
            raise ValueError(f"lock entry must be a mapping, got {type(data).__name__}")
        struct_version = data.get("struct_version", 0)
        if not isinstance(struct_version, int):
            raise ValueError(f"{data.get('name')}: struct_version must be an integer")
        return cls(
            name=str(data.get("name") or ""),
            version=DependencyVersion.from_dict(data),
            constraint=data.get("constraint") or "",
            git_ref=data.get("git_ref") or "",
            alias=data.get("alias") or "",
            struct_version=struct_version,
        )

    def __str__(self) -> str:
        return self.dependency_path
