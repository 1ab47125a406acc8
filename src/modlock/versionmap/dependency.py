"""
modlock.versionmap.dependency — Resolved dependency versions.

A dependency resolves to exactly one of:

    SemverVersion(1.2.3)          tagged release      name@v1.2.3
    BranchVersion(main, abc123)   git branch + commit name#main
    LocalPathVersion(/src/lib)    local folder        /src/lib

DependencyVersion is a sum type: the base class cannot be instantiated
and each variant carries a single payload, so "exactly one of" holds
by construction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

import semantic_version


def parse_version(text: str) -> semantic_version.Version:
    """Parse a semver string.

    Accepts `1.2.3`, `v1.2.3` and the legacy patch-less `v1.2`
    (coerced to 1.2.0).

    >>> str(parse_version("v1.2"))
    '1.2.0'
    """
    raw = text.strip()
    if raw[:1] in ("v", "V"):
        raw = raw[1:]
    if not raw:
        raise ValueError(f"Invalid version: '{text}'")
    try:
        return semantic_version.Version(raw)
    except ValueError:
        pass
    # Only partial numeric versions are coerced (1 / 1.2), nothing looser
    head = raw.split("-", 1)[0].split("+", 1)[0]
    parts = head.split(".")
    if len(parts) < 3 and all(p.isdigit() for p in parts):
        return semantic_version.Version.coerce(raw)
    raise ValueError(f"Invalid version: '{text}'")


class DependencyVersion:
    """Base of the resolved version variants."""

    kind: ClassVar[str] = ""

    def __new__(cls, *args: Any, **kwargs: Any):
        if cls is DependencyVersion:
            raise TypeError(
                "DependencyVersion is abstract - use SemverVersion, "
                "BranchVersion or LocalPathVersion"
            )
        return super().__new__(cls)

    def render(self) -> str:
        """Folder/display form of the version."""
        raise NotImplementedError

    def same_as(self, other: DependencyVersion | None) -> bool:
        """Identity comparison used for lock lookups.

        Semver: equal version and build metadata. Branch: same branch
        name (commit ignored). Local path: same path.
        """
        raise NotImplementedError

    def compare(self, other: DependencyVersion) -> int | None:
        """-1 / 0 / 1, or None when the two are not orderable."""
        return None

    def to_dict(self) -> dict[str, Any]:
        raise NotImplementedError

    @staticmethod
    def from_dict(data: dict[str, Any]) -> DependencyVersion:
        """Build a variant from persisted fields.

        Exactly one of `version`, `branch`, `file_path` must be set.
        """
        version = data.get("version")
        branch = data.get("branch")
        file_path = data.get("file_path")

        present = [k for k, v in (("version", version), ("branch", branch),
                                  ("file_path", file_path)) if v]
        if len(present) != 1:
            raise ValueError(
                "exactly one of 'version', 'branch' or 'file_path' must be set, "
                f"got {present or 'none'}"
            )

        if version:
            return SemverVersion(str(version))
        if branch:
            return BranchVersion(str(branch), data.get("commit") or None)
        return LocalPathVersion(str(file_path))


@dataclass(frozen=True)
class SemverVersion(DependencyVersion):
    """A tagged release."""

    version: semantic_version.Version
    kind: ClassVar[str] = "version"

    def __post_init__(self):
        if isinstance(self.version, str):
            object.__setattr__(self, "version", parse_version(self.version))
        if not isinstance(self.version, semantic_version.Version):
            raise TypeError(f"Expected a semantic version, got {self.version!r}")

    def render(self) -> str:
        return f"v{self.version}"

    def same_as(self, other: DependencyVersion | None) -> bool:
        return isinstance(other, SemverVersion) and str(self.version) == str(other.version)

    def compare(self, other: DependencyVersion) -> int | None:
        if not isinstance(other, SemverVersion):
            return None
        if self.version < other.version:
            return -1
        if self.version > other.version:
            return 1
        return 0

    def __lt__(self, other: SemverVersion) -> bool:
        if not isinstance(other, SemverVersion):
            return NotImplemented
        return self.version < other.version

    def __gt__(self, other: SemverVersion) -> bool:
        if not isinstance(other, SemverVersion):
            return NotImplemented
        return self.version > other.version

    @property
    def is_prerelease(self) -> bool:
        return bool(self.version.prerelease) or bool(self.version.build)

    def to_dict(self) -> dict[str, Any]:
        return {"version": str(self.version)}

    def __str__(self) -> str:
        return str(self.version)


@dataclass(frozen=True)
class BranchVersion(DependencyVersion):
    """A git branch, pinned to the commit that was installed."""

    branch: str
    commit: str | None = None
    kind: ClassVar[str] = "branch"

    def __post_init__(self):
        if not self.branch:
            raise ValueError("branch name must not be empty")

    def render(self) -> str:
        return self.branch

    def same_as(self, other: DependencyVersion | None) -> bool:
        return isinstance(other, BranchVersion) and self.branch == other.branch

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"branch": self.branch}
        if self.commit:
            data["commit"] = self.commit
        return data

    def __str__(self) -> str:
        return self.branch


@dataclass(frozen=True)
class LocalPathVersion(DependencyVersion):
    """A dependency referenced directly from a local folder."""

    path: str
    kind: ClassVar[str] = "file_path"

    def __post_init__(self):
        if not self.path:
            raise ValueError("file path must not be empty")

    def render(self) -> str:
        return self.path

    def same_as(self, other: DependencyVersion | None) -> bool:
        return isinstance(other, LocalPathVersion) and self.path == other.path

    def to_dict(self) -> dict[str, Any]:
        return {"file_path": self.path}

    def __str__(self) -> str:
        return self.path


def build_dependency_path(name: str, version: DependencyVersion | None) -> str:
    """Dependency path of a resolved dependency.

    This is both the key used in the lock file and the folder the
    dependency is installed at, relative to the install root:

    >>> build_dependency_path("github.com/acme/lib", SemverVersion("1.0.0"))
    'github.com/acme/lib@v1.0.0'
    >>> build_dependency_path("github.com/acme/lib", BranchVersion("main"))
    'github.com/acme/lib#main'

    Local-path dependencies are referenced by their path.
    """
    if version is None:
        return name
    if isinstance(version, SemverVersion):
        return f"{name}@{version.render()}"
    if isinstance(version, BranchVersion):
        return f"{name}#{version.branch}"
    if isinstance(version, LocalPathVersion):
        return version.path
    raise TypeError(f"Unknown dependency version type: {type(version).__name__}")


def parse_dependency_path(text: str) -> tuple[str, DependencyVersion | None]:
    """Split a dependency path into name and version.

    `name@v1.2.3` → (name, SemverVersion), `name#main` → (name,
    BranchVersion). Text without a marker returns (text, None).

    Raises:
        ValueError: the text has a marker but is malformed
    """
    if "@" in text:
        parts = text.split("@")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise ValueError(f"Invalid dependency path: '{text}'")
        name, version_text = parts
        if not version_text.startswith("v") or "/" in version_text:
            raise ValueError(f"Dependency path '{text}' has an invalid version")
        return name, SemverVersion(parse_version(version_text))

    if "#" in text:
        parts = text.split("#")
        if len(parts) != 2 or not parts[0] or not parts[1] or "/" in parts[1]:
            raise ValueError(f"Invalid dependency path: '{text}'")
        return parts[0], BranchVersion(parts[1])

    return text, None


def sort_key(version: DependencyVersion) -> tuple[int, Any]:
    """Sort key: semver versions by precedence, others after, by text."""
    if isinstance(version, SemverVersion):
        return (0, version.version)
    return (1, version.render())
