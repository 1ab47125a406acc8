"""modlock.versionmap — Dependency versions, constraints and the install cache."""

from modlock.versionmap.dependency import (
    DependencyVersion, SemverVersion, BranchVersion, LocalPathVersion,
    parse_version, build_dependency_path, parse_dependency_path,
)
from modlock.versionmap.constraint import (
    ModVersionConstraint, ResolvedVersionConstraint,
    WORKSPACE_LOCK_STRUCT_VERSION, build_version_spec,
)
from modlock.versionmap.maps import (
    DependencyVersionListMap, ResolvedVersionListMap,
    InstalledDependencyVersionsMap, version_change,
)
from modlock.versionmap.tree import DependencyTree, tree_from_paths
from modlock.versionmap.summary import InstallSummary, build_install_summary

__all__ = [
    "DependencyVersion", "SemverVersion", "BranchVersion", "LocalPathVersion",
    "parse_version", "build_dependency_path", "parse_dependency_path",
    "ModVersionConstraint", "ResolvedVersionConstraint",
    "WORKSPACE_LOCK_STRUCT_VERSION", "build_version_spec",
    "DependencyVersionListMap", "ResolvedVersionListMap",
    "InstalledDependencyVersionsMap", "version_change",
    "DependencyTree", "tree_from_paths",
    "InstallSummary", "build_install_summary",
]
