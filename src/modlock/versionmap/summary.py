"""
modlock.versionmap.summary — Effect of an install/update run.

Compares the install cache before and after an installer run, walking
both from the root mod by dependency name so a dependency is matched
even when its version (and therefore its parent key) changed.

    Upgraded 1 mod:

    app
    └── github.com/acme/lib-a@v1.1.0
"""

from __future__ import annotations

from dataclasses import dataclass, field

from modlock.versionmap.constraint import ResolvedVersionConstraint
from modlock.versionmap.dependency import (
    SemverVersion, BranchVersion, LocalPathVersion,
)
from modlock.versionmap.maps import InstalledDependencyVersionsMap, version_change
from modlock.versionmap.tree import tree_from_paths

VERB_INSTALLED = "Installed"
VERB_UNINSTALLED = "Uninstalled"
VERB_UPGRADED = "Upgraded"
VERB_DOWNGRADED = "Downgraded"

DRY_RUN_VERBS = {
    VERB_INSTALLED: "Would install",
    VERB_UNINSTALLED: "Would uninstall",
    VERB_UPGRADED: "Would upgrade",
    VERB_DOWNGRADED: "Would downgrade",
}


@dataclass
class InstallSummary:
    """Full dependency paths that changed, grouped by change type."""
    installed: list[list[str]] = field(default_factory=list)
    uninstalled: list[list[str]] = field(default_factory=list)
    upgraded: list[list[str]] = field(default_factory=list)
    downgraded: list[list[str]] = field(default_factory=list)
    new_cache_empty: bool = False

    @property
    def empty(self) -> bool:
        return not (self.installed or self.uninstalled
                    or self.upgraded or self.downgraded)

    def render(self, dry_run: bool = False) -> str:
        if self.empty:
            if self.new_cache_empty:
                return "No mods are installed"
            return "All targeted mods are up to date"

        sections = [
            (VERB_INSTALLED, self.installed),
            (VERB_UPGRADED, self.upgraded),
            (VERB_DOWNGRADED, self.downgraded),
            (VERB_UNINSTALLED, self.uninstalled),
        ]
        out = ""
        for verb, paths in sections:
            if not paths:
                continue
            if dry_run:
                verb = DRY_RUN_VERBS[verb]
            count = len(paths)
            noun = "mod" if count == 1 else "mods"
            trees = "\n".join(t.render() for t in tree_from_paths(paths))
            out += f"\n{verb} {count} {noun}:\n\n{trees}\n"
        return out


def build_install_summary(
    old: InstalledDependencyVersionsMap,
    new: InstalledDependencyVersionsMap,
    root: str,
) -> InstallSummary:
    """Summarise the change from `old` to `new` for the `root` mod."""
    summary = InstallSummary(new_cache_empty=not new)

    def compare_old(path: list[str], old_dep: ResolvedVersionConstraint) -> None:
        new_dep, full_path = new.get_dependency(path)
        _, old_full_path = old.get_dependency(path)
        if new_dep is None:
            summary.uninstalled.append(old_full_path)
            return

        if _same_kind(old_dep, new_dep):
            change = version_change(old_dep.version, new_dep.version)
            if change > 0:
                summary.upgraded.append(full_path)
            elif change < 0:
                summary.downgraded.append(full_path)
            return

        # different constraint kind or different local path
        summary.installed.append(full_path)
        summary.uninstalled.append(old_full_path)

    def find_new(path: list[str], new_dep: ResolvedVersionConstraint) -> None:
        old_dep, _ = old.get_dependency(path)
        if old_dep is None:
            _, full_path = new.get_dependency(path)
            summary.installed.append(full_path)

    old.walk(root, compare_old)
    new.walk(root, find_new)
    return summary


def _same_kind(old: ResolvedVersionConstraint, new: ResolvedVersionConstraint) -> bool:
    a, b = old.version, new.version
    if isinstance(a, SemverVersion) and isinstance(b, SemverVersion):
        return True
    if isinstance(a, BranchVersion) and isinstance(b, BranchVersion):
        return a.branch == b.branch
    if isinstance(a, LocalPathVersion) and isinstance(b, LocalPathVersion):
        return a.path == b.path
    return False
