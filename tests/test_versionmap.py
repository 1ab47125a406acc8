"""
tests/test_versionmap.py — Dependency versions and version collections.

Version variants, dependency paths, the install cache (diffs, walk,
tree) and install summaries.
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from modlock.versionmap import (
    DependencyVersion, SemverVersion, BranchVersion, LocalPathVersion,
    ResolvedVersionConstraint, InstalledDependencyVersionsMap,
    DependencyVersionListMap, parse_version, build_dependency_path,
    parse_dependency_path, build_install_summary, tree_from_paths,
    version_change,
)


def _semver(name, version, constraint="*"):
    return ResolvedVersionConstraint(name, SemverVersion(version), constraint=constraint)


def _branch(name, branch, commit):
    return ResolvedVersionConstraint(name, BranchVersion(branch, commit),
                                     constraint=f"branch:{branch}")


def _cache(entries):
    cache = InstalledDependencyVersionsMap()
    for parent, dep in entries:
        cache.put(parent, dep)
    return cache


# ─────────────────────────────────────────────
# VERSIONS
# ─────────────────────────────────────────────
class TestDependencyVersion:
    def test_base_is_abstract(self):
        with pytest.raises(TypeError):
            DependencyVersion()

    def test_parse_version_prefix(self):
        assert str(parse_version("v1.2.3")) == "1.2.3"
        assert str(parse_version("1.2.3")) == "1.2.3"

    def test_parse_version_legacy(self):
        assert str(parse_version("v1.2")) == "1.2.0"

    def test_parse_version_invalid(self):
        with pytest.raises(ValueError):
            parse_version("vmain")
        with pytest.raises(ValueError):
            parse_version("v")

    def test_semver_render(self):
        v = SemverVersion("1.2.3")
        assert v.render() == "v1.2.3"
        assert str(v) == "1.2.3"

    def test_semver_ordering(self):
        assert SemverVersion("1.0.3") < SemverVersion("1.1.0")
        assert SemverVersion("2.0.0") > SemverVersion("1.9.9")
        assert SemverVersion("1.0.0").compare(BranchVersion("main")) is None

    def test_prerelease(self):
        assert SemverVersion("1.0.0-beta.1").is_prerelease
        assert not SemverVersion("1.0.0").is_prerelease

    def test_branch_same_as_ignores_commit(self):
        assert BranchVersion("main", "abc").same_as(BranchVersion("main", "def"))
        assert not BranchVersion("main").same_as(BranchVersion("dev"))

    def test_from_dict_variants(self):
        assert DependencyVersion.from_dict({"version": "1.0.3"}) == SemverVersion("1.0.3")
        assert DependencyVersion.from_dict({"branch": "main", "commit": "abc123"}) == \
            BranchVersion("main", "abc123")
        assert DependencyVersion.from_dict({"file_path": "/src/lib"}) == LocalPathVersion("/src/lib")

    def test_from_dict_requires_exactly_one(self):
        with pytest.raises(ValueError, match="exactly one"):
            DependencyVersion.from_dict({})
        with pytest.raises(ValueError, match="exactly one"):
            DependencyVersion.from_dict({"version": "1.0.0", "branch": "main"})


class TestDependencyPath:
    def test_build(self):
        assert build_dependency_path("lib", SemverVersion("1.0.0")) == "lib@v1.0.0"
        assert build_dependency_path("lib", BranchVersion("main", "abc")) == "lib#main"
        assert build_dependency_path("lib", LocalPathVersion("/src/lib")) == "/src/lib"
        assert build_dependency_path("lib", None) == "lib"

    def test_parse_semver(self):
        name, version = parse_dependency_path("github.com/acme/lib@v1.0.3")
        assert name == "github.com/acme/lib"
        assert version == SemverVersion("1.0.3")

    def test_parse_branch(self):
        name, version = parse_dependency_path("github.com/acme/lib#main")
        assert name == "github.com/acme/lib"
        assert version == BranchVersion("main")

    def test_parse_plain(self):
        assert parse_dependency_path("github.com/acme") == ("github.com/acme", None)

    def test_parse_nested_folder_rejected(self):
        with pytest.raises(ValueError):
            parse_dependency_path("lib@v1.0.0/sub")
        with pytest.raises(ValueError):
            parse_dependency_path("lib@1.0.0")


# ─────────────────────────────────────────────
# COLLECTIONS
# ─────────────────────────────────────────────
class TestDependencyVersionListMap:
    def test_add_dedupes_and_sorts(self):
        m = DependencyVersionListMap()
        m.add("lib", SemverVersion("1.0.0"))
        m.add("lib", SemverVersion("2.0.0"))
        m.add("lib", SemverVersion("1.0.0"))
        assert m.get("lib") == [SemverVersion("2.0.0"), SemverVersion("1.0.0")]
        assert len(m) == 2

    def test_flat_map(self):
        m = DependencyVersionListMap()
        m.add("lib", SemverVersion("1.0.0"))
        m.add("other", BranchVersion("main"))
        assert m.flat_map() == {"lib@v1.0.0", "other#main"}


class TestInstalledMap:
    def test_add_dependency_stamps_struct_version(self):
        dep = _semver("lib", "1.0.0")
        dep.struct_version = 1
        cache = InstalledDependencyVersionsMap()
        cache.add_dependency("app", dep)
        assert cache.get("app", "lib").struct_version == 20240429
        assert dep.struct_version == 1

    def test_remove_drops_empty_parent(self):
        cache = _cache([("app", _semver("lib", "1.0.0"))])
        cache.remove("app", "lib")
        assert "app" not in cache
        assert not cache

    def test_dict_round_trip(self):
        cache = _cache([
            ("app", _semver("libA", "1.0.3", "^1.0.0")),
            ("app", _branch("libB", "main", "abc123")),
            ("libA@v1.0.3", ResolvedVersionConstraint("libC", LocalPathVersion("/src/libC"),
                                                      constraint="file:/src/libC")),
        ])
        assert InstalledDependencyVersionsMap.from_dict(cache.to_dict()) == cache

    def test_from_dict_name_mismatch(self):
        with pytest.raises(ValueError, match="mismatched"):
            InstalledDependencyVersionsMap.from_dict(
                {"app": {"libA": {"name": "libB", "version": "1.0.0"}}}
            )

    def test_get_dependency(self):
        cache = _cache([
            ("app", _semver("libA", "1.0.3")),
            ("libA@v1.0.3", _semver("libC", "2.0.0")),
        ])
        dep, full_path = cache.get_dependency(["app", "libA", "libC"])
        assert dep.name == "libC"
        assert full_path == ["app", "libA@v1.0.3", "libC@v2.0.0"]
        assert cache.get_dependency(["app"]) == (None, None)
        assert cache.get_dependency(["app", "nope"]) == (None, None)

    def test_walk(self):
        cache = _cache([
            ("app", _semver("libA", "1.0.3")),
            ("app", _branch("libB", "main", "abc")),
            ("libA@v1.0.3", _semver("libC", "2.0.0")),
        ])
        seen = []
        cache.walk("app", lambda path, dep: seen.append(path))
        assert seen == [["app", "libA"], ["app", "libA", "libC"], ["app", "libB"]]

    def test_walk_cycle_terminates(self):
        cache = _cache([
            ("app", _semver("libA", "1.0.0")),
            ("libA@v1.0.0", _semver("libB", "1.0.0")),
            ("libB@v1.0.0", _semver("libA", "1.0.0")),
        ])
        seen = []
        cache.walk("app", lambda path, dep: seen.append(path))
        assert seen[-1] == ["app", "libA", "libB", "libA"]
        assert len(seen) == 3


class TestDiff:
    def test_missing_from(self):
        old = _cache([("app", _semver("libA", "1.0.0")), ("app", _semver("libB", "1.0.0"))])
        new = _cache([("app", _semver("libA", "1.0.0"))])
        missing = old.missing_from(new)
        assert [d.name for _, d in missing.entries()] == ["libB"]
        assert not new.missing_from(old)

    def test_upgraded_semver_strict(self):
        old = _cache([("app", _semver("libA", "1.0.0")), ("app", _semver("libB", "1.0.0"))])
        new = _cache([("app", _semver("libA", "1.1.0")), ("app", _semver("libB", "1.0.0"))])
        upgraded = old.upgraded_in(new)
        assert [(p, d.dependency_path) for p, d in upgraded.entries()] == [("app", "libA@v1.1.0")]
        assert not old.downgraded_in(new)

    def test_downgraded_is_not_upgraded(self):
        old = _cache([("app", _semver("libA", "2.0.0"))])
        new = _cache([("app", _semver("libA", "1.0.0"))])
        assert not old.upgraded_in(new)
        assert [d.dependency_path for _, d in old.downgraded_in(new).entries()] == ["libA@v1.0.0"]

    def test_branch_commit_change_is_upgrade(self):
        old = _cache([("app", _branch("libB", "main", "abc123"))])
        new = _cache([("app", _branch("libB", "main", "def456"))])
        upgraded = old.upgraded_in(new)
        assert upgraded.get("app", "libB").commit == "def456"

    def test_local_path_never_changes(self):
        a = ResolvedVersionConstraint("libC", LocalPathVersion("/a"))
        b = ResolvedVersionConstraint("libC", LocalPathVersion("/b"))
        assert version_change(a.version, b.version) == 0
        old, new = _cache([("app", a)]), _cache([("app", b)])
        assert not old.upgraded_in(new)
        assert not old.downgraded_in(new)


# ─────────────────────────────────────────────
# TREE
# ─────────────────────────────────────────────
class TestTree:
    def test_render(self):
        cache = _cache([
            ("app", _semver("libA", "1.0.3")),
            ("app", _branch("libB", "main", "abc")),
            ("libA@v1.0.3", _semver("libC", "2.0.0")),
        ])
        assert cache.dependency_tree("app").render() == (
            "app\n"
            "├── libA@v1.0.3\n"
            "│   └── libC@v2.0.0\n"
            "└── libB#main"
        )

    def test_absent_root_attaches_top_level_parents(self):
        cache = _cache([
            ("github.com/acme/app", _semver("libA", "1.0.3")),
            ("libA@v1.0.3", _semver("libC", "2.0.0")),
        ])
        tree = cache.dependency_tree("app")
        assert tree.name == "app"
        assert [c.name for c in tree.children] == ["libA@v1.0.3"]
        assert tree.names() == ["app", "libA@v1.0.3", "libC@v2.0.0"]

    def test_tree_from_paths_shares_prefix(self):
        roots = tree_from_paths([["app", "libA@v1.0.0"], ["app", "libB#main"]])
        assert len(roots) == 1
        assert [c.name for c in roots[0].children] == ["libA@v1.0.0", "libB#main"]


# ─────────────────────────────────────────────
# INSTALL SUMMARY
# ─────────────────────────────────────────────
class TestInstallSummary:
    def test_changes(self):
        old = _cache([
            ("app", _semver("libA", "1.0.3")),
            ("app", _branch("libB", "main", "abc")),
            ("app", _semver("libC", "1.0.0")),
        ])
        new = _cache([
            ("app", _semver("libA", "1.1.0")),
            ("app", _branch("libB", "main", "def")),
            ("app", _semver("libD", "1.0.0")),
        ])
        summary = build_install_summary(old, new, "app")
        assert summary.upgraded == [["app", "libA@v1.1.0"], ["app", "libB#main"]]
        assert summary.installed == [["app", "libD@v1.0.0"]]
        assert summary.uninstalled == [["app", "libC@v1.0.0"]]
        assert summary.downgraded == []

        out = summary.render()
        assert "Installed 1 mod:" in out
        assert "Upgraded 2 mods:" in out
        assert "Uninstalled 1 mod:" in out
        assert "└── libD@v1.0.0" in out

    def test_dry_run_verbs(self):
        old = _cache([("app", _semver("libA", "2.0.0"))])
        new = _cache([("app", _semver("libA", "1.0.0"))])
        out = build_install_summary(old, new, "app").render(dry_run=True)
        assert "Would downgrade 1 mod:" in out

    def test_up_to_date(self):
        cache = _cache([("app", _semver("libA", "1.0.0"))])
        summary = build_install_summary(cache, cache.clone(), "app")
        assert summary.empty
        assert summary.render() == "All targeted mods are up to date"

    def test_nothing_installed(self):
        empty = InstalledDependencyVersionsMap()
        assert build_install_summary(empty, empty, "app").render() == "No mods are installed"

    def test_branch_switch_is_reinstall(self):
        old = _cache([("app", _branch("libB", "main", "abc"))])
        new = _cache([("app", _branch("libB", "dev", "abc"))])
        summary = build_install_summary(old, new, "app")
        assert summary.installed == [["app", "libB#dev"]]
        assert summary.uninstalled == [["app", "libB#main"]]
