"""
tests/test_constraint.py — Constraints and resolved versions.
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from modlock.versionmap import (
    ModVersionConstraint, ResolvedVersionConstraint,
    SemverVersion, BranchVersion, LocalPathVersion,
    WORKSPACE_LOCK_STRUCT_VERSION,
)


# ─────────────────────────────────────────────
# SATISFACTION
# ─────────────────────────────────────────────
class TestSatisfaction:
    def test_full_caret_stays_in_minor(self):
        c = ModVersionConstraint("lib", version="^1.2.0")
        assert c.satisfied_by(SemverVersion("1.2.0"))
        assert c.satisfied_by(SemverVersion("1.2.5"))
        assert not c.satisfied_by(SemverVersion("1.3.0"))
        assert not c.satisfied_by(SemverVersion("2.0.0"))
        assert not c.satisfied_by(SemverVersion("1.1.9"))

    def test_partial_caret_is_npm_caret(self):
        c = ModVersionConstraint("lib", version="^1.2")
        assert c.satisfied_by(SemverVersion("1.3.0"))
        assert not c.satisfied_by(SemverVersion("2.0.0"))

    def test_zero_major_caret_keeps_npm_meaning(self):
        patch_only = ModVersionConstraint("lib", version="^0.0.3")
        assert patch_only.satisfied_by(SemverVersion("0.0.3"))
        assert not patch_only.satisfied_by(SemverVersion("0.0.4"))
        minor = ModVersionConstraint("lib", version="^0.2.3")
        assert minor.satisfied_by(SemverVersion("0.2.9"))
        assert not minor.satisfied_by(SemverVersion("0.3.0"))

    def test_v_prefix(self):
        c = ModVersionConstraint("lib", version="v1.2.3")
        assert c.satisfied_by(SemverVersion("1.2.3"))
        assert not c.satisfied_by(SemverVersion("1.2.4"))

    def test_ranges(self):
        c = ModVersionConstraint("lib", version=">=1.0.0 <2.0.0")
        assert c.satisfied_by(SemverVersion("1.9.0"))
        assert not c.satisfied_by(SemverVersion("2.0.0"))

    def test_any_version(self):
        c = ModVersionConstraint("lib")
        assert c.version == "*"
        assert not c.has_version
        assert c.satisfied_by(SemverVersion("0.0.1"))

    def test_branch_ignores_commit(self):
        c = ModVersionConstraint("lib", branch="main")
        assert c.satisfied_by(BranchVersion("main", "abc123"))
        assert c.satisfied_by(BranchVersion("main", "def456"))
        assert not c.satisfied_by(BranchVersion("dev", "abc123"))
        assert not c.satisfied_by(SemverVersion("1.0.0"))

    def test_semver_constraint_rejects_branch(self):
        c = ModVersionConstraint("lib", version="^1.0.0")
        assert not c.satisfied_by(BranchVersion("main"))

    def test_local_path_always_satisfies(self):
        assert ModVersionConstraint("lib", version="^9.0.0").satisfied_by(LocalPathVersion("/src/lib"))
        assert ModVersionConstraint("lib", file_path="/src/lib").satisfied_by(SemverVersion("1.0.0"))

    def test_none_never_satisfies(self):
        assert not ModVersionConstraint("lib").satisfied_by(None)


# ─────────────────────────────────────────────
# CONSTRAINT
# ─────────────────────────────────────────────
class TestModVersionConstraint:
    def test_only_one_variant(self):
        with pytest.raises(ValueError, match="only one"):
            ModVersionConstraint("lib", version="1.0.0", branch="main")

    def test_name_required(self):
        with pytest.raises(ValueError, match="name"):
            ModVersionConstraint("")

    def test_invalid_range(self):
        with pytest.raises(ValueError, match="invalid version constraint"):
            ModVersionConstraint("lib", version="not a range!")

    def test_parse(self):
        c = ModVersionConstraint.parse("github.com/acme/lib@^1.0.0")
        assert c.name == "github.com/acme/lib"
        assert c.version == "^1.0.0"
        b = ModVersionConstraint.parse("github.com/acme/lib#main")
        assert b.branch == "main"
        assert ModVersionConstraint.parse("lib").version == "*"

    def test_parse_invalid(self):
        with pytest.raises(ValueError, match="invalid mod name"):
            ModVersionConstraint.parse("a@1@2")

    def test_from_dict_path_alias(self):
        c = ModVersionConstraint.from_dict({"name": "lib", "path": "../lib", "args": {"x": 1}})
        assert c.file_path == "../lib"
        assert c.args == {"x": 1}

    def test_original_constraint(self):
        assert ModVersionConstraint("lib", version="^1.0.0").original_constraint() == "^1.0.0"
        assert ModVersionConstraint("lib", branch="main").original_constraint() == "branch:main"
        assert ModVersionConstraint("lib", file_path="/x").original_constraint() == "file:/x"

    def test_dependency_path(self):
        assert ModVersionConstraint("lib", version="^1.0.0").dependency_path == "lib@^1.0.0"
        assert ModVersionConstraint("lib", branch="main").dependency_path == "lib#main"
        assert ModVersionConstraint("lib").dependency_path == "lib"


# ─────────────────────────────────────────────
# RESOLVED
# ─────────────────────────────────────────────
class TestResolvedVersionConstraint:
    def test_commit_only_for_branch(self):
        assert ResolvedVersionConstraint("lib", BranchVersion("main", "abc")).commit == "abc"
        assert ResolvedVersionConstraint("lib", SemverVersion("1.0.0")).commit is None

    def test_version_must_be_variant(self):
        with pytest.raises(TypeError):
            ResolvedVersionConstraint("lib", "1.0.0")

    def test_to_dict_omits_empty(self):
        d = ResolvedVersionConstraint("lib", SemverVersion("1.0.3"), constraint="^1.0.0").to_dict()
        assert d == {
            "name": "lib",
            "constraint": "^1.0.0",
            "version": "1.0.3",
            "struct_version": WORKSPACE_LOCK_STRUCT_VERSION,
        }

    def test_round_trip_branch(self):
        r = ResolvedVersionConstraint("lib", BranchVersion("main", "abc123"),
                                      constraint="branch:main", git_ref="refs/heads/main",
                                      alias="l")
        back = ResolvedVersionConstraint.from_dict(r.to_dict())
        assert back == r
        assert back.same_as(r)

    def test_round_trip_local(self):
        r = ResolvedVersionConstraint("lib", LocalPathVersion("/src/lib"), constraint="file:/src/lib")
        back = ResolvedVersionConstraint.from_dict(r.to_dict())
        assert back == r
        assert back.is_local

    def test_missing_struct_version_is_old(self):
        r = ResolvedVersionConstraint.from_dict({"name": "lib", "version": "1.0.0"})
        assert r.struct_version == 0

    def test_from_dict_rejects_two_variants(self):
        with pytest.raises(ValueError):
            ResolvedVersionConstraint.from_dict(
                {"name": "lib", "version": "1.0.0", "file_path": "/x"}
            )

    def test_same_as_compares_commit(self):
        a = ResolvedVersionConstraint("lib", BranchVersion("main", "abc"))
        b = ResolvedVersionConstraint("lib", BranchVersion("main", "def"))
        assert not a.same_as(b)
        assert not a.same_as(None)
