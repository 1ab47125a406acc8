"""
tests/conftest.py — Shared fixtures.

`ws` builds a workspace on disk: a root mod, installed dependency mods
under .modlock/mods and the lock file.
"""

import json
import logging
import os
import sys
from pathlib import Path

import pytest
import yaml

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from modlock.versionmap.constraint import WORKSPACE_LOCK_STRUCT_VERSION


class WorkspaceBuilder:
    def __init__(self, root: Path):
        self.root = root
        self.mods = root / ".modlock" / "mods"

    @property
    def lock_path(self) -> Path:
        return self.root / ".mod.cache.json"

    def mod(self, folder: Path, name: str, require=None, resources=None,
            resource_file: str = "resources.yaml") -> Path:
        folder.mkdir(parents=True, exist_ok=True)
        definition = {
            "apiVersion": "modlock.io/v1",
            "kind": "Mod",
            "metadata": {"name": name},
        }
        if require:
            definition["require"] = require
        (folder / "mod.yaml").write_text(yaml.dump(definition, sort_keys=False))
        if resources:
            (folder / resource_file).write_text(
                yaml.dump({"resources": resources}, sort_keys=False)
            )
        return folder

    def root_mod(self, name: str = "app", require=None, resources=None) -> Path:
        return self.mod(self.root, name, require, resources)

    def installed(self, dependency_path: str, name: str, require=None, resources=None) -> Path:
        return self.mod(self.mods / dependency_path, name, require, resources)

    def lock(self, data: dict) -> Path:
        self.lock_path.write_text(json.dumps(data, indent=2))
        return self.lock_path

    @staticmethod
    def entry(name: str, **fields) -> dict:
        data = {"name": name, **fields}
        data.setdefault("struct_version", WORKSPACE_LOCK_STRUCT_VERSION)
        return data


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logger = logging.getLogger("modlock")
    for h in list(logger.handlers):
        logger.removeHandler(h)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def ws(tmp_path):
    return WorkspaceBuilder(tmp_path)


def query(name: str, sql: str = "select 1") -> dict:
    return {"type": "query", "name": name, "sql": sql}


@pytest.fixture
def app_workspace(ws):
    """app requires libA (^1.0.0, locked 1.0.3) and libB (main, locked abc123)."""
    ws.root_mod("app", require=[
        {"name": "libA", "version": "^1.0.0"},
        {"name": "libB", "branch": "main"},
    ], resources=[query("users")])
    ws.installed("libA@v1.0.3", "libA", resources=[query("orders")])
    ws.installed("libB#main", "libB", resources=[query("invoices")])
    ws.lock({
        "app": {
            "libA": ws.entry("libA", version="1.0.3", constraint="^1.0.0"),
            "libB": ws.entry("libB", branch="main", commit="abc123", constraint="branch:main"),
        },
    })
    return ws
