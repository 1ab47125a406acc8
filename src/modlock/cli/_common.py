"""Helpers shared by CLI commands."""

import sys
from pathlib import Path

import click

from modlock.config import ModlockConfig, WorkspacePaths
from modlock.errors import LockFileError
from modlock.mod.context import ParseContext
from modlock.mod.model import DEFAULT_MOD_NAME
from modlock.mod.parser import YamlModParser, find_mod_file
from modlock.workspace.lock import WorkspaceLock


def workspace_paths(workspace_dir, cfg: ModlockConfig) -> WorkspacePaths:
    return WorkspacePaths.for_workspace(Path(workspace_dir or "."), cfg)


def load_lock(paths: WorkspacePaths) -> WorkspaceLock:
    """Load the workspace lock, exiting on a broken lock file."""
    try:
        return WorkspaceLock.load(paths)
    except LockFileError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def root_mod_name(paths: WorkspacePaths) -> str:
    """Short name of the workspace mod, without loading dependencies."""
    mod_file = find_mod_file(paths.workspace_path, paths.config.mod_file_names)
    if mod_file is None:
        return DEFAULT_MOD_NAME

    parser = YamlModParser()
    mod, _ = parser.parse_mod_definition(mod_file, ParseContext(paths=paths, parser=parser))
    if mod is None:
        return DEFAULT_MOD_NAME
    return mod.short_name
