"""modlock.cli.diff_cmd — modlock diff command."""

import sys

import click

from modlock.errors import LockFileError
from modlock.mod.model import DEFAULT_MOD_NAME
from modlock.workspace.lock import read_install_cache
from modlock.versionmap.summary import build_install_summary


def _top_level_parents(*caches) -> list[str]:
    parents: set[str] = set()
    for cache in caches:
        dependency_paths = {dep.dependency_path for _, dep in cache.entries()}
        parents.update(p for p in cache.parents() if p not in dependency_paths)
    return sorted(parents)


@click.command("diff")
@click.argument("old", type=click.Path(dir_okay=False))
@click.argument("new", type=click.Path(dir_okay=False))
@click.option("--root", default=None,
              help="Root mod name (default: the lock's top-level mod)")
@click.option("--dry-run", is_flag=True,
              help="Phrase the summary as a preview")
def diff_cmd(old, new, root, dry_run):
    """Show what changed between two lock files."""
    try:
        old_cache = read_install_cache(old)
        new_cache = read_install_cache(new)
    except LockFileError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if root is None:
        candidates = _top_level_parents(old_cache, new_cache)
        if len(candidates) > 1:
            click.echo(f"Error: several root mods found ({', '.join(candidates)}), "
                       f"use --root", err=True)
            sys.exit(1)
        root = candidates[0] if candidates else DEFAULT_MOD_NAME

    summary = build_install_summary(old_cache, new_cache, root)
    click.echo(summary.render(dry_run=dry_run))
