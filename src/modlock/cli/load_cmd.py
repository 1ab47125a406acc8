"""modlock.cli.load_cmd — modlock load command."""

import sys

import click

from modlock.errors import ModlockError, root_causes
from modlock.loader import load_workspace_mod


@click.command("load")
@click.option("-C", "--dir", "workspace_dir", default=".",
              help="Workspace directory (default: pwd)")
@click.option("--allow-default", is_flag=True,
              help="Load a folder without a mod definition as the default mod")
@click.option("--timeout", type=float, default=None,
              help="Cancel the load after this many seconds")
@click.pass_obj
def load_cmd(cfg, workspace_dir, allow_default, timeout):
    """Load the workspace mod and all its dependencies."""
    try:
        result = load_workspace_mod(
            workspace_dir, config=cfg,
            allow_default_mod=allow_default, timeout=timeout,
        )
    except ModlockError as e:
        causes = root_causes(e)
        click.echo(f"Error: failed to load workspace mod ({len(causes)} error(s))", err=True)
        click.echo(str(e), err=True)
        sys.exit(1)

    mod = result.mod
    click.echo(f"Loaded mod '{mod}' with {len(mod.resources)} resources")
    for name, count in sorted(mod.resources.counts_by_mod().items()):
        click.echo(f"  {name:<30} {count}")

    if result.warnings:
        click.echo("\nWarnings:")
        for w in result.warnings:
            click.echo(f"  {w}")
