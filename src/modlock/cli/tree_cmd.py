"""modlock.cli.tree_cmd — modlock tree command."""

import click

from modlock.cli._common import workspace_paths, load_lock, root_mod_name


@click.command("tree")
@click.option("-C", "--dir", "workspace_dir", default=None,
              help="Workspace directory (default: pwd)")
@click.pass_obj
def tree_cmd(cfg, workspace_dir):
    """Show the locked dependency tree."""
    paths = workspace_paths(workspace_dir, cfg)
    lock = load_lock(paths)

    if lock.empty and not lock.incomplete:
        click.echo("No mods are installed")
        return

    click.echo(lock.dependency_tree(root_mod_name(paths)).render())
