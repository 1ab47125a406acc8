"""
modlock.cli.status_cmd — modlock status command.

Shows lock file, struct version, missing and unreferenced installs.
"""

import click

from modlock.cli._common import workspace_paths, load_lock
from modlock.versionmap.constraint import WORKSPACE_LOCK_STRUCT_VERSION
from modlock.versionmap.dependency import build_dependency_path


@click.command("status")
@click.option("-C", "--dir", "workspace_dir", default=None,
              help="Workspace directory (default: pwd)")
@click.pass_obj
def status_cmd(cfg, workspace_dir):
    """Show workspace lock status."""
    paths = workspace_paths(workspace_dir, cfg)

    if not paths.lock_path.exists():
        click.echo(f"No {cfg.lock_file_name} found in {paths.workspace_path}")
        click.echo(f"Run '{cfg.install_command}' to install dependencies.")
        return

    lock = load_lock(paths)

    click.echo(f"Workspace:  {paths.workspace_path}")
    click.echo(f"Lock file:  {paths.lock_path}")
    click.echo(f"Mods dir:   {paths.mod_install_path}")
    click.echo(f"Locked:     {len(lock.install_cache)} installed, "
               f"{len(lock.missing_versions)} missing")

    if lock.requires_migration():
        click.echo()
        click.echo(f"⚠ Lock format {lock.struct_version()} is outdated "
                   f"(current {WORKSPACE_LOCK_STRUCT_VERSION})")
        click.echo(f"  Run '{cfg.install_command}' to reinstall.")

    if lock.incomplete:
        click.echo("\nMissing:")
        for parent, dep in lock.missing_versions.entries():
            click.echo(f"  {dep.dependency_path}  (required by {parent})")
        click.echo(f"  Run '{cfg.install_command}' to install.")

    unreferenced = lock.unreferenced_mods()
    if unreferenced:
        click.echo("\nUnreferenced:")
        for name, versions in unreferenced.items():
            for version in versions:
                click.echo(f"  {build_dependency_path(name, version)}")

    if not lock.incomplete and not unreferenced:
        click.echo("\n✓ All locked mods are installed.")
