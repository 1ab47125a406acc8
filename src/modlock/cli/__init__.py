"""
modlock.cli — CLI entry point.

Commands:
  modlock tree [-C dir]            — Dependency tree of the workspace lock
  modlock status [-C dir]          — Lock / install folder status
  modlock load [-C dir]            — Load the workspace mod and its dependencies
  modlock diff OLD NEW [--root]    — Install summary between two lock files
"""

import sys

import click

from modlock.config import load_config
from modlock.errors import ConfigError
from modlock.logs import setup_logging
from modlock.cli.tree_cmd import tree_cmd
from modlock.cli.status_cmd import status_cmd
from modlock.cli.load_cmd import load_cmd
from modlock.cli.diff_cmd import diff_cmd


@click.group()
@click.version_option(package_name="modlock")
@click.option("--log-level", default=None,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
              help="Log level (default: from config)")
@click.option("--config", "config_file", default=None, type=click.Path(dir_okay=False),
              help="Config file (default: ~/.modlock/config.yaml)")
@click.pass_context
def main(ctx, log_level, config_file):
    """modlock — mod dependency lock inspection and loading."""
    try:
        cfg = load_config(config_file)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if log_level:
        cfg.log_level = log_level.upper()
    setup_logging(cfg.log_level)
    ctx.obj = cfg


main.add_command(tree_cmd, "tree")
main.add_command(status_cmd, "status")
main.add_command(load_cmd, "load")
main.add_command(diff_cmd, "diff")
