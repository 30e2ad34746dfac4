#!/usr/bin/env python3

import click
from click.core import ParameterSource

from repostat import __version__
from repostat.cli_utils import add_common_options, STATUS_OPTIONS
from repostat.commands.status import status_handler
from repostat.commands.repos import (
    add_handler,
    remove_handler,
    rename_handler,
    path_handler,
    list_handler,
)


@click.group(invoke_without_command=True)
@click.option('-c', '--config', 'config_path', type=click.Path(dir_okay=False),
              help='Use a custom config file (default: ~/.repostat/config.toml)')
@add_common_options(*STATUS_OPTIONS)
@click.version_option(version=__version__)
@click.pass_context
def cli(ctx, config_path, **status_options):
    """repostat - Status overview for a curated set of git repositories.

    Without a subcommand, shows the status of every tracked repository.
    """
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config_path
    if ctx.invoked_subcommand is None:
        ctx.invoke(status_handler, **status_options)
        return

    given = {
        name: value for name, value in status_options.items()
        if ctx.get_parameter_source(name) is not ParameterSource.DEFAULT
    }
    if not given:
        return
    if ctx.invoked_subcommand != status_handler.name:
        raise click.UsageError(
            f"status options cannot be combined with '{ctx.invoked_subcommand}'", ctx=ctx
        )
    # Group-level status options become defaults for the status subcommand
    ctx.default_map = {**(ctx.default_map or {}), status_handler.name: given}


cli.add_command(status_handler)
cli.add_command(add_handler)
cli.add_command(remove_handler)
cli.add_command(rename_handler)
cli.add_command(path_handler)
cli.add_command(list_handler)


def main():
    cli()

if __name__ == "__main__":
    main()
