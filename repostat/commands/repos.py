"""
Tracked repository management commands.

Commands for adding, removing, renaming and locating the repositories
listed in the configuration file.
"""

import click
from rich.console import Console
from rich.markup import escape

from ..config import (
    load_config,
    load_config_file,
    save_config,
    add_repository,
    remove_repository,
    rename_repository,
    get_repository_path,
    get_repository_refs,
)
from ..cli_utils import standard_command
from ..exit_codes import CommandError, USAGE_ERROR

console = Console()


def _config_path(obj):
    return (obj or {}).get('config_path')


@click.command('add')
@click.argument('paths', nargs=-1, required=True, type=click.Path(file_okay=False))
@click.option('--name', help='Name to track the repository under (single PATH only)')
@click.pass_obj
@standard_command
def add_handler(obj, paths, name, progress, **kwargs):
    """Track one or more repositories.

    PATH: Repository directory; its last path component becomes the
    name unless --name is given.

    Examples:

    \b
        repostat add ~/src/api ~/src/web
        repostat add ~/src/dotfiles --name dots
    """
    if name and len(paths) > 1:
        raise CommandError("--name can only be used with a single PATH", USAGE_ERROR)

    config = load_config_file(_config_path(obj))
    added = [add_repository(config, path, name) for path in paths]
    save_config(config, _config_path(obj))

    for repo_name in added:
        console.print(f"[green]✓[/green] Added [cyan]{escape(repo_name)}[/cyan]: {escape(config['repositories'][repo_name])}")


@click.command('remove')
@click.argument('names', nargs=-1, required=True)
@click.pass_obj
@standard_command
def remove_handler(obj, names, progress, **kwargs):
    """Stop tracking repositories by name."""
    config = load_config_file(_config_path(obj))
    for name in names:
        remove_repository(config, name)
    save_config(config, _config_path(obj))

    for name in names:
        console.print(f"[green]✓[/green] Removed [cyan]{escape(name)}[/cyan]")


@click.command('rename')
@click.argument('name')
@click.argument('new_name')
@click.pass_obj
@standard_command
def rename_handler(obj, name, new_name, progress, **kwargs):
    """Rename a tracked repository."""
    config = load_config_file(_config_path(obj))
    rename_repository(config, name, new_name)
    save_config(config, _config_path(obj))
    console.print(f"[green]✓[/green] Renamed [cyan]{escape(name)}[/cyan] to [cyan]{escape(new_name)}[/cyan]")


@click.command('path')
@click.argument('name')
@click.pass_obj
@standard_command
def path_handler(obj, name, progress, **kwargs):
    """Print the path of a tracked repository.

    Example:

    \b
        cd "$(repostat path api)"
    """
    config = load_config(_config_path(obj))
    click.echo(get_repository_path(config, name))


@click.command('list')
@click.pass_obj
@standard_command
def list_handler(obj, progress, **kwargs):
    """List tracked repositories and their paths."""
    config = load_config(_config_path(obj))
    refs = get_repository_refs(config)
    width = max((len(ref.name) for ref in refs), default=0)
    for ref in refs:
        click.echo(f"{ref.name.ljust(width)}  {ref.path}")
