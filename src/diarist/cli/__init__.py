"""Diarist CLI — entry point for listing, searching and editing entries."""

import click

from diarist import __version__


@click.group()
@click.version_option(version=__version__, package_name="diarist")
@click.option("--config", "config_file", type=click.Path(dir_okay=False), help="YAML or JSON config file.")
@click.option("--data-dir", type=click.Path(file_okay=False), help="Journal data directory.")
@click.pass_context
def main(ctx: click.Context, config_file: str | None, data_dir: str | None) -> None:
    """Diarist — your personal journal."""
    from .common import load_config

    ctx.obj = load_config(config_file, data_dir)


# Register subcommands
from .entries_cmd import delete, edit, list_entries, new, search, show

main.add_command(list_entries)
main.add_command(search)
main.add_command(show)
main.add_command(new)
main.add_command(edit)
main.add_command(delete)
