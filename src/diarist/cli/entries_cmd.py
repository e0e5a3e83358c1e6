"""diarist list/search/show/new/edit/delete — entry commands."""

from __future__ import annotations

import click

from diarist.core.utils.text import strip_markup, truncate_text
from diarist.journal import Entry

from .common import open_journal, read_content, run


def _print_entries(entries: list[Entry], empty_message: str) -> None:
    from rich.console import Console
    from rich.markup import escape
    from rich.table import Table

    console = Console()
    if not entries:
        console.print(f"[dim]{escape(empty_message)}[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("ID", no_wrap=True)
    table.add_column("Date", no_wrap=True)
    table.add_column("Title")
    table.add_column("Preview", style="dim")
    for entry in entries:
        table.add_row(
            entry.identity,
            entry.timestamp.strftime("%Y-%m-%d %H:%M"),
            escape(entry.title),
            escape(truncate_text(strip_markup(entry.content), 40)),
        )
    console.print(table)


@click.command("list")
@click.pass_obj
def list_entries(config) -> None:
    """List all entries, newest first."""
    journal = open_journal(config)
    listing = run(journal.scan())
    _print_entries(listing.entries, "No entries yet.")
    for name in listing.skipped:
        click.echo(f"Warning: skipped unreadable record {name}", err=True)


@click.command()
@click.argument("query")
@click.pass_obj
def search(config, query: str) -> None:
    """Show entries whose title or content contains QUERY (any case)."""
    journal = open_journal(config)
    _print_entries(run(journal.search(query)), f"No entries match {query!r}.")


@click.command()
@click.argument("identity")
@click.option("--raw", is_flag=True, help="Print stored content without stripping markup.")
@click.pass_obj
def show(config, identity: str, raw: bool) -> None:
    """Show one entry."""
    from rich.console import Console
    from rich.markup import escape
    from rich.panel import Panel

    journal = open_journal(config)
    entry = run(journal.get(identity))
    body = entry.content if raw else strip_markup(entry.content)
    Console().print(Panel(escape(body) or "[dim](empty)[/dim]", title=escape(entry.label), subtitle=entry.identity))


@click.command()
@click.option("--title", "-t", required=True, help="Entry title.")
@click.option("--content", "-c", default=None, help="Entry content. Opens $EDITOR when omitted.")
@click.pass_obj
def new(config, title: str, content: str | None) -> None:
    """Create a new entry."""
    journal = open_journal(config)
    if content is None:
        content = read_content()
    entry = run(journal.create(Entry(title=title, content=content)))
    click.echo(f"Saved: {entry.title} ({entry.identity})")


@click.command()
@click.argument("identity")
@click.option("--title", "-t", default=None, help="New title.")
@click.option("--content", "-c", default=None, help="New content. Opens $EDITOR when neither option is given.")
@click.pass_obj
def edit(config, identity: str, title: str | None, content: str | None) -> None:
    """Change the title and/or content of an entry."""
    journal = open_journal(config)
    current = run(journal.get(identity))
    if title is None and content is None:
        content = read_content(current.content)
    revised = current.revise(
        title if title is not None else current.title,
        content if content is not None else current.content,
    )
    if revised == current:
        click.echo("No changes.")
        return
    entry = run(journal.update(current, revised))
    click.echo(f"Saved: {entry.title} ({entry.identity})")


@click.command()
@click.argument("identity")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
@click.pass_obj
def delete(config, identity: str, yes: bool) -> None:
    """Delete an entry permanently."""
    journal = open_journal(config)
    entry = run(journal.get(identity))
    if not yes:
        click.confirm(f"Delete '{entry.title}'?", abort=True)
    run(journal.delete(entry))
    click.echo("Entry deleted")
