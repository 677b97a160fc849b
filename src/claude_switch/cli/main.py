import logging
from datetime import datetime, timezone
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from ..config import Paths
from ..domain.errors import ClaudeSwitchError
from ..profiles.manager import ProfileManager

app = typer.Typer(
    name="claude-switch",
    help="Manage multiple Claude Code accounts",
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)
console = Console()
err_console = Console(stderr=True)


def get_profile_manager() -> ProfileManager:
    """get profile manager instance."""
    return ProfileManager(Paths.from_env(), console=err_console)


def _fail(e: Exception) -> None:
    err_console.print(f"[red]Error:[/red] {escape(str(e))}", highlight=False)
    raise typer.Exit(1)


def format_expiry(expires_at: Optional[int]) -> str:
    """render a ms timestamp as 'YYYY-MM-DD HH:MM UTC'."""
    if expires_at is None:
        return "-"
    try:
        expiry = datetime.fromtimestamp(expires_at / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return "invalid"
    return expiry.strftime("%Y-%m-%d %H:%M UTC")


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """switch the Claude CLI between saved accounts."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.command("add")
def add_profile(name: str = typer.Argument(..., help="Profile name")):
    """
    add a new profile.

    logs claude out, runs its login flow, and saves whatever account you
    sign in with under NAME.
    """
    manager = get_profile_manager()

    try:
        manager.add(name)
    except ClaudeSwitchError as e:
        _fail(e)


@app.command("import")
def import_profile(name: str = typer.Argument(..., help="Profile name")):
    """save the session claude is currently logged in with as NAME."""
    manager = get_profile_manager()

    try:
        manager.import_current(name)
    except ClaudeSwitchError as e:
        _fail(e)


@app.command("use")
def use_profile(name: str = typer.Argument(..., help="Profile name")):
    """switch claude to a saved profile."""
    manager = get_profile_manager()

    try:
        manager.use(name)
    except ClaudeSwitchError as e:
        _fail(e)


@app.command("list")
def list_profiles():
    """list all profiles."""
    manager = get_profile_manager()

    try:
        entries = manager.list_profiles()
    except ClaudeSwitchError as e:
        _fail(e)

    if not entries:
        err_console.print("[yellow]No profiles.[/yellow]")
        err_console.print(
            "\nCreate one with: [cyan]claude-switch add <name>[/cyan] "
            "or [cyan]claude-switch import <name>[/cyan]"
        )
        return

    table = Table()
    table.add_column("", justify="center")
    table.add_column("NAME", style="bold")
    table.add_column("TYPE")
    table.add_column("EMAIL")
    table.add_column("ORG")
    table.add_column("PLAN")
    table.add_column("EXPIRES", style="dim")

    for entry in entries:
        marker = Text("*", style="bold green") if entry.active else Text("")
        name = Text(entry.name, style="bold green" if entry.active else "")

        if entry.profile is None:
            table.add_row(marker, name, Text("error", style="red"), "-", "-", "-", "-")
            continue

        profile = entry.profile
        table.add_row(
            marker,
            name,
            profile.display_type,
            Text(profile.display_email),
            Text(profile.display_org),
            Text(profile.display_subscription),
            format_expiry(profile.expires_at),
        )

    console.print(table)


@app.command("remove")
def remove_profile(name: str = typer.Argument(..., help="Profile name")):
    """remove a profile."""
    manager = get_profile_manager()

    try:
        manager.remove(name)
    except ClaudeSwitchError as e:
        _fail(e)


@app.command(
    "exec",
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)
def exec_command(
    name: str = typer.Argument(..., help="Profile name"),
    command: List[str] = typer.Argument(..., help="Command and arguments to run"),
):
    """
    run a command with a profile's credentials in its environment.

    example: claude-switch exec work -- claude --resume
    """
    manager = get_profile_manager()

    try:
        manager.exec(name, command)
    except ClaudeSwitchError as e:
        _fail(e)


if __name__ == "__main__":
    app()
