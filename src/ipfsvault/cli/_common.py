"""Shared utilities for all CLI command modules.

Provides the Rich console instance, the vault loader, and the
report table used by the run commands.
"""

from __future__ import annotations

import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from .. import VAULT_HOME
from ..errors import VaultError
from ..models import FileAction, FileResult
from ..vault import Vault

console = Console()

ACTION_STYLES = {
    FileAction.ADD: "[bold green]ADDED[/]",
    FileAction.UPDATE: "[bold cyan]UPDATED[/]",
    FileAction.DOWNLOAD: "[bold blue]DOWNLOADED[/]",
    FileAction.SKIP: "[dim]UNCHANGED[/]",
    FileAction.PRESENT: "[dim]PRESENT[/]",
    FileAction.MISSING: "[yellow]MISSING[/]",
    FileAction.FAILED: "[bold red]FAILED[/]",
}


def action_label(action: FileAction) -> str:
    """Map a file action to a Rich-formatted label."""
    return ACTION_STYLES.get(action, action.value)


def open_vault(home: str) -> Vault:
    """Load the vault at ``home`` or exit with a readable error."""
    try:
        return Vault(Path(home).expanduser())
    except VaultError as exc:
        fail(exc)


def fail(exc: Exception) -> None:
    """Print a fatal error and exit with status 1."""
    console.print(f"[bold red]Error:[/] {exc}")
    sys.exit(1)


def results_table(results: list[FileResult], quiet_actions: set[FileAction]) -> Table:
    """Build a table of per-file results, hiding ``quiet_actions``."""
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("File", style="cyan")
    table.add_column("Result")
    table.add_column("Detail", style="dim")

    for r in results:
        if r.action in quiet_actions:
            continue
        table.add_row(r.path, action_label(r.action), r.error or r.cid or "")
    return table
