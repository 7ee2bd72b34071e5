"""Manifest commands: status, clean."""

from __future__ import annotations

import click
from rich.table import Table

from ._common import VAULT_HOME, console, fail, open_vault
from ..errors import VaultError

STATE_STYLES = {
    "synced": "[green]synced[/]",
    "changed": "[yellow]changed[/]",
    "missing": "[red]missing[/]",
    "unreadable": "[bold red]unreadable[/]",
}


def register_manifest_commands(main: click.Group) -> None:
    """Register status and clean."""

    @main.command("status")
    @click.option("--home", default=VAULT_HOME, type=click.Path(), help="Vault home directory.")
    def status(home: str):
        """Show manifest entries and their local state. No network calls."""
        vault = open_vault(home)
        try:
            info = vault.status()
        except VaultError as exc:
            fail(exc)

        console.print(
            f"\n  Mode: [cyan]{info['mode']}[/]  Store: [cyan]{info['store']}[/]"
            f"  Manifest: [dim]{info['manifest']}[/]\n"
        )
        if not info["entries"] and not info["new"]:
            console.print("  [dim]Nothing tracked yet.[/]\n")
            return

        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
        table.add_column("ID", justify="right")
        table.add_column("File", style="cyan")
        table.add_column("State")
        table.add_column("CID", style="dim")

        for e in info["entries"]:
            name = e["filename"] if e["tracked"] else f"{e['filename']} [dim](untracked)[/]"
            table.add_row(str(e["id"]), name, STATE_STYLES.get(e["state"], e["state"]), e["cid"])
        for path in info["new"]:
            table.add_row("-", path, "[bold green]new[/]", "")

        console.print(table)
        console.print()

    @main.command("clean")
    @click.option("--home", default=VAULT_HOME, type=click.Path(), help="Vault home directory.")
    @click.confirmation_option(prompt="Unpin every file and delete the manifest?")
    def clean(home: str):
        """Unpin every stored file and remove the manifest."""
        vault = open_vault(home)
        try:
            result = vault.clean()
        except VaultError as exc:
            fail(exc)

        if not result["removed"] and not result["failed"]:
            console.print("[yellow]Nothing to clean. No manifest file.[/]")
            return

        console.print(f"  Unpinned [bold]{result['unpinned']}[/] CID(s)")
        if result["failed"]:
            console.print(f"  [red]{len(result['failed'])} unpin(s) failed; manifest kept.[/]")
            for cid in result["failed"]:
                console.print(f"    [red]{cid}[/]")
            raise SystemExit(1)
        console.print("  [green]Manifest removed.[/]")
