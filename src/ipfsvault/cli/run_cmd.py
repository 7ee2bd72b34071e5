"""Run commands: run, sync, pull."""

from __future__ import annotations

import click
from rich.panel import Panel

from ._common import VAULT_HOME, console, fail, open_vault, results_table
from ..errors import VaultError
from ..models import FileAction, RunReport

QUIET = {FileAction.SKIP, FileAction.PRESENT}


def _print_report(report: RunReport, show_all: bool) -> None:
    quiet = set() if show_all else QUIET
    results = report.uploaded + report.downloaded
    if any(r.action not in quiet for r in results):
        console.print(results_table(results, quiet))

    failures = len(report.failures)
    border = "red" if failures else "green"
    console.print(Panel(
        f"Added: {report.count(FileAction.ADD)}  "
        f"Updated: {report.count(FileAction.UPDATE)}  "
        f"Unchanged: {report.count(FileAction.SKIP)}  "
        f"Downloaded: {report.count(FileAction.DOWNLOAD)}  "
        f"Failed: {failures}",
        title="Sync Complete" if not failures else "Sync Finished With Errors",
        border_style=border,
    ))


def register_run_commands(main: click.Group) -> None:
    """Register run, sync, and pull."""

    @main.command("run")
    @click.option("--home", default=VAULT_HOME, type=click.Path(), help="Vault home directory.")
    @click.option("--all", "show_all", is_flag=True, help="Also list unchanged files.")
    def run(home: str, show_all: bool):
        """Upload new and changed files, then fetch missing ones.

        Examples:

            ipfsvault run

            IPFS_CLIENT_URL=http://10.0.0.2:5001 ipfsvault run --all
        """
        vault = open_vault(home)
        try:
            report = vault.run()
        except VaultError as exc:
            fail(exc)
        _print_report(report, show_all)
        if report.failures:
            raise SystemExit(1)

    @main.command("sync")
    @click.argument("paths", nargs=-1, type=click.Path())
    @click.option("--home", default=VAULT_HOME, type=click.Path(), help="Vault home directory.")
    @click.option("--all", "show_all", is_flag=True, help="Also list unchanged files.")
    def sync(paths: tuple[str, ...], home: str, show_all: bool):
        """Upload phase only. Syncs PATHS, or the files list if none given."""
        from ..config import expand_home

        vault = open_vault(home)
        files = [expand_home(p) for p in paths] if paths else None
        try:
            report = vault.run(files=files, download=False)
        except VaultError as exc:
            fail(exc)
        _print_report(report, show_all)
        if report.failures:
            raise SystemExit(1)

    @main.command("pull")
    @click.option("--home", default=VAULT_HOME, type=click.Path(), help="Vault home directory.")
    def pull(home: str):
        """Download phase only. Restores manifest files missing on disk."""
        vault = open_vault(home)
        try:
            report = vault.pull()
        except VaultError as exc:
            fail(exc)
        _print_report(report, show_all=False)
        if report.failures:
            raise SystemExit(1)
