"""Setup command: init."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click
from rich.panel import Panel

from ._common import VAULT_HOME, console
from ..config import CONFIG_FILE, save_config
from ..crypto import ProviderMode
from ..models import StoreBackendType, StoreConfig, VaultConfig


def register_setup_commands(main: click.Group) -> None:
    """Register the init command."""

    @main.command("init")
    @click.option("--home", default=VAULT_HOME, type=click.Path(), help="Vault home directory.")
    @click.option(
        "--mode",
        type=click.Choice([m.value for m in ProviderMode]),
        default=ProviderMode.SYMMETRIC.value,
        help="Encrypt with a password or an OpenPGP keypair.",
    )
    @click.option(
        "--store",
        "backend",
        type=click.Choice([b.value for b in StoreBackendType]),
        default=StoreBackendType.IPFS.value,
        help="Where encrypted blobs are stored.",
    )
    @click.option("--url", default=None, help="IPFS RPC endpoint (e.g. http://127.0.0.1:5001).")
    @click.option("--files", "files_config", default=None, type=click.Path(), help="Files list (JSON/YAML).")
    @click.option("--per-file-iv", is_flag=True, help="Use a fresh IV for every upload.")
    def init(
        home: str,
        mode: str,
        backend: str,
        url: Optional[str],
        files_config: Optional[str],
        per_file_iv: bool,
    ):
        """Create a vault home with a config.yaml.

        Examples:

            ipfsvault init --url http://127.0.0.1:5001 --files ~/backup-files.json

            ipfsvault init --mode asymmetric --store local
        """
        home_path = Path(home).expanduser()
        if (home_path / CONFIG_FILE).exists():
            console.print(f"[yellow]Config already exists:[/] {home_path / CONFIG_FILE}")
            return

        config = VaultConfig(
            mode=ProviderMode(mode),
            store=StoreConfig(backend=StoreBackendType(backend), url=url),
            files_config=Path(files_config).expanduser() if files_config else Path("files.json"),
            per_file_iv=per_file_iv,
        )
        path = save_config(config, home_path)

        next_step = (
            "Set IPFSVAULT_PASSWORD, then run [bold]ipfsvault run[/]."
            if config.mode == ProviderMode.SYMMETRIC
            else "Run [bold]ipfsvault keygen[/], then [bold]ipfsvault run[/]."
        )
        console.print(Panel(
            f"[bold green]Vault initialized[/]\n"
            f"Config: [cyan]{path}[/]\n"
            f"Mode: {config.mode.value}\n"
            f"Store: {config.store.backend.value}\n\n"
            f"{next_step}",
            title="ipfsvault",
            border_style="green",
        ))
