"""Key commands: keygen."""

from __future__ import annotations

import os
from pathlib import Path

import click
from rich.panel import Panel

from ._common import VAULT_HOME, console, fail
from ..config import load_config
from ..errors import VaultError


def register_keys_commands(main: click.Group) -> None:
    """Register keygen."""

    @main.command("keygen")
    @click.option("--home", default=VAULT_HOME, type=click.Path(), help="Vault home directory.")
    @click.option("--name", default=None, help="User ID for the key (default: $KEY_ID or $USER).")
    @click.option("--email", default=None, help="Email for the key's user ID.")
    @click.option("--bits", default=4096, show_default=True, type=int, help="RSA key size.")
    def keygen(home: str, name: str, email: str, bits: int):
        """Generate the OpenPGP keypair used in asymmetric mode.

        The private key is protected with $IPFSVAULT_KEY_PASSPHRASE
        when it is set.
        """
        from ..keys import generate_keypair

        home_path = Path(home).expanduser()
        try:
            config = load_config(home_path)
            uid = name or os.environ.get("KEY_ID") or os.environ.get("USER", "ipfsvault")
            console.print(f"\n  Generating {bits}-bit keypair for [cyan]{uid}[/]...")
            paths = generate_keypair(
                config.keys_dir,
                uid,
                email=email,
                passphrase=config.key_passphrase,
                bits=bits,
            )
        except VaultError as exc:
            fail(exc)

        console.print(Panel(
            f"[bold green]Keypair generated[/]\n"
            f"Private: [cyan]{paths['private']}[/]\n"
            f"Public: [cyan]{paths['public']}[/]\n"
            f"Revocation: [cyan]{paths['revocation']}[/]\n\n"
            f"[yellow]Back up the private key. Without it nothing can be restored.[/]",
            title="Keys",
            border_style="green",
        ))
