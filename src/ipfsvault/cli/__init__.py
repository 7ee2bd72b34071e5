"""
ipfsvault CLI — encrypted backups to a content-addressed store.

The main Click group is defined here and all subcommands are
registered via register functions from their own modules.

Entry point: ipfsvault.cli:main
"""

from __future__ import annotations

import logging

import click

from .. import __version__


@click.group()
@click.version_option(version=__version__, prog_name="ipfsvault")
@click.option("--verbose", "-v", is_flag=True, help="Log every file decision.")
def main(verbose: bool):
    """ipfsvault — encrypted file backup to IPFS.

    Files are encrypted locally, pinned remotely, and tracked
    in a manifest so unchanged files never travel twice.
    """
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Register all command groups/commands from modular files
# ---------------------------------------------------------------------------

from .setup import register_setup_commands
from .run_cmd import register_run_commands
from .manifest_cmd import register_manifest_commands
from .keys_cmd import register_keys_commands

register_setup_commands(main)
register_run_commands(main)
register_manifest_commands(main)
register_keys_commands(main)
