"""
Keygen - Create a secp256k1 keypair.

The private key is printed once, or written to ~/.linoclient/.env with
``--save`` (mode 0600) so that later commands can sign with it.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import click

from ..sigil.keys import generate_key, load_private_key, save_private_key


@click.command()
@click.option("--save", is_flag=True, help="Store the private key in the client .env")
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Alternate .env file for --save",
)
@click.option("--force", is_flag=True, help="Overwrite an existing saved key")
def keygen(save: bool, env_file: Optional[Path], force: bool) -> None:
    """Generate a new keypair."""
    if save and not force:
        try:
            existing = load_private_key(env_file)
        except ValueError:
            existing = None
        if existing:
            click.secho("ERROR: A private key is already saved. Use --force to replace it.", fg="red", err=True)
            sys.exit(1)

    private_key, public_key = generate_key()

    click.echo(click.style("  Public key:  ", dim=True) + click.style(public_key, fg="bright_white"))
    if save:
        path = save_private_key(private_key, env_file)
        click.echo(click.style("  Saved to:    ", dim=True) + click.style(str(path), fg="bright_white"))
        click.secho("  IMPORTANT: Back up this file. A lost key cannot be recovered.", fg="yellow", bold=True)
    else:
        click.echo(click.style("  Private key: ", dim=True) + click.style(private_key, fg="bright_white"))
        click.secho("  Keep the private key secret. It is not stored anywhere.", fg="yellow")
