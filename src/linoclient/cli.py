"""
Lino client CLI

Command-line interface for querying and transacting on a Lino node.

Commands:
  keygen    - Generate a secp256k1 keypair
  whoami    - Show the public key of the saved signer
  query     - Read records (post, user-posts, validator, validators, account, seq)
  transfer  - Send LINO between accounts
  send      - Broadcast any registered message
"""

from __future__ import annotations

import logging
import sys

import click

from .config import TransportConfig
from .errors import KeyDecodeError
from .sigil.keys import get_public_key_hex, load_private_key


# ============ Constants ============

VERSION = "0.1.0"


# ============ Banner ============


def _print_banner() -> None:
    border = click.style("  ◆ ═══════════════════════════════════════ ◆", fg="cyan")
    click.echo()
    click.echo(border)
    click.echo()
    click.echo(
        click.style("        L I N O   C L I E N T", fg="bright_white", bold=True)
        + click.style(f"    v{VERSION}", dim=True)
    )
    click.echo()
    click.echo(border)
    click.echo()


# ============ Main CLI Group ============


@click.group(invoke_without_command=True)
@click.version_option(version=VERSION, prog_name="linoclient")
@click.option("--node-url", envvar="LINO_NODE_URL", default=None, help="Node RPC address")
@click.option("--chain-id", envvar="LINO_CHAIN_ID", default=None, help="Chain identifier")
@click.option("--verbose", "-v", is_flag=True, help="Log RPC traffic")
@click.pass_context
def cli(ctx: click.Context, node_url: str | None, chain_id: str | None, verbose: bool) -> None:
    """Lino blockchain client."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = TransportConfig.from_env()
    ctx.obj = TransportConfig(
        node_url=node_url if node_url is not None else config.node_url,
        chain_id=chain_id or config.chain_id,
        timeout=config.timeout,
    )

    if ctx.invoked_subcommand is None:
        _print_banner()
        click.echo(ctx.get_help())


# ============ Top-level Commands ============

from .theurgy.keygen import keygen
from .theurgy.query import query
from .theurgy.broadcast import send, transfer

cli.add_command(keygen)
cli.add_command(query)
cli.add_command(transfer)
cli.add_command(send)


# ============ Identity ============


@cli.command()
def whoami() -> None:
    """Show the public key of the saved signer."""
    try:
        pk = load_private_key()
        click.echo(f"Public key: {get_public_key_hex(pk)}")
    except (ValueError, FileNotFoundError):
        click.echo("No key found.")
        click.echo("Run 'linoclient keygen --save' to create one.")
        sys.exit(1)
    except KeyDecodeError as exc:
        click.secho(f"ERROR: Saved key is invalid: {exc}", fg="red", err=True)
        sys.exit(exc.exit_code)


# ============ Entry Points ============


def main() -> None:
    """Lino client CLI entry point."""
    # Ensure UTF-8 output on Windows (for box-drawing symbols)
    if sys.platform == "win32":
        try:
            sys.stdout.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
            sys.stderr.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
        except (AttributeError, OSError):
            pass
    cli()


if __name__ == "__main__":
    main()
