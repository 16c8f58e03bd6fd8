"""
Broadcast - Sign and submit transactions.

Commands:
- transfer: Send LINO between accounts
- send:     Broadcast any registered message from JSON fields

The signing key comes from ``--private-key`` / ``PRIVATE_KEY`` or the saved
client .env.  Without ``--seq`` the signer's next sequence number is read
from the node first.
"""

from __future__ import annotations

import json
import sys
from typing import Any, Optional

import click

from ..pneuma.broadcast import Broadcast
from ..pneuma.query import Query
from ..pneuma.transport import Transport
from ..sigil.keys import load_private_key
from ..spec.messages import MESSAGE_TYPES
from .common import run


def _broadcast_options(func):
    func = click.option("--timeout", type=float, default=None, help="Seconds to wait for the node")(func)
    func = click.option("--memo", default="", help="Memo attached to the transaction")(func)
    func = click.option(
        "--sync",
        "confirm_only",
        is_flag=True,
        help="Return once the pending pool accepts the tx",
    )(func)
    func = click.option("--seq", type=int, default=None, help="Sequence number (default: query the node)")(func)
    func = click.option(
        "--private-key",
        envvar="PRIVATE_KEY",
        default=None,
        help="Signer private key hex (default: saved key)",
    )(func)
    return func


def _signing_key(private_key: Optional[str]) -> str:
    if private_key:
        return private_key
    try:
        return load_private_key()
    except ValueError as exc:
        click.secho(f"ERROR: {exc}", fg="red", err=True)
        sys.exit(1)


async def _next_seq(transport: Transport, signer: str, seq: Optional[int]) -> int:
    if seq is not None:
        return seq
    return await Query(transport).get_seq_number(signer)


def _report(resp) -> None:
    click.secho("SUCCESS: Transaction committed!", fg="green")
    click.echo(f"  TX: {resp.commit_hash}")
    if resp.height:
        click.echo(f"  Height: {resp.height}")


@click.command()
@click.argument("sender")
@click.argument("receiver")
@click.argument("amount")
@_broadcast_options
@click.pass_context
def transfer(
    ctx: click.Context,
    sender: str,
    receiver: str,
    amount: str,
    private_key: Optional[str],
    seq: Optional[int],
    confirm_only: bool,
    memo: str,
    timeout: Optional[float],
) -> None:
    """Send AMOUNT LINO from SENDER to RECEIVER."""
    key = _signing_key(private_key)

    async def _transfer(transport: Transport):
        next_seq = await _next_seq(transport, sender, seq)
        return await Broadcast(transport).transfer(
            sender,
            receiver,
            amount,
            memo,
            key,
            next_seq,
            confirm_only=confirm_only,
            timeout=timeout,
        )

    _report(run(ctx, _transfer))


@click.command()
@click.option(
    "--msg-type",
    required=True,
    type=click.Choice(sorted(MESSAGE_TYPES)),
    help="Registered message name",
)
@click.option("--fields", "fields_json", required=True, help="Message fields as a JSON object")
@click.option("--signer", default=None, help="Username whose sequence is used when --seq is omitted")
@_broadcast_options
@click.pass_context
def send(
    ctx: click.Context,
    msg_type: str,
    fields_json: str,
    signer: Optional[str],
    private_key: Optional[str],
    seq: Optional[int],
    confirm_only: bool,
    memo: str,
    timeout: Optional[float],
) -> None:
    """Broadcast any message type from JSON fields."""
    try:
        fields: dict[str, Any] = json.loads(fields_json)
        if not isinstance(fields, dict):
            raise ValueError("Fields must be a JSON object")
    except (json.JSONDecodeError, ValueError) as exc:
        click.secho(f"ERROR: Invalid fields: {exc}", fg="red", err=True)
        sys.exit(1)

    if seq is None and not signer:
        click.secho("ERROR: Pass --seq or --signer.", fg="red", err=True)
        sys.exit(1)

    key = _signing_key(private_key)

    async def _send(transport: Transport):
        next_seq = await _next_seq(transport, signer or "", seq)
        return await Broadcast(transport).send(
            msg_type,
            fields,
            key,
            next_seq,
            memo=memo,
            confirm_only=confirm_only,
            timeout=timeout,
        )

    try:
        resp = run(ctx, _send)
    except TypeError as exc:
        click.secho(f"ERROR: Fields do not match {msg_type}: {exc}", fg="red", err=True)
        sys.exit(1)
    _report(resp)
