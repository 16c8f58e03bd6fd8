"""
Query - Read records from the node.

Every subcommand prints the decoded record (or map of records) as JSON.
"""

from __future__ import annotations

import click

from ..pneuma.query import Query
from .common import echo_json, run


@click.group()
def query() -> None:
    """Read records from the node's stores."""
    pass


@query.command("post")
@click.argument("author")
@click.argument("post_id")
@click.pass_context
def query_post(ctx: click.Context, author: str, post_id: str) -> None:
    """Show one post (info and meta)."""
    echo_json(run(ctx, lambda t: Query(t).get_post(author, post_id)))


@query.command("user-posts")
@click.argument("username")
@click.pass_context
def query_user_posts(ctx: click.Context, username: str) -> None:
    """Show every post of USERNAME, keyed by permlink."""
    echo_json(run(ctx, lambda t: Query(t).get_user_all_posts(username)))


@query.command("validator")
@click.argument("username")
@click.pass_context
def query_validator(ctx: click.Context, username: str) -> None:
    echo_json(run(ctx, lambda t: Query(t).get_validator(username)))


@query.command("validators")
@click.pass_context
def query_validators(ctx: click.Context) -> None:
    """Show the validator lists."""
    echo_json(run(ctx, lambda t: Query(t).get_all_validators()))


@query.command("account")
@click.argument("username")
@click.pass_context
def query_account(ctx: click.Context, username: str) -> None:
    """Show account info, bank and meta."""

    async def _account(transport):
        q = Query(transport)
        return {
            "info": await q.get_account_info(username),
            "bank": await q.get_account_bank(username),
            "meta": await q.get_account_meta(username),
        }

    echo_json(run(ctx, _account))


@query.command("seq")
@click.argument("username")
@click.pass_context
def query_seq(ctx: click.Context, username: str) -> None:
    """Print the next sequence number of USERNAME."""
    click.echo(run(ctx, lambda t: Query(t).get_seq_number(username)))
