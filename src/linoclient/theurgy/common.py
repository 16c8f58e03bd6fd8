"""Helpers shared by the CLI commands."""

from __future__ import annotations

import asyncio
import dataclasses
import enum
import json
import sys
from typing import Any, Awaitable, Callable, TypeVar

import click

from ..config import TransportConfig
from ..errors import LinoError
from ..pneuma.transport import Transport

T = TypeVar("T")


def run(ctx: click.Context, action: Callable[[Transport], Awaitable[T]]) -> T:
    """
    Open a transport from the CLI config, run ``action`` and close it.

    A ``LinoError`` is printed in red and ends the process with its exit code.
    """
    config: TransportConfig = ctx.obj

    async def _main() -> T:
        async with Transport(config) as transport:
            return await action(transport)

    try:
        return asyncio.run(_main())
    except LinoError as exc:
        click.secho(f"ERROR: {exc}", fg="red", err=True)
        sys.exit(exc.exit_code)


def _plain(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: _plain(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def echo_json(value: Any) -> None:
    click.echo(json.dumps(_plain(value), indent=2, sort_keys=True))
