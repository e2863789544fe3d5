"""Admin CLI for the Spoticord credential store."""

from __future__ import annotations

import asyncio
import sys

import click

from spoticord.config import get_settings
from spoticord.errors import NotFound, RefreshTokenFailure, StoreError
from spoticord.logging_config import configure_logging
from spoticord.store import Store


def run_async(coro):
    """Run an async function in a new event loop."""
    return asyncio.run(coro)


async def _connect() -> Store:
    try:
        return await Store.connect(get_settings())
    except StoreError as e:
        raise click.ClickException(str(e)) from e


@click.group()
def cli():
    """Spoticord credential store administration CLI."""
    # Keep stdout clean for the token and link output
    configure_logging(stream=sys.stderr)


@cli.command()
def migrate():
    """Connect to the database and apply pending migrations."""

    async def _migrate():
        store = await _connect()
        await store.close()

    run_async(_migrate())
    click.echo("Migrations applied.")


@cli.command()
@click.argument("user_id")
def link(user_id: str):
    """Create a link request for USER_ID and print the link URL."""

    async def _link():
        async with await _connect() as store:
            await store.users.get_or_create(user_id)
            request = await store.link_requests.create(user_id)
        link_url = get_settings().link_url.rstrip("/")
        click.echo(f"{link_url}/{request.token}")
        click.echo(f"Expires at {request.expires.isoformat()} UTC")

    run_async(_link())


@cli.command()
@click.argument("user_id")
def token(user_id: str):
    """Print a valid Spotify access token for USER_ID."""

    async def _token():
        async with await _connect() as store:
            try:
                access_token = await store.accounts.get_access_token(user_id)
            except NotFound as e:
                raise click.ClickException(f"No Spotify account linked for {user_id}.") from e
            except RefreshTokenFailure as e:
                raise click.ClickException(
                    f"The Spotify link for {user_id} has expired; link the account again.",
                ) from e
        click.echo(access_token)

    run_async(_token())


@cli.command()
@click.argument("user_id")
def unlink(user_id: str):
    """Remove the Spotify account linked to USER_ID."""

    async def _unlink():
        async with await _connect() as store:
            return await store.accounts.delete(user_id)

    deleted = run_async(_unlink())
    if deleted:
        click.echo(f"Unlinked Spotify account for {user_id}.")
    else:
        click.echo(f"No Spotify account linked for {user_id}.")


if __name__ == "__main__":
    cli()
