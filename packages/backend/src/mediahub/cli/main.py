"""MediaHub admin CLI.

Usage:
    mediahub init-db                   # Create tables from the ORM models
    mediahub revoke-sessions alice     # Log a user out everywhere
    mediahub health                    # Ask a running server for its health
"""

from __future__ import annotations

import asyncio
import json
import os
import sys

import click
import httpx
from sqlalchemy import select

DEFAULT_API_URL = "http://localhost:8000"


def _api_url() -> str:
    return os.environ.get("MEDIAHUB_API_URL", DEFAULT_API_URL).rstrip("/")


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(prog_name="mediahub", package_name="mediahub")
def main():
    """MediaHub administration commands."""


@main.command("init-db")
def init_db():
    """Create all tables (development bootstrap; use Alembic in production)."""
    from mediahub.db.engine import create_all, engine

    async def _impl():
        try:
            await create_all()
        finally:
            await engine.dispose()

    asyncio.run(_impl())
    click.secho("Tables created", fg="green")


@main.command("revoke-sessions")
@click.argument("username")
def revoke_sessions(username: str):
    """Invalidate USERNAME's refresh token.

    Access tokens already handed out stay valid until they expire (≤ 1 hour).
    """
    from mediahub.auth.authority import TokenAuthority
    from mediahub.db.engine import async_session_factory, engine
    from mediahub.db.models import User

    async def _impl() -> bool:
        try:
            async with async_session_factory() as db:
                result = await db.execute(
                    select(User.id).where(User.username == username.lower())
                )
                user_id = result.scalar_one_or_none()
                if user_id is None:
                    return False
                await TokenAuthority(db).revoke(user_id)
                return True
        finally:
            await engine.dispose()

    if not asyncio.run(_impl()):
        click.secho(f"No user named '{username}'", fg="red", err=True)
        sys.exit(1)
    click.secho(f"Sessions revoked for {username}", fg="green")


@main.command()
def health():
    """Query GET /api/v1/health on a running server."""
    try:
        r = httpx.get(f"{_api_url()}/api/v1/health", timeout=10.0)
    except httpx.ConnectError:
        click.secho(f"Server not reachable at {_api_url()}", fg="red", err=True)
        sys.exit(1)
    data = r.json()
    click.echo(json.dumps(data, indent=2))
    if data.get("status") != "healthy":
        sys.exit(2)


if __name__ == "__main__":
    main()
