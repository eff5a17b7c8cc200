"""Operator commands: run the server, migrate the database, sweep sessions."""

import asyncio
import sys

import cyclopts
import uvicorn
from sqlalchemy.exc import SQLAlchemyError

from apsync.application.di import create_container
from apsync.cli.console import get_console
from apsync.config import Config, configure_logging
from apsync.domain.linking.port.repository import LinkingSessionStore
from apsync.infrastructure.persistence.migrate import run_migrations
from apsync.util.di.scope import Scope

app = cyclopts.App(
    name="apsync",
    help="Access point to Mailchimp linking service",
)


@app.command
def serve(host: str | None = None, port: int | None = None, reload: bool = False) -> None:
    """Run the HTTP server.

    Args:
        host: Host to bind to. Defaults to the configured server host.
        port: Port to listen on. Defaults to the configured server port.
        reload: Restart on code changes (development only).
    """
    config = Config()
    configure_logging(config.logging)

    if config.database.auto_migrate and config.database.is_sqlite:
        run_migrations(config.database.url)

    uvicorn.run(
        "apsync.application.api.rest.app:create_app",
        factory=True,
        host=host or config.server.host,
        port=port or config.server.port,
        reload=reload,
        log_config=None,
    )


@app.command
def migrate() -> None:
    """Upgrade the database schema to the latest revision."""
    console = get_console()
    config = Config()
    configure_logging(config.logging)

    try:
        run_migrations(config.database.url)
    except SQLAlchemyError as e:
        console.error(f"Migration failed: {e}", hint="Check APSYNC_DATABASE__URL")
        sys.exit(1)
    console.success("Database is up to date")


@app.command(name="sweep-sessions")
def sweep_sessions() -> None:
    """Delete expired linking sessions once, outside the server schedule."""
    console = get_console()
    config = Config()
    configure_logging(config.logging)

    removed = asyncio.run(_sweep(config))
    console.success(f"Removed {removed} expired session(s)")


async def _sweep(config: Config) -> int:
    container = create_container(config)
    try:
        async with container(scope=Scope.UOW) as scope:
            store = await scope.get(LinkingSessionStore)
            return await store.sweep_expired()
    finally:
        await container.close()


if __name__ == "__main__":
    app()
