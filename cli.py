# Simple CLI for DeltaDesk
import asyncio
import click

from app.containers import AppContainer
from core.logging import configure_logging


@click.group()
def cli():
    """DeltaDesk CLI"""
    pass


@cli.command()
def api():
    """Run the API server"""
    click.echo("Starting DeltaDesk API server...")
    from api.main import run as run_api
    run_api()


@cli.command("init-db")
def init_db():
    """Create the account and security tables"""
    container = AppContainer()
    configure_logging(container.settings())
    db_manager = container.db_manager()

    async def _init():
        try:
            await db_manager.init()
        finally:
            await db_manager.shutdown()

    asyncio.run(_init())
    click.echo("Database tables created.")


if __name__ == "__main__":
    cli()
