"""Typer CLI root application with serve command."""

import typer

from evote_api.core.config import get_settings
from evote_api.core.logging import setup_logging

app = typer.Typer(name="evote-api", help="Voter verification and e-voting service CLI")


@app.callback()
def _main_callback() -> None:
    """Initialize logging for all CLI commands."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir)


@app.command()
def serve(
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload for development"),
    host: str = typer.Option("0.0.0.0", "--host", help="Bind host"),  # noqa: S104
    port: int = typer.Option(8000, "--port", help="Bind port"),
) -> None:
    """Start the API server."""
    import uvicorn

    uvicorn.run(
        "evote_api.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


def _register_subcommands() -> None:
    """Register all CLI subcommand groups."""
    from evote_api.cli.db_cmd import db_app
    from evote_api.cli.election_cmd import election_app
    from evote_api.cli.roll_cmd import roll_app
    from evote_api.cli.user_cmd import user_app

    app.add_typer(db_app, name="db", help="Database migration commands")
    app.add_typer(user_app, name="user", help="User management commands")
    app.add_typer(roll_app, name="roll", help="Electoral roll commands")
    app.add_typer(election_app, name="election", help="Election status commands")


_register_subcommands()
