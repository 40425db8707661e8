"""Electoral roll CLI commands."""

import asyncio
from pathlib import Path

import typer

roll_app = typer.Typer()


@roll_app.command("import")
def import_roll(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Roll file (.csv, .xlsx or .xls)"),
    source: str | None = typer.Option(None, "--source", help="Batch label stored on each record"),
) -> None:
    """Import an official roll file."""
    asyncio.run(_import_roll(file, source))


async def _import_roll(file: Path, source: str | None) -> None:
    from evote_api.core.config import get_settings
    from evote_api.core.database import dispose_engine, get_session_factory, init_engine
    from evote_api.services.roll_service import import_roll_file

    settings = get_settings()
    init_engine(settings.database_url)

    try:
        factory = get_session_factory()
        async with factory() as session:
            result = await import_roll_file(session, file, source=source)
        typer.echo(f"Imported {result.imported} roll record(s) from {result.source}")
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e
    finally:
        await dispose_engine()
