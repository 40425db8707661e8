"""Election status CLI commands."""

import asyncio
import uuid

import typer

election_app = typer.Typer()


@election_app.command("refresh-status")
def refresh_status() -> None:
    """Recompute clock-derived election statuses once."""
    asyncio.run(_refresh_status())


async def _refresh_status() -> None:
    from evote_api.core.config import get_settings
    from evote_api.core.database import dispose_engine, get_session_factory, init_engine
    from evote_api.services.election_service import refresh_election_statuses

    settings = get_settings()
    init_engine(settings.database_url)

    try:
        factory = get_session_factory()
        async with factory() as session:
            updated = await refresh_election_statuses(session)
        typer.echo(f"Updated status of {updated} election(s)")
    finally:
        await dispose_engine()


@election_app.command("stop")
def stop(
    election_id: uuid.UUID = typer.Argument(..., help="Election ID"),
) -> None:
    """End an election now; the status stays ENDED."""
    asyncio.run(_stop(election_id))


async def _stop(election_id: uuid.UUID) -> None:
    from evote_api.core.config import get_settings
    from evote_api.core.database import dispose_engine, get_session_factory, init_engine
    from evote_api.services.election_service import stop_election
    from evote_api.services.errors import ElectionNotFoundError

    settings = get_settings()
    init_engine(settings.database_url)

    try:
        factory = get_session_factory()
        async with factory() as session:
            election = await stop_election(session, election_id)
        typer.echo(f"Election '{election.title}' is {election.status}")
    except ElectionNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e
    finally:
        await dispose_engine()
