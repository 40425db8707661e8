"""Wall-clock election status computation."""

from datetime import UTC, datetime
from enum import StrEnum


class ElectionStatus(StrEnum):
    UPCOMING = "UPCOMING"
    ACTIVE = "ACTIVE"
    ENDED = "ENDED"


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (as returned by SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def compute_election_status(
    start_at: datetime,
    end_at: datetime,
    now: datetime | None = None,
    current: ElectionStatus | str | None = None,
) -> ElectionStatus:
    """Return the status an election should have at ``now``.

    An election already ENDED stays ENDED; a manual stop is never undone by
    the clock.

    Args:
        start_at: Voting opens at this instant.
        end_at: Voting closes at this instant.
        now: Reference time; defaults to the current UTC time.
        current: The stored status, if any.

    Returns:
        The computed ElectionStatus.
    """
    if current is not None and ElectionStatus(current) is ElectionStatus.ENDED:
        return ElectionStatus.ENDED

    now = as_utc(now or datetime.now(UTC))
    if now < as_utc(start_at):
        return ElectionStatus.UPCOMING
    if now >= as_utc(end_at):
        return ElectionStatus.ENDED
    return ElectionStatus.ACTIVE
