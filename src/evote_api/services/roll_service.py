"""Official electoral roll management and lookup."""

import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from evote_api.core.events import ROLL_IMPORTED, ChangeEvent, ChangeFeed
from evote_api.lib.roll_matcher import parse_roll_file
from evote_api.models.roll_record import RollRecord
from evote_api.models.user import User
from evote_api.models.voter import Voter
from evote_api.schemas.roll import RollRecordCreateRequest
from evote_api.services import audit_service
from evote_api.services.errors import RollRecordNotFoundError, VoterNotFoundError


@dataclass(frozen=True)
class RollImportResult:
    imported: int
    source: str


def _normalize_id(value: str | None) -> str | None:
    if not value:
        return None
    compact = "".join(value.split()).upper()
    return compact or None


async def get_roll_record(session: AsyncSession, record_id: uuid.UUID) -> RollRecord:
    """Load a roll record by primary key.

    Raises:
        RollRecordNotFoundError: If no such record exists.
    """
    record = await session.get(RollRecord, record_id)
    if record is None:
        msg = f"Roll record {record_id} not found"
        raise RollRecordNotFoundError(msg)
    return record


async def _first_by(session: AsyncSession, column: Any, value: str) -> RollRecord | None:
    result = await session.execute(
        select(RollRecord).where(column == value).order_by(RollRecord.created_at.desc()).limit(1)
    )
    return result.scalar_one_or_none()


async def lookup_roll_record(
    session: AsyncSession,
    *,
    aadhaar_number: str | None = None,
    epic_number: str | None = None,
) -> RollRecord | None:
    """Find the roll record for a registrant's ID numbers.

    Aadhaar is tried first; EPIC is used when Aadhaar is absent or matches
    nothing.
    """
    aadhaar = _normalize_id(aadhaar_number)
    epic = _normalize_id(epic_number)

    if aadhaar:
        record = await _first_by(session, RollRecord.aadhaar_number, aadhaar)
        if record is not None:
            return record
    if epic:
        return await _first_by(session, RollRecord.epic_number, epic)
    return None


async def add_roll_record(
    session: AsyncSession,
    request: RollRecordCreateRequest,
    *,
    actor: User | None = None,
    source: str = "manual",
) -> RollRecord:
    """Add a single official roll entry."""
    data = request.model_dump()
    data["aadhaar_number"] = _normalize_id(data.get("aadhaar_number"))
    data["epic_number"] = _normalize_id(data.get("epic_number"))
    record = RollRecord(**data, source=source)
    session.add(record)
    await session.flush()
    audit_service.record_action(
        session,
        actor=actor,
        action=audit_service.ACTION_ROLL_ADD,
        resource_type="roll_record",
        resource_id=record.id,
    )
    await session.commit()
    return record


async def import_roll_rows(
    session: AsyncSession,
    rows: list[dict[str, Any]],
    *,
    source: str,
    actor: User | None = None,
    feed: ChangeFeed | None = None,
    batch_size: int = 1000,
) -> RollImportResult:
    """Insert parsed roll rows in batches and audit the import as one action.

    Args:
        session: The database session.
        rows: Dicts keyed by RollRecord column names.
        source: Upload batch label stored on every record.
        actor: The importing administrator.
        feed: Change feed to notify after commit.
        batch_size: Rows flushed per batch.

    Returns:
        RollImportResult with the number of records inserted.
    """
    imported = 0
    for start in range(0, len(rows), batch_size):
        batch = rows[start : start + batch_size]
        session.add_all(RollRecord(**row, source=source) for row in batch)
        await session.flush()
        imported += len(batch)

    audit_service.record_action(
        session,
        actor=actor,
        action=audit_service.ACTION_ROLL_IMPORT,
        resource_type="roll_record",
        details={"source": source, "imported": imported},
    )
    await session.commit()
    logger.info("Imported {} roll records from {}", imported, source)

    if feed is not None:
        feed.publish(ChangeEvent(ROLL_IMPORTED, source, {"imported": imported}))
    return RollImportResult(imported=imported, source=source)


async def import_roll_file(
    session: AsyncSession,
    file_path: Path,
    *,
    source: str | None = None,
    actor: User | None = None,
    feed: ChangeFeed | None = None,
) -> RollImportResult:
    """Parse a CSV/Excel roll upload and import its rows."""
    rows = parse_roll_file(file_path)
    return await import_roll_rows(session, rows, source=source or file_path.name, actor=actor, feed=feed)


async def find_voter_for_record(session: AsyncSession, record: RollRecord) -> Voter:
    """Find the registered voter sharing an ID number with ``record``.

    Raises:
        VoterNotFoundError: If no registered voter carries either ID number.
    """
    conditions = []
    if record.aadhaar_number:
        conditions.append(Voter.aadhaar_number == record.aadhaar_number)
    if record.epic_number:
        conditions.append(Voter.epic_number == record.epic_number)
    if not conditions:
        msg = "Roll record has no ID number to match against registered voters"
        raise VoterNotFoundError(msg)

    result = await session.execute(select(Voter).where(or_(*conditions)).limit(1))
    voter = result.scalars().first()
    if voter is None:
        msg = f"No registered voter matches roll record {record.id}"
        raise VoterNotFoundError(msg)
    return voter
