"""Electoral roll API endpoints (admin only).

POST /roll/records, POST /roll/import, GET /roll/lookup,
POST /roll/records/{id}/cross-verify
"""

import tempfile
import uuid
from pathlib import Path
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from evote_api.core.dependencies import get_async_session, get_feed, require_role
from evote_api.core.events import ChangeFeed
from evote_api.core.security import ROLE_ADMIN
from evote_api.lib.roll_matcher.parser import EXCEL_SUFFIXES
from evote_api.models.roll_record import RollRecord
from evote_api.models.user import User
from evote_api.models.voter import Voter
from evote_api.schemas.roll import RollImportResponse, RollRecordCreateRequest, RollRecordResponse
from evote_api.schemas.voter import VoterResponse
from evote_api.services import roll_service, verification_service

roll_router = APIRouter(prefix="/roll", tags=["roll"])

_UPLOAD_SUFFIXES = EXCEL_SUFFIXES | {".csv"}


@roll_router.post("/records", response_model=RollRecordResponse, status_code=201)
async def add_record(
    request: RollRecordCreateRequest,
    admin: Annotated[User, Depends(require_role(ROLE_ADMIN))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> RollRecord:
    return await roll_service.add_roll_record(session, request, actor=admin)


@roll_router.post("/import", response_model=RollImportResponse, status_code=201)
async def import_roll(
    admin: Annotated[User, Depends(require_role(ROLE_ADMIN))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    feed: Annotated[ChangeFeed, Depends(get_feed)],
    file: Annotated[UploadFile, File(description="Official roll as CSV or Excel")],
) -> RollImportResponse:
    """Import an official roll upload."""
    filename = file.filename or "upload.csv"
    suffix = Path(filename).suffix.lower()
    if suffix not in _UPLOAD_SUFFIXES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported file type '{suffix}'. Upload a .csv, .xlsx or .xls file",
        )

    content = await file.read()
    with tempfile.TemporaryDirectory() as tmp_dir:
        path = Path(tmp_dir) / f"roll{suffix}"
        path.write_bytes(content)
        result = await roll_service.import_roll_file(session, path, source=filename, actor=admin, feed=feed)
    return RollImportResponse(imported=result.imported, source=result.source)


@roll_router.get("/lookup", response_model=RollRecordResponse)
async def lookup(
    _admin: Annotated[User, Depends(require_role(ROLE_ADMIN))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    aadhaar_number: str | None = Query(default=None),
    epic_number: str | None = Query(default=None),
) -> RollRecord:
    """Find a roll record by Aadhaar, falling back to EPIC."""
    if not aadhaar_number and not epic_number:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Provide aadhaar_number or epic_number")
    record = await roll_service.lookup_roll_record(session, aadhaar_number=aadhaar_number, epic_number=epic_number)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No roll record for these ID numbers")
    return record


@roll_router.post("/records/{record_id}/cross-verify", response_model=VoterResponse)
async def cross_verify_record(
    record_id: uuid.UUID,
    admin: Annotated[User, Depends(require_role(ROLE_ADMIN))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    feed: Annotated[ChangeFeed, Depends(get_feed)],
) -> Voter:
    """Cross-verify the registered voter sharing an ID number with this record."""
    return await verification_service.cross_verify_roll_record(session, record_id, actor=admin, feed=feed)
