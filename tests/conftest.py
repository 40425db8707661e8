"""Shared test fixtures for the database, fake providers, seeded records and the HTTP client."""

from collections.abc import AsyncGenerator, Callable
from datetime import UTC, date, datetime, timedelta
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from evote_api.api.errors import register_exception_handlers
from evote_api.api.router import create_router
from evote_api.core.config import Settings, get_settings
from evote_api.core.dependencies import (
    get_async_session,
    get_document_extractor,
    get_embedding_extractor,
    get_feed,
)
from evote_api.core.events import ChangeFeed
from evote_api.core.security import create_access_token, hash_password
from evote_api.lib.biometrics import BaseEmbeddingExtractor, FaceMatcher
from evote_api.lib.documents import BaseDocumentExtractor, DocumentType, ExtractedFields
from evote_api.lib.roll_matcher import RollMatchEvaluator
from evote_api.models.base import Base
from evote_api.models.election import Candidate, Election
from evote_api.models.roll_record import RollRecord
from evote_api.models.user import User
from evote_api.models.voter import Voter

LIVE_EMBEDDING = [1.0, 2.0, 3.0, 4.0]
DOCUMENT_EMBEDDING = [1.5, 2.0, 3.0, 4.0]
STRANGER_EMBEDDING = [30.0, 30.0, 30.0, 30.0]

FRAMES = [b"\xff\xd8\xffframe-1", b"\xff\xd8\xffframe-2", b"\xff\xd8\xffframe-3"]
STRANGER_FRAMES = [b"\xff\xd8\xffother-1", b"\xff\xd8\xffother-2", b"\xff\xd8\xffother-3"]
DOCUMENT_IMAGE = b"\xff\xd8\xffaadhaar-card-scan"
STRANGER_DOCUMENT = b"\xff\xd8\xffsomeone-elses-card"
PDF_DOCUMENT = b"%PDF-1.7\n1 0 obj << >> endobj"

AADHAAR = "123456789012"
EPIC = "ABC1234567"


class FakeEmbeddingExtractor(BaseEmbeddingExtractor):
    """Deterministic extractor keyed on image bytes."""

    def __init__(self, error: Exception | None = None) -> None:
        self.embeddings: dict[bytes, list[float]] = {
            DOCUMENT_IMAGE: DOCUMENT_EMBEDDING,
            STRANGER_DOCUMENT: STRANGER_EMBEDDING,
            STRANGER_FRAMES[1]: STRANGER_EMBEDDING,
        }
        self.error = error
        self.calls: list[bytes] = []

    @property
    def provider_name(self) -> str:
        return "fake"

    async def extract(self, image_bytes: bytes) -> list[float]:
        self.calls.append(image_bytes)
        if self.error is not None:
            raise self.error
        return self.embeddings.get(image_bytes, LIVE_EMBEDDING)


class FakeDocumentExtractor(BaseDocumentExtractor):
    def __init__(self, fields: ExtractedFields | None = None) -> None:
        self.fields = fields or ExtractedFields(name="Asha Kumar", dob="1990-05-14", id_number=AADHAAR)
        self.calls: list[DocumentType] = []

    async def extract_fields(self, image_bytes: bytes, doc_type: DocumentType) -> ExtractedFields:
        self.calls.append(doc_type)
        return self.fields


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Test application settings."""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'evote.db'}",
        jwt_secret_key="test-secret-key-not-for-production",
        jwt_algorithm="HS256",
        jwt_access_token_expire_minutes=30,
        deepface_timeout=2.0,
        election_status_refresh_enabled=False,
    )


@pytest.fixture
async def async_engine(settings: Settings) -> AsyncGenerator[AsyncEngine]:
    """Create a file-backed async SQLite engine so separate sessions see each other's commits."""
    engine = create_async_engine(settings.database_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, expire_on_commit=False)


@pytest.fixture
async def async_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def embedding_extractor() -> FakeEmbeddingExtractor:
    return FakeEmbeddingExtractor()


@pytest.fixture
def document_extractor() -> FakeDocumentExtractor:
    return FakeDocumentExtractor()


@pytest.fixture
def matcher(settings: Settings) -> FaceMatcher:
    return FaceMatcher(threshold=settings.face_match_threshold, confidence_scale=settings.face_confidence_scale)


@pytest.fixture
def evaluator() -> RollMatchEvaluator:
    return RollMatchEvaluator()


@pytest.fixture
def change_feed() -> ChangeFeed:
    return ChangeFeed()


@pytest.fixture
def registration_payload() -> Callable[..., dict[str, Any]]:
    """Factory for registration request fields matching the seeded roll record."""

    def _build(**overrides: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "username": "asha",
            "email": "asha@example.com",
            "password": "correct-horse-battery",
            "first_name": "Asha",
            "last_name": "Kumar",
            "father_name": "Ramesh Kumar",
            "dob": date(1990, 5, 14),
            "state": "Karnataka",
            "district": "Bengaluru Urban",
            "city": "Bengaluru",
            "aadhaar_number": AADHAAR,
            "epic_number": None,
            "document_type": "AADHAAR",
            "document": DOCUMENT_IMAGE,
            "frames": list(FRAMES),
        }
        payload.update(overrides)
        return payload

    return _build


@pytest.fixture
async def roll_record(async_session: AsyncSession) -> RollRecord:
    """Official roll entry for the default registrant."""
    record = RollRecord(
        full_name="Asha Kumar",
        father_name="Ramesh Kumar",
        dob=date(1990, 5, 14),
        gender="F",
        address_state="Karnataka",
        address_district="Bengaluru Urban",
        address_city="Bengaluru",
        aadhaar_number=AADHAAR,
        epic_number=EPIC,
        source="test",
    )
    async_session.add(record)
    await async_session.commit()
    return record


@pytest.fixture
async def admin_user(async_session: AsyncSession) -> User:
    user = User(
        username="testadmin",
        email="admin@example.com",
        hashed_password=hash_password("testpassword123"),
        role="admin",
    )
    async_session.add(user)
    await async_session.commit()
    return user


@pytest.fixture
def make_voter(async_session: AsyncSession) -> Callable[..., Any]:
    """Factory that stores a voter (and its user) directly, bypassing registration."""
    counter = {"n": 0}

    async def _make(**overrides: Any) -> Voter:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            username=f"voter{n}",
            email=f"voter{n}@example.com",
            hashed_password=hash_password("voterpassword123"),
            role="voter",
        )
        fields: dict[str, Any] = {
            "user": user,
            "first_name": "Asha",
            "last_name": "Kumar",
            "father_name": "Ramesh Kumar",
            "dob": date(1990, 5, 14),
            "address_state": "Karnataka",
            "address_district": "Bengaluru Urban",
            "address_city": "Bengaluru",
            "aadhaar_number": f"{n:012d}",
            "epic_number": None,
            "document_type": "AADHAAR",
            "document_ref": "0" * 64,
            "document_content_type": "image/jpeg",
            "face_embedding": list(LIVE_EMBEDDING),
            "liveness_verified": True,
            "verification_status": "VERIFIED",
            "electoral_roll_verified": True,
        }
        fields.update(overrides)
        voter = Voter(**fields)
        async_session.add(voter)
        await async_session.commit()
        return voter

    return _make


@pytest.fixture
async def active_election(async_session: AsyncSession) -> Election:
    """An election open now, with two candidates."""
    now = datetime.now(UTC)
    election = Election(
        title="Municipal Ward 12",
        region="Bengaluru",
        start_at=now - timedelta(hours=1),
        end_at=now + timedelta(hours=1),
        status="ACTIVE",
    )
    election.candidates = [
        Candidate(name="Candidate A", party="Party One", vote_count=0),
        Candidate(name="Candidate B", party="Party Two", vote_count=0),
    ]
    async_session.add(election)
    await async_session.commit()
    return election


def token_for(user: User, settings: Settings) -> str:
    return create_access_token(
        subject=user.username,
        role=user.role,
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


@pytest.fixture
def auth_headers(settings: Settings) -> Callable[[User], dict[str, str]]:
    """Build a bearer Authorization header for a stored user."""

    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {token_for(user, settings)}"}

    return _headers


@pytest.fixture
def app(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    embedding_extractor: FakeEmbeddingExtractor,
    document_extractor: FakeDocumentExtractor,
    change_feed: ChangeFeed,
) -> FastAPI:
    """API application wired to the test database and fake providers."""
    application = FastAPI()
    register_exception_handlers(application)
    application.include_router(create_router(settings))

    async def _session() -> AsyncGenerator[AsyncSession]:
        async with session_factory() as session:
            yield session

    application.dependency_overrides[get_async_session] = _session
    application.dependency_overrides[get_settings] = lambda: settings
    application.dependency_overrides[get_embedding_extractor] = lambda: embedding_extractor
    application.dependency_overrides[get_document_extractor] = lambda: document_extractor
    application.dependency_overrides[get_feed] = lambda: change_feed
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client


@pytest.fixture
def samples() -> SimpleNamespace:
    """Sample frames, documents, embeddings and ID numbers used across tests."""
    return SimpleNamespace(
        live_embedding=LIVE_EMBEDDING,
        document_embedding=DOCUMENT_EMBEDDING,
        stranger_embedding=STRANGER_EMBEDDING,
        frames=list(FRAMES),
        stranger_frames=list(STRANGER_FRAMES),
        document_image=DOCUMENT_IMAGE,
        stranger_document=STRANGER_DOCUMENT,
        pdf_document=PDF_DOCUMENT,
        aadhaar=AADHAAR,
        epic=EPIC,
    )
