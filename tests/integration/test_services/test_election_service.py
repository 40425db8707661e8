"""Integration tests for election scheduling and status recomputation."""

import asyncio
import uuid
from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from evote_api.core.events import ELECTION_UPDATED, ChangeFeed
from evote_api.models.election import Election
from evote_api.models.user import User
from evote_api.schemas.election import CandidateCreateRequest, ElectionCreateRequest
from evote_api.services import election_service
from evote_api.services.election_service import ElectionEndedError
from evote_api.services.errors import ElectionNotFoundError

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)


def _request(start_offset_hours: int, duration_hours: int = 8) -> ElectionCreateRequest:
    start = NOW + timedelta(hours=start_offset_hours)
    return ElectionCreateRequest(title="Ward 7 By-election", start_at=start, end_at=start + timedelta(hours=duration_hours))


class TestCreateElection:
    async def test_initial_status_follows_clock(self, async_session: AsyncSession, admin_user: User) -> None:
        upcoming = await election_service.create_election(async_session, _request(2), actor=admin_user, now=NOW)
        active = await election_service.create_election(async_session, _request(-1), actor=admin_user, now=NOW)
        ended = await election_service.create_election(async_session, _request(-10), actor=admin_user, now=NOW)

        assert upcoming.status == "UPCOMING"
        assert active.status == "ACTIVE"
        assert ended.status == "ENDED"
        assert upcoming.candidates == []

    async def test_window_must_be_ordered(self) -> None:
        with pytest.raises(ValueError, match="end_at must be after start_at"):
            ElectionCreateRequest(title="Bad", start_at=NOW, end_at=NOW)


class TestCandidates:
    async def test_add_candidate(self, async_session: AsyncSession, admin_user: User) -> None:
        election = await election_service.create_election(async_session, _request(2), now=NOW)
        candidate = await election_service.add_candidate(
            async_session, election.id, CandidateCreateRequest(name="R. Iyer", party="Civic Front"), actor=admin_user
        )
        reloaded = await election_service.get_election(async_session, election.id)
        assert [c.id for c in reloaded.candidates] == [candidate.id]
        assert candidate.vote_count == 0

    async def test_cannot_add_to_ended_election(self, async_session: AsyncSession) -> None:
        election = await election_service.create_election(async_session, _request(-10), now=NOW)
        with pytest.raises(ElectionEndedError):
            await election_service.add_candidate(async_session, election.id, CandidateCreateRequest(name="Late"))

    async def test_unknown_election(self, async_session: AsyncSession) -> None:
        with pytest.raises(ElectionNotFoundError):
            await election_service.add_candidate(async_session, uuid.uuid4(), CandidateCreateRequest(name="Nobody"))


class TestStopAndRefresh:
    async def test_stop_is_sticky(
        self, async_session: AsyncSession, admin_user: User, change_feed: ChangeFeed
    ) -> None:
        election = await election_service.create_election(async_session, _request(-1), now=NOW)
        events = change_feed.subscribe()

        stopped = await election_service.stop_election(
            async_session, election.id, actor=admin_user, now=NOW, feed=change_feed
        )
        assert stopped.status == "ENDED"
        assert stopped.stopped_at is not None
        assert events.get_nowait().type == ELECTION_UPDATED

        again = await election_service.stop_election(async_session, election.id, actor=admin_user, feed=change_feed)
        assert again.status == "ENDED"
        assert events.empty()

        # The window is still open but a manual stop is never undone.
        changed = await election_service.refresh_election_statuses(async_session, now=NOW + timedelta(hours=1))
        assert changed == 0
        reloaded = await election_service.get_election(async_session, election.id)
        assert reloaded.status == "ENDED"

    async def test_refresh_moves_elections_forward(self, async_session: AsyncSession, change_feed: ChangeFeed) -> None:
        upcoming = await election_service.create_election(async_session, _request(2), now=NOW)
        active = await election_service.create_election(async_session, _request(-1, duration_hours=4), now=NOW)
        events = change_feed.subscribe()

        changed = await election_service.refresh_election_statuses(
            async_session, now=NOW + timedelta(hours=3), feed=change_feed
        )

        assert changed == 2
        assert (await election_service.get_election(async_session, upcoming.id)).status == "ACTIVE"
        assert (await election_service.get_election(async_session, active.id)).status == "ENDED"
        assert events.qsize() == 2

    async def test_refresh_without_changes(self, async_session: AsyncSession) -> None:
        await election_service.create_election(async_session, _request(2), now=NOW)
        assert await election_service.refresh_election_statuses(async_session, now=NOW) == 0

    async def test_list_filters_by_status(self, async_session: AsyncSession) -> None:
        await election_service.create_election(async_session, _request(2), now=NOW)
        await election_service.create_election(async_session, _request(-1), now=NOW)

        items, total = await election_service.list_elections(async_session, status="active")
        assert total == 1
        assert isinstance(items[0], Election)
        assert items[0].status == "ACTIVE"


class TestStatusLoop:
    async def test_loop_refreshes_until_cancelled(
        self, async_session: AsyncSession, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        now = datetime.now(UTC)
        election = Election(
            title="Opens now",
            start_at=now - timedelta(minutes=5),
            end_at=now + timedelta(hours=1),
            status="UPCOMING",
        )
        async_session.add(election)
        await async_session.commit()

        with patch("evote_api.core.database.get_session_factory", return_value=session_factory):
            task = asyncio.create_task(election_service.election_status_loop(interval=0))
            for _ in range(100):
                await asyncio.sleep(0.02)
                if (await election_service.get_election(async_session, election.id)).status == "ACTIVE":
                    break
            task.cancel()
            await task

        assert (await election_service.get_election(async_session, election.id)).status == "ACTIVE"
        assert task.done()
