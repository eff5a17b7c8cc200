from datetime import timedelta

import pytest
from sqlalchemy import func, select

from apsync.domain.linking.model.value import DeviceId, new_session_token
from apsync.domain.shared.error import DuplicateTokenError
from apsync.infrastructure.persistence.repository.session import PostgresLinkingSessionStore
from apsync.infrastructure.persistence.tables import linking_sessions_table

PAYLOAD = {"stage": "oauth", "context": {"device_id": "aa:bb:cc:dd:ee:01"}}


class TestLinkingSessionStore:
    @pytest.mark.asyncio
    async def test_consume_returns_payload_once(self, session):
        store = PostgresLinkingSessionStore(session, ttl=timedelta(minutes=10))
        token = new_session_token()
        await store.create(token, DeviceId("aa:bb:cc:dd:ee:01"), PAYLOAD)

        assert await store.consume(token) == PAYLOAD
        assert await store.consume(token) is None

    @pytest.mark.asyncio
    async def test_unknown_token(self, session):
        store = PostgresLinkingSessionStore(session, ttl=timedelta(minutes=10))
        assert await store.consume("0" * 64) is None

    @pytest.mark.asyncio
    async def test_expired_session_cannot_be_consumed(self, session):
        store = PostgresLinkingSessionStore(session, ttl=timedelta(seconds=-1))
        token = new_session_token()
        await store.create(token, None, PAYLOAD)

        assert await store.consume(token) is None

    @pytest.mark.asyncio
    async def test_sweep_removes_only_expired(self, session):
        expired = PostgresLinkingSessionStore(session, ttl=timedelta(seconds=-1))
        live = PostgresLinkingSessionStore(session, ttl=timedelta(minutes=10))
        for _ in range(3):
            await expired.create(new_session_token(), None, PAYLOAD)
        live_token = new_session_token()
        await live.create(live_token, None, PAYLOAD)

        assert await live.sweep_expired() == 3
        assert await live.sweep_expired() == 0
        count = await session.scalar(select(func.count()).select_from(linking_sessions_table))
        assert count == 1
        assert await live.consume(live_token) == PAYLOAD

    @pytest.mark.asyncio
    async def test_duplicate_token(self, session):
        store = PostgresLinkingSessionStore(session, ttl=timedelta(minutes=10))
        token = new_session_token()
        await store.create(token, None, PAYLOAD)

        with pytest.raises(DuplicateTokenError):
            await store.create(token, None, PAYLOAD)

    @pytest.mark.asyncio
    async def test_committed_session_consumed_by_one_of_two_units(self, session_factory):
        token = new_session_token()
        async with session_factory() as first:
            await PostgresLinkingSessionStore(first, ttl=timedelta(minutes=10)).create(
                token, None, PAYLOAD
            )
            await first.commit()

        async with session_factory() as a:
            got_a = await PostgresLinkingSessionStore(a, ttl=timedelta(minutes=10)).consume(token)
            await a.commit()
        async with session_factory() as b:
            got_b = await PostgresLinkingSessionStore(b, ttl=timedelta(minutes=10)).consume(token)
            await b.commit()

        assert [got_a, got_b] == [PAYLOAD, None]
