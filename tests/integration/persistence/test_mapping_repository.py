import asyncio

import pytest

from apsync.domain.linking.model.mapping import MappingInput
from apsync.domain.linking.model.value import DeviceId
from apsync.domain.shared.error import StorageError
from apsync.infrastructure.persistence.repository.mapping import PostgresMappingRepository
from apsync.infrastructure.persistence.repository.sync_log import PostgresSyncLogRepository
from apsync.infrastructure.persistence.tables import sync_log_table


def mapping_input(device: str, **overrides) -> MappingInput:
    data = {
        "device_id": DeviceId(device),
        "access_token": "tok-123",
        "data_center": "us6",
        "account_id": "acct-1",
        "account_name": "Joe's Pizza",
        "audience_id": "aud-1",
        "audience_name": "Main list",
        "source_tag": "Joe's Pizza",
    }
    data.update(overrides)
    return MappingInput(**data)


class TestUpsert:
    @pytest.mark.asyncio
    async def test_upsert_one_inserts_then_replaces(self, session):
        repo = PostgresMappingRepository(session)

        first = await repo.upsert_one(mapping_input("aa:bb:cc:dd:ee:01"))
        await asyncio.sleep(0.01)
        second = await repo.upsert_one(
            mapping_input("aa:bb:cc:dd:ee:01", audience_id="aud-2", source_tag="Patio")
        )

        assert second.audience_id == "aud-2"
        assert second.source_tag == "Patio"
        assert second.created_at == first.created_at
        assert second.updated_at > first.updated_at
        assert second.created_at.tzinfo is not None
        stored = await repo.get_by_device(DeviceId("aa:bb:cc:dd:ee:01"))
        assert stored.audience_id == "aud-2"

    @pytest.mark.asyncio
    async def test_upsert_many_returns_input_order(self, session):
        repo = PostgresMappingRepository(session)
        devices = ["aa:bb:cc:dd:ee:03", "aa:bb:cc:dd:ee:01", "aa:bb:cc:dd:ee:02"]

        saved = await repo.upsert_many([mapping_input(d) for d in devices])

        assert [str(m.device_id) for m in saved] == devices
        assert len(await repo.get_by_account_id("acct-1")) == 3

    @pytest.mark.asyncio
    async def test_upsert_many_duplicate_device_last_wins(self, session):
        repo = PostgresMappingRepository(session)

        saved = await repo.upsert_many(
            [
                mapping_input("aa:bb:cc:dd:ee:01", source_tag="first"),
                mapping_input("aa:bb:cc:dd:ee:01", source_tag="second"),
            ]
        )

        assert [m.source_tag for m in saved] == ["second"]

    @pytest.mark.asyncio
    async def test_upsert_many_is_all_or_nothing(self, session):
        repo = PostgresMappingRepository(session)
        broken = MappingInput.model_construct(
            **{**mapping_input("aa:bb:cc:dd:ee:02").model_dump(), "audience_id": None},
        )

        good = [mapping_input(f"aa:bb:cc:dd:ee:1{i}") for i in range(4)]

        with pytest.raises(StorageError):
            await repo.upsert_many([*good[:2], broken, *good[2:]])

        assert await repo.get_by_account_id("acct-1") == []
        assert await repo.get_by_device(DeviceId("aa:bb:cc:dd:ee:02")) is None

    @pytest.mark.asyncio
    async def test_upsert_many_empty(self, session):
        assert await PostgresMappingRepository(session).upsert_many([]) == []


class TestLookups:
    @pytest.mark.asyncio
    async def test_delete_by_device(self, session):
        repo = PostgresMappingRepository(session)
        await repo.upsert_one(mapping_input("aa:bb:cc:dd:ee:01"))

        assert await repo.delete_by_device(DeviceId("aa:bb:cc:dd:ee:01")) is True
        assert await repo.delete_by_device(DeviceId("aa:bb:cc:dd:ee:01")) is False

    @pytest.mark.asyncio
    async def test_find_by_fuzzy_name(self, session):
        repo = PostgresMappingRepository(session)
        await repo.upsert_one(mapping_input("aa:bb:cc:dd:ee:01", account_name="Joe's Pizza"))
        await repo.upsert_one(mapping_input("aa:bb:cc:dd:ee:02", account_name="The Crown Inn"))
        await repo.upsert_one(mapping_input("aa:bb:cc:dd:ee:03", account_name=None))

        ranked = await repo.find_by_fuzzy_name("Joes Pizza", 0.3)

        assert [str(m.device_id) for m, _ in ranked] == ["aa:bb:cc:dd:ee:01"]
        assert ranked[0][1] == pytest.approx(9 / 14)


class TestSyncLog:
    @pytest.mark.asyncio
    async def test_records_attempts(self, session):
        repo = PostgresSyncLogRepository(session)

        await repo.record("aa:bb:cc:dd:ee:01", "a@b.co", True)
        await repo.record("aa:bb:cc:dd:ee:01", "c@d.co", False, "Member Exists")

        rows = (await session.execute(sync_log_table.select().order_by(sync_log_table.c.id))).all()
        assert [(r.email, r.success, r.error_message) for r in rows] == [
            ("a@b.co", True, None),
            ("c@d.co", False, "Member Exists"),
        ]
