from unittest.mock import AsyncMock

import pytest

from apsync.domain.linking.command.authorize import (
    CompleteAuthorization,
    CompleteAuthorizationHandler,
    StartAuthorization,
    StartAuthorizationHandler,
)
from apsync.domain.linking.command.connection import (
    ConnectionView,
    Disconnect,
    DisconnectHandler,
    UpdateConnection,
    UpdateConnectionHandler,
)
from apsync.domain.linking.model.value import DeviceId
from apsync.domain.linking.query.status import GetConnectionStatus, GetConnectionStatusHandler
from apsync.domain.linking.service.connection import ConnectionService
from apsync.domain.marketing.model import Audience
from apsync.domain.shared.error import (
    ExternalServiceError,
    NotFoundError,
    UpstreamAuthError,
    ValidationError,
)


@pytest.fixture
def mappings():
    return AsyncMock()


@pytest.fixture
def marketing():
    return AsyncMock()


@pytest.fixture
def service(mappings, marketing) -> ConnectionService:
    return ConnectionService(mappings=mappings, marketing=marketing)


class TestConnectionStatus:
    @pytest.mark.asyncio
    async def test_not_connected(self, service, mappings):
        mappings.get_by_device.return_value = None

        status = await GetConnectionStatusHandler(service).run(
            GetConnectionStatus(device_id="aa-bb-cc-dd-ee-01")
        )

        assert status.connected is False
        assert status.valid is None
        mappings.get_by_device.assert_awaited_once_with(DeviceId("aa:bb:cc:dd:ee:01"))

    @pytest.mark.asyncio
    async def test_connected_and_token_valid(self, service, mappings, marketing, mapping_factory):
        mapping = mapping_factory()
        mappings.get_by_device.return_value = mapping
        marketing.ping.return_value = True

        status = await GetConnectionStatusHandler(service).run(
            GetConnectionStatus(device_id=str(mapping.device_id))
        )

        assert status.connected is True
        assert status.valid is True
        assert status.account_name == "Joe's Pizza"
        assert status.connected_at == mapping.created_at
        marketing.ping.assert_awaited_once_with("tok-123", "us6")

    @pytest.mark.asyncio
    async def test_platform_outage_reports_invalid(self, service, mappings, marketing, mapping_factory):
        mappings.get_by_device.return_value = mapping_factory()
        marketing.ping.side_effect = ExternalServiceError("down")

        mapping, valid = await service.status(DeviceId("aa:bb:cc:dd:ee:01"))

        assert mapping is not None
        assert valid is False

    @pytest.mark.asyncio
    async def test_bad_device_id(self, service):
        with pytest.raises(ValidationError):
            await GetConnectionStatusHandler(service).run(GetConnectionStatus(device_id="x"))


class TestDisconnect:
    @pytest.mark.asyncio
    async def test_deletes_mapping(self, service, mappings, mapping_factory):
        mappings.get_by_device.return_value = mapping_factory()
        mappings.delete_by_device.return_value = True

        result = await DisconnectHandler(service).run(Disconnect(device_id="aabbccddee01"))

        assert result.device_id == "aa:bb:cc:dd:ee:01"
        mappings.delete_by_device.assert_awaited_once_with(DeviceId("aa:bb:cc:dd:ee:01"))

    @pytest.mark.asyncio
    async def test_missing_mapping(self, service, mappings):
        mappings.get_by_device.return_value = None

        with pytest.raises(NotFoundError):
            await DisconnectHandler(service).run(Disconnect(device_id="aabbccddee01"))
        mappings.delete_by_device.assert_not_called()


class TestUpdateConnection:
    @pytest.mark.asyncio
    async def test_moves_to_verified_audience(self, service, mappings, marketing, mapping_factory):
        mapping = mapping_factory()
        mappings.get_by_device.return_value = mapping
        mappings.upsert_one.side_effect = lambda m: mapping.model_copy(update=m.model_dump())
        marketing.list_audiences.return_value = [
            Audience(id="aud-1", name="Main list"),
            Audience(id="aud-2", name="VIPs"),
        ]

        result = await UpdateConnectionHandler(service).run(
            UpdateConnection(device_id="aa:bb:cc:dd:ee:01", audience_id="aud-2")
        )

        (saved,), _ = mappings.upsert_one.call_args
        assert saved.audience_id == "aud-2"
        assert saved.audience_name == "VIPs"
        assert saved.source_tag == "Joe's Pizza"
        assert result.connection.audience_id == "aud-2"

    @pytest.mark.asyncio
    async def test_unknown_audience(self, service, mappings, marketing, mapping_factory):
        mappings.get_by_device.return_value = mapping_factory()
        marketing.list_audiences.return_value = [Audience(id="aud-1", name="Main list")]

        with pytest.raises(ValidationError):
            await service.update(DeviceId("aa:bb:cc:dd:ee:01"), audience_id="aud-9")
        mappings.upsert_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_tag_clears_it(self, service, mappings, marketing, mapping_factory):
        mappings.get_by_device.return_value = mapping_factory()

        await service.update(DeviceId("aa:bb:cc:dd:ee:01"), source_tag="")

        (saved,), _ = mappings.upsert_one.call_args
        assert saved.source_tag is None
        marketing.list_audiences.assert_not_called()

    @pytest.mark.asyncio
    async def test_nothing_to_change(self, service, mappings, mapping_factory):
        mapping = mapping_factory()
        mappings.get_by_device.return_value = mapping

        assert await service.update(DeviceId("aa:bb:cc:dd:ee:01")) is mapping
        mappings.upsert_one.assert_not_called()


class TestConnectionView:
    def test_never_exposes_token(self, mapping_factory):
        view = ConnectionView.of(mapping_factory())
        assert "access_token" not in view.model_dump()


class TestAuthorizationCommands:
    @pytest.mark.asyncio
    async def test_start_normalizes_device(self):
        linking = AsyncMock()
        linking.start_authorization.return_value = "https://login.example/authorize"

        result = await StartAuthorizationHandler(linking).run(
            StartAuthorization(device_id="AABBCCDDEE01", source_tag="Lobby")
        )

        assert result.authorization_url == "https://login.example/authorize"
        (context, audience_id), _ = linking.start_authorization.call_args
        assert context.device_id == DeviceId("aa:bb:cc:dd:ee:01")
        assert context.source_tag == "Lobby"
        assert audience_id is None

    @pytest.mark.asyncio
    async def test_start_rejects_non_http_redirect(self):
        linking = AsyncMock()

        with pytest.raises(ValidationError):
            await StartAuthorizationHandler(linking).run(
                StartAuthorization(redirect_url="javascript:alert(1)")
            )
        linking.start_authorization.assert_not_called()

    @pytest.mark.asyncio
    async def test_provider_error_rejected_without_storage(self):
        linking = AsyncMock()

        with pytest.raises(UpstreamAuthError) as exc_info:
            await CompleteAuthorizationHandler(linking).run(
                CompleteAuthorization(error="access_denied", state="abc")
            )
        assert exc_info.value.code == "oauth_denied"
        linking.complete_authorization.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_code(self):
        with pytest.raises(ValidationError):
            await CompleteAuthorizationHandler(AsyncMock()).run(CompleteAuthorization(state="abc"))
