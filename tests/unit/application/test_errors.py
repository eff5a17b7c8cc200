import pytest

from apsync.application.api.v1.errors import map_error, status_for
from apsync.domain.shared.error import (
    DomainError,
    DuplicateTokenError,
    ExternalServiceError,
    NoAudienceError,
    NotFoundError,
    SessionExpiredError,
    StorageError,
    UpstreamAuthError,
    ValidationError,
)


class TestStatusFor:
    @pytest.mark.parametrize(
        ("error", "status"),
        [
            (SessionExpiredError(), 400),
            (NoAudienceError(), 400),
            (ValidationError("bad"), 422),
            (NotFoundError("gone"), 404),
            (DuplicateTokenError("dup"), 409),
            (UpstreamAuthError("denied"), 502),
            (ExternalServiceError("down"), 502),
            (StorageError("db"), 503),
            (DomainError("nope"), 400),
        ],
    )
    def test_status(self, error, status):
        assert status_for(error) == status


class TestMapError:
    def test_validation_error_carries_field(self):
        exc = map_error(ValidationError("Invalid device id", field="device_id"))

        assert exc.status_code == 422
        assert exc.detail == {
            "code": "validation_error",
            "message": "Invalid device id",
            "field": "device_id",
        }

    def test_infrastructure_message_is_not_leaked(self):
        exc = map_error(StorageError("duplicate key value violates unique constraint"))

        assert exc.detail["code"] == "storage_error"
        assert "unique constraint" not in exc.detail["message"]

    def test_upstream_auth_message_kept(self):
        exc = map_error(UpstreamAuthError("Please try again.", code="oauth_denied"))

        assert exc.detail == {"code": "oauth_denied", "message": "Please try again."}
