"""Global test fixtures."""

import os
from datetime import UTC, datetime

import pytest

# Keep developer config files out of test runs
os.environ.pop("APSYNC_CONFIG_FILE", None)

from apsync.domain.linking.model.mapping import LocationMapping  # noqa: E402
from apsync.domain.linking.model.site import CandidateSite  # noqa: E402
from apsync.domain.linking.model.value import DeviceId  # noqa: E402


def make_site(
    site_id: str,
    name: str,
    devices: tuple[str, ...] = (),
    emails: tuple[str, ...] = (),
) -> CandidateSite:
    return CandidateSite(
        site_id=site_id,
        display_name=name,
        address=f"{site_id} High Street",
        region="London",
        device_ids=devices,
        contact_emails=emails,
    )


def make_mapping(
    device_id: str = "aa:bb:cc:dd:ee:01",
    account_name: str | None = "Joe's Pizza",
    audience_id: str = "aud-1",
    source_tag: str | None = "Joe's Pizza",
) -> LocationMapping:
    now = datetime.now(UTC)
    return LocationMapping(
        device_id=DeviceId(device_id),
        access_token="tok-123",
        data_center="us6",
        account_id="acct-1",
        account_name=account_name,
        audience_id=audience_id,
        audience_name="Main list",
        source_tag=source_tag,
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def site_factory():
    return make_site


@pytest.fixture
def mapping_factory():
    return make_mapping
