"""Mailchimp adapter: OAuth2 plus the handful of Marketing API calls we need."""

import hashlib
import logging
import re
from typing import Any
from urllib.parse import urlencode

import httpx

from apsync.config import MailchimpConfig
from apsync.domain.marketing.model import AccountMetadata, Audience, Contact, ContactResult
from apsync.domain.marketing.port import MarketingPlatform
from apsync.domain.shared.error import ExternalServiceError

logger = logging.getLogger(__name__)

PING_HEALTHY = "Everything's Chimpy!"

# Data center names end up in a hostname, so only accept the real shape ("us6")
_DATA_CENTER = re.compile(r"^[a-z]{2,}\d+$")


def subscriber_hash(email: str) -> str:
    """Mailchimp member id: md5 of the lowercased email."""
    return hashlib.md5(email.lower().encode("utf-8")).hexdigest()


class MailchimpClient(MarketingPlatform):
    def __init__(self, config: MailchimpConfig, http_client: httpx.AsyncClient) -> None:
        self._config = config
        self._http = http_client

    def authorization_url(self, state: str) -> str:
        params = {
            "response_type": "code",
            "client_id": self._config.client_id,
            "redirect_uri": self._config.redirect_uri,
            "state": state,
        }
        return f"{self._config.auth_base_url}/authorize?{urlencode(params)}"

    async def exchange_code(self, code: str) -> str:
        data = {
            "grant_type": "authorization_code",
            "client_id": self._config.client_id,
            "client_secret": self._config.client_secret,
            "redirect_uri": self._config.redirect_uri,
            "code": code,
        }
        token_data = await self._request(
            "POST",
            f"{self._config.auth_base_url}/token",
            what="token exchange",
            data=data,
            headers={"Accept": "application/json"},
        )
        access_token = token_data.get("access_token")
        if not access_token:
            raise ExternalServiceError(
                "Mailchimp token response missing access_token", code="oauth_error"
            )
        return access_token

    async def get_account_metadata(self, access_token: str) -> AccountMetadata:
        data = await self._request(
            "GET",
            f"{self._config.auth_base_url}/metadata",
            what="metadata fetch",
            headers={"Authorization": f"OAuth {access_token}"},
        )
        # {
        #   "dc": "us6",
        #   "user_id": 123456,
        #   "accountname": "Joe's Pizza",
        #   "login": {"login_email": "joe@example.com", ...},
        #   "api_endpoint": "https://us6.api.mailchimp.com"
        # }
        if not data.get("dc") or data.get("user_id") is None:
            raise ExternalServiceError(
                "Mailchimp metadata missing dc or user_id", code="oauth_error"
            )
        return AccountMetadata(
            account_id=str(data["user_id"]),
            account_name=data.get("accountname"),
            login_email=(data.get("login") or {}).get("login_email"),
            data_center=data["dc"],
            api_endpoint=data.get("api_endpoint"),
        )

    async def list_audiences(self, access_token: str, data_center: str) -> list[Audience]:
        data = await self._api(
            "GET",
            access_token,
            data_center,
            "/lists",
            what="audience list",
            params={"fields": "lists.id,lists.name,lists.stats.member_count", "count": 100},
        )
        return [
            Audience(
                id=item["id"],
                name=item["name"],
                member_count=(item.get("stats") or {}).get("member_count") or 0,
            )
            for item in data.get("lists", [])
        ]

    async def upsert_contact(
        self,
        access_token: str,
        data_center: str,
        audience_id: str,
        contact: Contact,
    ) -> ContactResult:
        payload = {
            "email_address": contact.email,
            "status_if_new": contact.status,
            "merge_fields": contact.all_merge_fields(),
        }
        data = await self._api(
            "PUT",
            access_token,
            data_center,
            f"/lists/{audience_id}/members/{subscriber_hash(contact.email)}",
            what="contact upsert",
            json=payload,
        )
        return ContactResult(
            id=data.get("id", ""),
            email=data.get("email_address", contact.email),
            status=data.get("status", ""),
        )

    async def add_tags(
        self,
        access_token: str,
        data_center: str,
        audience_id: str,
        email: str,
        tags: list[str],
    ) -> None:
        await self._api(
            "POST",
            access_token,
            data_center,
            f"/lists/{audience_id}/members/{subscriber_hash(email)}/tags",
            what="tag update",
            json={"tags": [{"name": tag, "status": "active"} for tag in tags]},
        )

    async def ping(self, access_token: str, data_center: str) -> bool:
        try:
            data = await self._api("GET", access_token, data_center, "/ping", what="ping")
        except ExternalServiceError:
            return False
        return data.get("health_status") == PING_HEALTHY

    async def _api(
        self,
        method: str,
        access_token: str,
        data_center: str,
        path: str,
        *,
        what: str,
        **kwargs: Any,
    ) -> dict[str, Any]:
        if not _DATA_CENTER.match(data_center):
            raise ExternalServiceError(
                f"Invalid Mailchimp data center: {data_center!r}", code="mailchimp_error"
            )
        return await self._request(
            method,
            f"https://{data_center}.api.mailchimp.com/3.0{path}",
            what=what,
            headers={"Authorization": f"Bearer {access_token}"},
            **kwargs,
        )

    async def _request(self, method: str, url: str, *, what: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._http.request(
                method, url, timeout=self._config.timeout, **kwargs
            )
        except httpx.RequestError as e:
            logger.exception("Mailchimp %s request failed: %s", what, e)
            raise ExternalServiceError(
                "Failed to connect to Mailchimp", code="mailchimp_unavailable"
            ) from e

        if response.status_code >= 400:
            logger.error(
                "Mailchimp %s failed: status=%d, body=%s",
                what,
                response.status_code,
                response.text,
            )
            raise ExternalServiceError(
                _error_detail(response) or f"Mailchimp {what} failed: {response.status_code}",
                code="mailchimp_error",
            )

        if not response.content:
            return {}
        return response.json()


def _error_detail(response: httpx.Response) -> str | None:
    """Mailchimp's problem+json ``detail``, when the body has one."""
    try:
        body = response.json()
    except ValueError:
        return None
    return body.get("detail") if isinstance(body, dict) else None
