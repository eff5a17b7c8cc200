from typing import AsyncIterable

import httpx
from dishka import provide

from apsync.config import Config
from apsync.domain.marketing.port import MarketingPlatform
from apsync.infrastructure.marketing.mailchimp import MailchimpClient
from apsync.util.di.base import Provider
from apsync.util.di.scope import Scope

_HTTP_TIMEOUT = httpx.Timeout(
    connect=5.0,
    read=30.0,
    write=5.0,
    pool=5.0,
)


class MarketingProvider(Provider):
    @provide(scope=Scope.APP)
    async def get_http_client(self) -> AsyncIterable[httpx.AsyncClient]:
        """Shared HTTP client for Mailchimp (connection pooling)."""
        async with httpx.AsyncClient(timeout=_HTTP_TIMEOUT) as client:
            yield client

    @provide(scope=Scope.APP)
    def get_marketing_platform(
        self, config: Config, http_client: httpx.AsyncClient
    ) -> MarketingPlatform:
        return MailchimpClient(config=config.mailchimp, http_client=http_client)
