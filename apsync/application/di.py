from dishka import AsyncContainer, from_context, make_async_container
from starlette.requests import Request

from apsync.config import Config
from apsync.domain.linking.util.di import LinkingProvider
from apsync.domain.sync.util.di import SyncProvider
from apsync.infrastructure.marketing.di import MarketingProvider
from apsync.infrastructure.persistence.di import PersistenceProvider
from apsync.infrastructure.schedule.di import ScheduleProvider
from apsync.util.di.base import Provider
from apsync.util.di.scope import Scope


class ContextProvider(Provider):
    config = from_context(provides=Config, scope=Scope.APP)
    request = from_context(provides=Request, scope=Scope.UOW)


def create_container(config: Config | None = None) -> AsyncContainer:
    config = config or Config()

    return make_async_container(
        ContextProvider(),
        PersistenceProvider(),
        MarketingProvider(),
        ScheduleProvider(),
        LinkingProvider(),
        SyncProvider(),
        context={Config: config},
        scopes=Scope,  # type: ignore[arg-type]  # Custom scope class
    )
