from datetime import timedelta
from typing import AsyncIterable

from dishka import provide
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from apsync.config import Config
from apsync.domain.linking.port.repository import LinkingSessionStore, MappingRepository
from apsync.domain.linking.port.site_registry import SiteRegistry
from apsync.domain.shared.error import ExternalServiceError
from apsync.domain.sync.port.sync_log import SyncLogRepository
from apsync.infrastructure.persistence.database import create_db_engine, create_session_factory
from apsync.infrastructure.persistence.repository.mapping import PostgresMappingRepository
from apsync.infrastructure.persistence.repository.session import PostgresLinkingSessionStore
from apsync.infrastructure.persistence.repository.sync_log import PostgresSyncLogRepository
from apsync.infrastructure.registry.postgres import PostgresSiteRegistry, RegistryEngine
from apsync.util.di.base import Provider
from apsync.util.di.scope import Scope


class PersistenceProvider(Provider):
    # APP-scoped factories
    @provide(scope=Scope.APP)
    def get_engine(self, config: Config) -> AsyncEngine:
        return create_db_engine(config.database.url, echo=config.database.echo)

    @provide(scope=Scope.APP)
    def get_registry_engine(self, config: Config, engine: AsyncEngine) -> RegistryEngine:
        if config.database.registry_url == config.database.url:
            return RegistryEngine(engine)
        return RegistryEngine(
            create_db_engine(config.database.registry_url, echo=config.database.echo)
        )

    @provide(scope=Scope.APP)
    def get_session_factory(self, engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
        return create_session_factory(engine)

    @provide(scope=Scope.APP)
    def get_site_registry(self, engine: RegistryEngine, config: Config) -> SiteRegistry:
        return PostgresSiteRegistry(engine, limit=config.linking.candidate_limit)

    # UOW-scoped session (one per unit of work)
    @provide(scope=Scope.UOW)
    async def get_session(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> AsyncIterable[AsyncSession]:
        async with session_factory() as session:
            try:
                yield session
            except ExternalServiceError:
                # Keep sync_log rows and consumed sessions when the upstream call failed
                await session.commit()
                raise
            await session.commit()

    # UOW-scoped repositories
    mapping_repo = provide(PostgresMappingRepository, scope=Scope.UOW, provides=MappingRepository)
    sync_log_repo = provide(PostgresSyncLogRepository, scope=Scope.UOW, provides=SyncLogRepository)

    @provide(scope=Scope.UOW)
    def get_session_store(self, session: AsyncSession, config: Config) -> LinkingSessionStore:
        return PostgresLinkingSessionStore(
            session, ttl=timedelta(minutes=config.linking.session_ttl_minutes)
        )
