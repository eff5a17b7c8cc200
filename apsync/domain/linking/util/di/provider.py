from dishka import provide

from apsync.config import Config
from apsync.domain.linking.command.authorize import (
    CompleteAuthorizationHandler,
    StartAuthorizationHandler,
)
from apsync.domain.linking.command.connection import DisconnectHandler, UpdateConnectionHandler
from apsync.domain.linking.command.manual import SaveManualEntryHandler
from apsync.domain.linking.command.select import SelectAudienceHandler, SelectLocationHandler
from apsync.domain.linking.port.repository import LinkingSessionStore, MappingRepository
from apsync.domain.linking.port.site_registry import SiteRegistry
from apsync.domain.linking.query.status import GetConnectionStatusHandler
from apsync.domain.linking.schedule.sweep import SweepExpiredSessions
from apsync.domain.linking.service.connection import ConnectionService
from apsync.domain.linking.service.linking import LinkingService
from apsync.domain.linking.service.matching import MatchingEngine
from apsync.domain.marketing.port import MarketingPlatform
from apsync.util.di.base import Provider
from apsync.util.di.scope import Scope


class LinkingProvider(Provider):
    @provide(scope=Scope.APP)
    def get_matching_engine(self, registry: SiteRegistry, config: Config) -> MatchingEngine:
        return MatchingEngine(
            registry=registry, similarity_threshold=config.linking.similarity_threshold
        )

    @provide(scope=Scope.UOW)
    def get_linking_service(
        self,
        matching: MatchingEngine,
        sessions: LinkingSessionStore,
        mappings: MappingRepository,
        marketing: MarketingPlatform,
        config: Config,
    ) -> LinkingService:
        return LinkingService(
            matching=matching,
            sessions=sessions,
            mappings=mappings,
            marketing=marketing,
            manual_entry_url=config.linking.manual_entry_url,
        )

    connection_service = provide(ConnectionService, scope=Scope.UOW)

    # Command handlers
    start_authorization_handler = provide(StartAuthorizationHandler, scope=Scope.UOW)
    complete_authorization_handler = provide(CompleteAuthorizationHandler, scope=Scope.UOW)
    select_audience_handler = provide(SelectAudienceHandler, scope=Scope.UOW)
    select_location_handler = provide(SelectLocationHandler, scope=Scope.UOW)
    save_manual_entry_handler = provide(SaveManualEntryHandler, scope=Scope.UOW)
    disconnect_handler = provide(DisconnectHandler, scope=Scope.UOW)
    update_connection_handler = provide(UpdateConnectionHandler, scope=Scope.UOW)

    # Query handlers
    connection_status_handler = provide(GetConnectionStatusHandler, scope=Scope.UOW)

    # Schedules
    sweep_expired_sessions = provide(SweepExpiredSessions, scope=Scope.UOW)
