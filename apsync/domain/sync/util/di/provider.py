from dishka import provide

from apsync.config import Config
from apsync.domain.linking.port.repository import MappingRepository
from apsync.domain.marketing.port import MarketingPlatform
from apsync.domain.sync.command.sync_contact import (
    SyncContactHandler,
    SyncContactsBatchHandler,
)
from apsync.domain.sync.port.sync_log import SyncLogRepository
from apsync.domain.sync.service.contact import ContactSyncService
from apsync.util.di.base import Provider
from apsync.util.di.scope import Scope


class SyncProvider(Provider):
    @provide(scope=Scope.UOW)
    def get_contact_sync_service(
        self,
        mappings: MappingRepository,
        marketing: MarketingPlatform,
        sync_log: SyncLogRepository,
        config: Config,
    ) -> ContactSyncService:
        return ContactSyncService(
            mappings=mappings,
            marketing=marketing,
            sync_log=sync_log,
            auto_map_threshold=config.sync.auto_map_threshold,
            concurrency=config.sync.concurrency,
        )

    sync_contact_handler = provide(SyncContactHandler, scope=Scope.UOW)

    @provide(scope=Scope.UOW)
    def get_batch_handler(
        self, service: ContactSyncService, config: Config
    ) -> SyncContactsBatchHandler:
        return SyncContactsBatchHandler(service=service, batch_limit=config.sync.batch_limit)
