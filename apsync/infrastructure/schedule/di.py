from dishka import AsyncContainer, provide

from apsync.config import Config
from apsync.domain.linking.schedule.sweep import SweepExpiredSessions
from apsync.infrastructure.schedule.pool import ScheduleConfig, ScheduleConfigs, SchedulePool
from apsync.util.di.base import Provider
from apsync.util.di.scope import Scope


class ScheduleProvider(Provider):
    @provide(scope=Scope.APP)
    def get_schedules(self, config: Config) -> ScheduleConfigs:
        return ScheduleConfigs(
            [
                ScheduleConfig(
                    schedule_type=SweepExpiredSessions,
                    cron=config.linking.sweep_cron,
                    id="sweep-expired-sessions",
                ),
            ]
        )

    @provide(scope=Scope.APP)
    def get_schedule_pool(
        self, container: AsyncContainer, schedules: ScheduleConfigs
    ) -> SchedulePool:
        return SchedulePool(container=container, schedules=schedules)
