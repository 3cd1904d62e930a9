"""Dependency injection provider for background schedules."""

import logging

from dishka import AsyncContainer, Provider, Scope, provide

from archivist.config import Config
from archivist.domain.record.schedule.archive_expired import ArchiveExpiredRecords
from archivist.infrastructure.schedule.runner import (
    ScheduleConfig,
    ScheduleConfigs,
    ScheduleRunner,
)

logger = logging.getLogger(__name__)


class ScheduleProvider(Provider):
    @provide(scope=Scope.APP)
    def get_schedule_configs(self, config: Config) -> ScheduleConfigs:
        schedules = []
        if config.lifecycle.enabled:
            schedules.append(
                ScheduleConfig(
                    schedule_type=ArchiveExpiredRecords,
                    cron=config.lifecycle.cron,
                    id="archive-expired-records",
                )
            )
        return ScheduleConfigs(schedules)

    @provide(scope=Scope.APP)
    def get_schedule_runner(
        self,
        container: AsyncContainer,
        schedules: ScheduleConfigs,
    ) -> ScheduleRunner:
        runner = ScheduleRunner(container=container, schedules=schedules)
        logger.info("ScheduleRunner created with %d schedules", len(runner.schedules))
        return runner
