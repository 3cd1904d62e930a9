"""Unit tests for ScheduleRunner tick handling."""

import asyncio
from dataclasses import dataclass
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from archivist.domain.shared.schedule import Schedule
from archivist.infrastructure.schedule.runner import (
    ScheduleConfig,
    ScheduleConfigs,
    ScheduleRunner,
)


@dataclass
class DummySchedule(Schedule):
    calls: int = 0

    async def run(self, **params: Any) -> None:
        self.calls += 1


def make_mock_container(schedule: Any):
    """Create a mock DI container whose scopes hand out ``schedule``."""
    scope = AsyncMock()
    scope.get = AsyncMock(return_value=schedule)

    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=scope)
    context.__aexit__ = AsyncMock(return_value=None)

    container = MagicMock()
    container.return_value = context
    return container


def _config(**params: Any) -> ScheduleConfig:
    return ScheduleConfig(schedule_type=DummySchedule, cron="0 * * * *", id="dummy", params=params)


class TestRunSchedule:
    @pytest.mark.asyncio
    async def test_tick_runs_schedule_in_fresh_scope(self):
        schedule = DummySchedule()
        container = make_mock_container(schedule)
        runner = ScheduleRunner(container=container)

        await runner._run_schedule(_config())
        await runner._run_schedule(_config())

        assert schedule.calls == 2
        assert container.call_count == 2

    @pytest.mark.asyncio
    async def test_params_are_forwarded(self):
        schedule = AsyncMock()
        runner = ScheduleRunner(container=make_mock_container(schedule))

        await runner._run_schedule(_config(batch=10))

        schedule.run.assert_awaited_once_with(batch=10)

    @pytest.mark.asyncio
    async def test_failures_are_counted_and_reset(self, caplog: pytest.LogCaptureFixture):
        schedule = AsyncMock()
        schedule.run.side_effect = RuntimeError("database down")
        runner = ScheduleRunner(container=make_mock_container(schedule))

        for _ in range(5):
            await runner._run_schedule(_config())

        assert runner.failures("dummy") == 5
        assert "failed 5 consecutive times" in caplog.text

        schedule.run.side_effect = None
        await runner._run_schedule(_config())
        assert runner.failures("dummy") == 0

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        schedule = AsyncMock()
        schedule.run.side_effect = asyncio.CancelledError()
        runner = ScheduleRunner(container=make_mock_container(schedule))

        with pytest.raises(asyncio.CancelledError):
            await runner._run_schedule(_config())

    @pytest.mark.asyncio
    async def test_overlapping_tick_is_skipped(self):
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_run(**params: Any) -> None:
            started.set()
            await release.wait()

        schedule = AsyncMock()
        schedule.run.side_effect = slow_run
        runner = ScheduleRunner(container=make_mock_container(schedule))

        first = asyncio.create_task(runner._run_schedule(_config()))
        await started.wait()
        await runner._run_schedule(_config())  # returns immediately
        release.set()
        await first

        assert schedule.run.await_count == 1

    @pytest.mark.asyncio
    async def test_without_container_does_nothing(self):
        runner = ScheduleRunner()

        await runner._run_schedule(_config())


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_requires_container(self):
        with pytest.raises(RuntimeError, match="Container not set"):
            await ScheduleRunner().start()

    @pytest.mark.asyncio
    async def test_registers_schedules_with_scheduler(self):
        scheduler = AsyncMock()
        scheduler.__aenter__.return_value = scheduler
        runner = ScheduleRunner(
            container=make_mock_container(DummySchedule()),
            schedules=ScheduleConfigs([_config()]),
        )

        with patch(
            "archivist.infrastructure.schedule.runner.AsyncScheduler", return_value=scheduler
        ):
            async with runner:
                scheduler.start_in_background.assert_awaited_once()

        _, kwargs = scheduler.add_schedule.await_args
        assert kwargs["id"] == "dummy"
        assert kwargs["kwargs"]["config"].cron == "0 * * * *"
        scheduler.__aexit__.assert_awaited_once()
