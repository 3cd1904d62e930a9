from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass
class Schedule(ABC):
    """Base class for scheduled tasks.

    Subclasses are dataclasses with DI-injected dependencies.
    The cron expression is provided via config, not on the class.

    Example:
        @dataclass
        class ArchiveExpiredRecords(Schedule):
            record_repo: RecordRepository

            async def run(self, **params: Any) -> None:
                for record in await self.record_repo.list_expired(now):
                    ...
    """

    @abstractmethod
    async def run(self, **params: Any) -> Any:
        """Run the scheduled task with parameters from config."""
        ...
