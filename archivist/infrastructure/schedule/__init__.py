from archivist.infrastructure.schedule.di import ScheduleProvider

__all__ = ["ScheduleProvider"]
