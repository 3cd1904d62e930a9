from dishka import AsyncContainer, Provider, Scope, from_context, make_async_container

from archivist.config import Config
from archivist.domain.attachment.util.di import AttachmentProvider
from archivist.domain.auth.util.di import AuthProvider
from archivist.domain.record.util.di import RecordProvider
from archivist.infrastructure.persistence import PersistenceProvider
from archivist.infrastructure.schedule import ScheduleProvider


class ConfigProvider(Provider):
    config = from_context(provides=Config, scope=Scope.APP)


def create_container(config: Config | None = None) -> AsyncContainer:
    # Pydantic Settings populates from env vars at runtime
    config = config or Config()  # type: ignore[call-arg]

    return make_async_container(
        ConfigProvider(),
        PersistenceProvider(),
        ScheduleProvider(),
        AuthProvider(),
        RecordProvider(),
        AttachmentProvider(),
        context={Config: config},
    )
