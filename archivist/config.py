import logging
import os
import sys
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, model_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource
from typing_extensions import Self

from archivist.domain.attachment.model.value import (
    ALLOWED_CONTENT_TYPES,
    ATTACHMENT_NAMESPACE,
    MAX_ATTACHMENT_SIZE,
)

DEFAULT_DATA_DIR = Path("~/.archivist")


class YamlConfigSettingsSource(PydanticBaseSettingsSource):
    """Load settings from YAML file specified by ARCHIVIST_CONFIG_FILE env var."""

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        yaml_data = self._load_yaml_config()
        field_value = yaml_data.get(field_name)
        return field_value, field_name, False

    def __call__(self) -> dict[str, Any]:
        return self._load_yaml_config()

    def _load_yaml_config(self) -> dict[str, Any]:
        config_file = os.environ.get("ARCHIVIST_CONFIG_FILE")
        if config_file:
            path = Path(config_file)
            if path.exists():
                return yaml.safe_load(path.read_text()) or {}
        return {}


class Server(BaseModel):
    """Server configuration (nested in Config, uses env_nested_delimiter)."""

    name: str = "Archivist"
    version: str = "0.1.0"
    description: str = "Ownership-scoped record store with scheduled archival"


class DatabaseConfig(BaseModel):
    """Database configuration.

    An empty url means "derive from data_dir" (SQLite file); see Config.
    """

    url: str = ""
    echo: bool = False
    auto_create: bool = True  # Create missing tables on startup


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    logfire: bool = False  # Instrument FastAPI/SQLAlchemy with Logfire

    @property
    def file(self) -> str | None:
        """Get log file path from ARCHIVIST_LOG_FILE env var."""
        return os.environ.get("ARCHIVIST_LOG_FILE")


class LifecycleConfig(BaseModel):
    """Archival schedule. Fires at minute 0 of every hour by default."""

    enabled: bool = True
    cron: str = "0 * * * *"


class AttachmentConfig(BaseModel):
    base_path: str = ""  # Empty = <data_dir>/blobs
    namespace: str = ATTACHMENT_NAMESPACE
    max_size: int = MAX_ATTACHMENT_SIZE
    allowed_content_types: list[str] = sorted(ALLOWED_CONTENT_TYPES)


class JwtConfig(BaseModel):
    secret: str = ""  # Must be set in production
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60


class AuthConfig(BaseModel):
    jwt: JwtConfig = JwtConfig()


class Config(BaseSettings):
    data_dir: Path = DEFAULT_DATA_DIR
    server: Server = Server()
    database: DatabaseConfig = DatabaseConfig()
    logging: LoggingConfig = LoggingConfig()
    lifecycle: LifecycleConfig = LifecycleConfig()
    attachments: AttachmentConfig = AttachmentConfig()
    auth: AuthConfig = AuthConfig()

    model_config = {
        "env_prefix": "ARCHIVIST_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",  # Allows ARCHIVIST_DATABASE__URL override
    }

    @model_validator(mode="after")
    def derive_paths(self) -> Self:
        """Fill the database url and blob directory from data_dir when unset."""
        data_dir = self.data_dir.expanduser()
        if not self.database.url:
            self.database = self.database.model_copy(
                update={"url": f"sqlite+aiosqlite:///{data_dir / 'archivist.db'}"}
            )
        if not self.attachments.base_path:
            self.attachments = self.attachments.model_copy(
                update={"base_path": str(data_dir / "blobs")}
            )
        return self

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings sources to include YAML config.

        Priority (highest to lowest):
        1. init_settings - values passed to Config()
        2. env_settings - environment variables
        3. dotenv_settings - .env file
        4. yaml_settings - ARCHIVIST_CONFIG_FILE yaml
        5. file_secret_settings - secrets from files
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


def configure_logging(config: LoggingConfig) -> None:
    """Configure Python logging based on config.

    Should be called early in application startup.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(config.level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(config.format, datefmt=config.date_format)

    if config.file:
        log_path = Path(config.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_path)
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(config.level)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)  # Suppress job completion spam
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logging.debug("Logging configured: level=%s, file=%s", config.level, config.file)
