import logging
import os
import sys
from pathlib import Path
from typing import Any

import logfire
import yaml
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource
from typing_extensions import Self

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///apsync.db"


class YamlConfigSettingsSource(PydanticBaseSettingsSource):
    """Load settings from the YAML file named by APSYNC_CONFIG_FILE."""

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self._load_yaml_config().get(field_name), field_name, False

    def __call__(self) -> dict[str, Any]:
        return self._load_yaml_config()

    def _load_yaml_config(self) -> dict[str, Any]:
        config_file = os.environ.get("APSYNC_CONFIG_FILE")
        if config_file:
            path = Path(config_file)
            if path.exists():
                return yaml.safe_load(path.read_text()) or {}
        return {}


class Server(BaseModel):
    name: str = "apsync"
    version: str = "0.1.0"
    description: str = "Links access-point locations to Mailchimp audiences"
    host: str = "0.0.0.0"
    port: int = 3000
    public_url: str = "http://localhost:3000"  # Base for links handed to browsers


class DatabaseConfig(BaseModel):
    """Primary database plus the read-only sites registry.

    ``registry_url`` left empty means the registry tables live in the primary
    database.
    """

    url: str = DEFAULT_DATABASE_URL
    registry_url: str = ""
    echo: bool = False
    auto_migrate: bool = True  # Auto-migrate for SQLite, manual for PostgreSQL

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    logfire: bool = False  # Send traces to Logfire

    @property
    def file(self) -> str | None:
        """Get log file path from APSYNC_LOG_FILE env var."""
        return os.environ.get("APSYNC_LOG_FILE")


class MailchimpConfig(BaseModel):
    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str = ""  # Full callback URL, e.g. https://host/oauth/mailchimp/callback
    auth_base_url: str = "https://login.mailchimp.com/oauth2"
    timeout: float = 10.0  # Seconds per request


class LinkingConfig(BaseModel):
    session_ttl_minutes: int = Field(default=10, gt=0)
    similarity_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    candidate_limit: int = Field(default=10, gt=0)  # Per fuzzy/substring lookup
    sweep_cron: str = "*/5 * * * *"
    manual_entry_url: str = ""  # Empty = {server.public_url}/setup


class SyncConfig(BaseModel):
    batch_limit: int = Field(default=100, gt=0)
    concurrency: int = Field(default=5, gt=0)
    auto_map_threshold: float = Field(default=0.3, ge=0.0, le=1.0)


class Config(BaseSettings):
    server: Server = Server()
    database: DatabaseConfig = DatabaseConfig()
    logging: LoggingConfig = LoggingConfig()
    mailchimp: MailchimpConfig = MailchimpConfig()
    linking: LinkingConfig = LinkingConfig()
    sync: SyncConfig = SyncConfig()

    model_config = {
        "env_prefix": "APSYNC_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",  # Allows APSYNC_DATABASE__URL override
    }

    @model_validator(mode="after")
    def derive_urls(self) -> Self:
        if not self.database.registry_url:
            self.database = self.database.model_copy(update={"registry_url": self.database.url})
        if not self.linking.manual_entry_url:
            self.linking = self.linking.model_copy(
                update={"manual_entry_url": f"{self.server.public_url.rstrip('/')}/setup"}
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
        """Priority: init, env, .env, APSYNC_CONFIG_FILE yaml, secrets."""
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


def configure_logging(config: LoggingConfig) -> None:
    """Configure the root logger. Call once, early in startup."""
    root_logger = logging.getLogger()
    root_logger.setLevel(config.level)

    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)

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

    if config.logfire:
        root_logger.addHandler(logfire.LogfireLoggingHandler())

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    logging.debug("Logging configured: level=%s, file=%s", config.level, config.file)
