"""Environment-driven configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv


def _env(key: str, default: str = "") -> str:
    return os.environ.get(key, default)


@dataclass(frozen=True)
class AppConfig:
    env: str = field(default_factory=lambda: _env("APP_ENV", "development"))
    secret_key: str = field(default_factory=lambda: _env("APP_SECRET_KEY"))
    log_level: str = field(default_factory=lambda: _env("LOG_LEVEL", "INFO"))
    slow_request_ms: int = field(
        default_factory=lambda: int(_env("SLOW_REQUEST_MS", "800"))
    )
    base_url: str = field(
        default_factory=lambda: _env("APP_BASE_URL", "http://localhost:3000")
    )

    @property
    def is_development(self) -> bool:
        return self.env == "development"


@dataclass(frozen=True)
class CosmosConfig:
    endpoint: str = field(default_factory=lambda: _env("COSMOS_ENDPOINT"))
    key: str = field(default_factory=lambda: _env("COSMOS_KEY"))
    database: str = field(default_factory=lambda: _env("COSMOS_DATABASE", "uvocollab"))


@dataclass(frozen=True)
class ServiceBusConfig:
    connection_string: str = field(
        default_factory=lambda: _env("AZURE_SERVICEBUS_CONNECTION_STRING")
    )
    topic_name: str = field(
        default_factory=lambda: _env("AZURE_SERVICEBUS_TOPIC", "collaboration-events")
    )


@dataclass(frozen=True)
class ContractConfig:
    """E-signature gateway used to generate and dispatch contracts."""

    api_url: str = field(default_factory=lambda: _env("ESIGN_API_URL"))
    api_key: str = field(default_factory=lambda: _env("ESIGN_API_KEY"))
    webhook_secret: str = field(default_factory=lambda: _env("ESIGN_WEBHOOK_SECRET"))
    timeout: float = field(default_factory=lambda: float(_env("ESIGN_TIMEOUT", "10")))


@dataclass(frozen=True)
class Settings:
    app: AppConfig = field(default_factory=AppConfig)
    cosmos: CosmosConfig = field(default_factory=CosmosConfig)
    servicebus: ServiceBusConfig = field(default_factory=ServiceBusConfig)
    contracts: ContractConfig = field(default_factory=ContractConfig)


def load_settings() -> Settings:
    """Load settings from the environment, reading a local ``.env`` first."""
    load_dotenv()
    return Settings()
