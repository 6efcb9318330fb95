"""
Configuration Module for the OAuth Link Service

This module defines the configuration system for the reconciliation service, using
Pydantic for settings validation and dependency injection through AppKeys.

The Settings class is the central configuration point, loaded from environment variables
with defaults suitable for development environments. Application components access
settings and shared resources (database engine, account store, reconciliation service,
metrics client) through typed AppKeys.

Key configuration areas include:
- Networking and debugging
- Database connection
- Encryption of stored access tokens
- Enabled OAuth providers
- Monitoring and error reporting
"""

import asyncio
import base64
from typing import Final, List, Optional
import logging
from aio_statsd import TelegrafStatsdClient
from pydantic import (
    AliasChoices,
    Field,
    field_validator,
    PostgresDsn,
)
from pydantic_settings import BaseSettings
from aiohttp import web
from cryptography.fernet import Fernet
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    async_sessionmaker,
    AsyncSession,
)

from social.graze.oauthlink.model.health import HealthGauge
from social.graze.oauthlink.provider.mapping import ProviderKey
from social.graze.oauthlink.reconcile.service import ReconciliationService
from social.graze.oauthlink.reconcile.store import AccountStore


logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings for the OAuth Link service.

    Environment variables are mapped to settings fields automatically, with aliases for
    the database connection string: it can be set with either PG_DSN or DATABASE_URL.
    """

    debug: bool = False
    """
    Enable debug mode for verbose logging and detailed error responses.
    Set with DEBUG=true environment variable.
    """

    http_port: int = Field(alias="port", default=5100)
    """
    HTTP port for the internal API to listen on.
    Set with PORT environment variable.
    """

    sentry_dsn: Optional[str] = None
    """
    Sentry DSN for error reporting. Optional, no error reporting if not set.
    Set with SENTRY_DSN environment variable.
    """

    pg_dsn: PostgresDsn = Field(
        "postgresql+asyncpg://postgres:password@db/oauthlink",
        validation_alias=AliasChoices("pg_dsn", "database_url"),
    )  # type: ignore
    """
    PostgreSQL connection string for the account store.
    Set with PG_DSN or DATABASE_URL environment variables.
    Default: postgresql+asyncpg://postgres:password@db/oauthlink
    """

    encryption_key: Fernet = Fernet(Fernet.generate_key())
    """
    Fernet key used to encrypt provider access tokens at rest.
    Can be set to a Fernet object or base64-encoded key string.
    Set with ENCRYPTION_KEY environment variable; generate one with
    `oauthlinkutil gen-crypto`.
    """

    enabled_providers: List[ProviderKey] = list(ProviderKey)
    """
    OAuth providers accepted by the reconcile endpoint.
    Set with ENABLED_PROVIDERS environment variable as a JSON list, e.g. ["github"].
    """

    statsd_host: str = Field(alias="TELEGRAF_HOST", default="telegraf")
    """
    StatsD/Telegraf host for metrics collection.
    Set with TELEGRAF_HOST environment variable.
    """

    statsd_port: int = Field(alias="TELEGRAF_PORT", default=8125)
    """
    StatsD/Telegraf port for metrics collection.
    Set with TELEGRAF_PORT environment variable.
    """

    health_interval: int = 30
    """
    Seconds between two decrements of the health gauge.
    Set with HEALTH_INTERVAL environment variable.
    """

    @field_validator("encryption_key", mode="before")
    @classmethod
    def decode_encryption_key(cls, v) -> Fernet:
        """
        Validate and process the encryption_key setting.

        This validator accepts either:
        - An existing Fernet object (for programmatic configuration)
        - A base64-encoded string containing a Fernet key

        Raises:
            ValueError: If the input is neither a Fernet object nor a valid base64 key
        """
        if isinstance(v, Fernet):
            return v
        elif isinstance(v, str):
            key_data = base64.b64decode(v)
            return Fernet(key_data)
        raise ValueError(
            "encryption_key must be a Fernet object or a base64-encoded key string"
        )


# Application context keys for dependency injection
SettingsAppKey: Final = web.AppKey("settings", Settings)
"""AppKey for accessing the application settings"""

DatabaseAppKey: Final = web.AppKey("database", AsyncEngine)
"""AppKey for accessing the SQLAlchemy async database engine"""

DatabaseSessionMakerAppKey: Final = web.AppKey(
    "database_session_maker", async_sessionmaker[AsyncSession]
)
"""AppKey for accessing the SQLAlchemy async session factory"""

AccountStoreAppKey: Final = web.AppKey("account_store", AccountStore)
"""AppKey for accessing the account store"""

ReconciliationServiceAppKey: Final = web.AppKey(
    "reconciliation_service", ReconciliationService
)
"""AppKey for accessing the reconciliation service"""

HealthGaugeAppKey: Final = web.AppKey("health_gauge", HealthGauge)
"""AppKey for accessing the health monitoring gauge"""

TickHealthTaskAppKey: Final = web.AppKey("tick_health_task", asyncio.Task[None])
"""AppKey for the background task that drains the health gauge"""

TelegrafStatsdClientAppKey: Final = web.AppKey(
    "telegraf_statsd_client", TelegrafStatsdClient
)
"""AppKey for the Telegraf/StatsD metrics client"""
