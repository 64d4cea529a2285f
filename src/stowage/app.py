"""
Stowage application wiring.

Builds the general and secure stores from configuration, connects them,
and runs the storage migration service. Hosts call this at startup before
any other component reads persisted state:

    async with StowageApp(config_path) as app:
        result = await app.migrate_all()
"""
from pathlib import Path
from typing import Any, Optional

import structlog

from stowage.core.config import (
    DEFAULT_GENERAL_DB_PATH,
    DEFAULT_SECURE_DB_PATH,
    ConfigManager,
)
from stowage.core.errors import ConfigurationError
from stowage.core.logging import setup_logging
from stowage.migration.executor import DomainMigrationResult
from stowage.migration.service import (
    AggregateMigrationResult,
    DomainStatus,
    StorageDomain,
    StorageMigrationService,
)
from stowage.storage.secure import EncryptedStore
from stowage.storage.sqlite import SqliteStore


class StowageApp:
    """Owns the stores and the migration service for one host process."""

    def __init__(
        self,
        config_path: Optional[Path] = None,
        config: Optional[ConfigManager] = None,
        configure_logging: bool = True,
    ) -> None:
        """Initialize the application.

        Args:
            config_path: Path to TOML configuration file.
            config: Pre-built configuration (takes precedence over config_path).
            configure_logging: Set up structlog from the logging.* keys.
        """
        self._config = config or ConfigManager(config_path)

        if configure_logging:
            setup_logging(
                level=self._config.get("logging.level", "INFO"),
                json_output=self._config.get_bool("logging.json", False),
                log_file=self._config.get("logging.file"),
            )
        self._log = structlog.get_logger("stowage.app")

        self._general = SqliteStore(
            self._config.get("storage.general.path", DEFAULT_GENERAL_DB_PATH),
            name="general",
        )
        self._secure_raw = SqliteStore(
            self._config.get("storage.secure.path", DEFAULT_SECURE_DB_PATH),
            name="secure_raw",
        )

        key = self._config.get("storage.secure.key")
        if not key:
            raise ConfigurationError(
                "storage.secure.key is not set (env: STOWAGE_STORAGE_SECURE_KEY)"
            )
        try:
            self._secure = EncryptedStore(self._secure_raw, key=str(key), name="secure")
        except ValueError as e:
            raise ConfigurationError("storage.secure.key is not a valid Fernet key", cause=e) from e

        self._service = StorageMigrationService(
            self._general,
            self._secure,
            config=self._config,
        )
        self._opened = False

    @property
    def config(self) -> ConfigManager:
        return self._config

    @property
    def service(self) -> StorageMigrationService:
        return self._service

    @property
    def general_store(self) -> SqliteStore:
        return self._general

    @property
    def secure_store(self) -> EncryptedStore:
        return self._secure

    async def open(self) -> None:
        """Connect both stores."""
        if self._opened:
            return
        await self._general.connect()
        try:
            await self._secure.connect()
        except BaseException:
            await self._general.close()
            raise
        self._opened = True
        self._log.info(
            "stowage_stores_opened",
            general=self._general.db_path,
            secure=self._secure_raw.db_path,
        )

    async def close(self) -> None:
        """Close both stores."""
        await self._general.close()
        await self._secure.close()
        self._opened = False

    async def __aenter__(self) -> "StowageApp":
        await self.open()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def migrate_all(self) -> AggregateMigrationResult:
        await self.open()
        return await self._service.migrate_all()

    async def migrate_domain(self, domain: StorageDomain) -> DomainMigrationResult:
        await self.open()
        return await self._service.migrate_domain(domain)

    async def status(self) -> dict[StorageDomain, DomainStatus]:
        await self.open()
        return await self._service.status_all()
