"""
Storage Migration Service - entry point run at application startup.

This service:
- Owns one MigrationExecutor per storage domain (general, secure)
- Runs them to completion and reports each domain's outcome separately
- Serializes runs per domain so two startup paths cannot race on the
  same stored version

Domains share nothing. A failure in one never blocks or alters the other,
and there is no rollback: a failed domain stays at its last successfully
applied version.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import structlog

from stowage.core.config import ConfigManager
from stowage.core.errors import (
    AggregateMigrationError,
    RegistryIntegrityError,
    StorageIOError,
    StowageError,
)
from stowage.migration.executor import (
    DomainMigrationResult,
    ExecutionState,
    MigrationExecutor,
)
from stowage.migration.registry import MigrationRegistry
from stowage.storage.base import KeyValueStore
from stowage.storage.version import VERSION_KEY

log = structlog.get_logger()


class StorageDomain(str, Enum):
    """Isolated storage contexts, migrated independently."""

    GENERAL = "general"
    SECURE = "secure"


@dataclass
class DomainStatus:
    """Read-only view of where a domain stands."""

    domain: StorageDomain
    stored_version: Optional[int]
    target_version: Optional[int]
    pending: list[str] = field(default_factory=list)
    error: Optional[StowageError] = None

    @property
    def up_to_date(self) -> bool:
        if self.error is not None or self.stored_version is None:
            return False
        return self.stored_version >= self.target_version


@dataclass
class AggregateMigrationResult:
    """Per-domain outcomes of migrate_all()."""

    results: dict[StorageDomain, DomainMigrationResult] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return all(r.success for r in self.results.values())

    @property
    def failures(self) -> dict[StorageDomain, DomainMigrationResult]:
        return {d: r for d, r in self.results.items() if not r.success}

    @property
    def versions(self) -> dict[str, Optional[int]]:
        return {d.value: r.end_version for d, r in self.results.items()}

    def __getitem__(self, domain: StorageDomain) -> DomainMigrationResult:
        return self.results[domain]

    def raise_for_failures(self) -> None:
        """Raise AggregateMigrationError if any domain failed.

        For hosts that treat a failed migration as fatal. Hosts running in
        degraded mode inspect failures instead.
        """
        failures = self.failures
        if not failures:
            return
        errors: dict[str, StowageError] = {}
        for domain, result in failures.items():
            errors[domain.value] = result.error or StowageError(
                f"{domain.value} migration did not complete"
            )
        raise AggregateMigrationError(errors)


class StorageMigrationService:
    """Runs storage migrations for every domain.

    Usage:
        service = StorageMigrationService(general_store, secure_store, config=config)
        result = await service.migrate_all()
        if not result.success:
            ...  # host decides: block startup or continue degraded
    """

    def __init__(
        self,
        general_store: KeyValueStore,
        secure_store: KeyValueStore,
        general_registry: Optional[MigrationRegistry] = None,
        secure_registry: Optional[MigrationRegistry] = None,
        config: Optional[ConfigManager] = None,
    ):
        """Initialize the service.

        Args:
            general_store: Store for non-sensitive data.
            secure_store: Encrypted store for sensitive data.
            general_registry: Migrations for the general store. Defaults to
                the bundled catalog.
            secure_registry: Migrations for the secure store. Defaults to
                the bundled catalog.
            config: Supplies version key, per-domain target versions and
                whether domains run concurrently.
        """
        if general_registry is None or secure_registry is None:
            from stowage.migrations import general_migrations, secure_migrations

            if general_registry is None:
                general_registry = general_migrations()
            if secure_registry is None:
                secure_registry = secure_migrations()

        self._log = log.bind(component="storage_migration_service")

        version_key = config.get("migration.version_key", VERSION_KEY) if config else VERSION_KEY
        self._concurrent = (
            config.get_bool("migration.concurrent_domains", False) if config else False
        )

        stores = {
            StorageDomain.GENERAL: general_store,
            StorageDomain.SECURE: secure_store,
        }
        registries = {
            StorageDomain.GENERAL: general_registry,
            StorageDomain.SECURE: secure_registry,
        }

        self._executors: dict[StorageDomain, MigrationExecutor] = {}
        self._locks: dict[StorageDomain, asyncio.Lock] = {}
        for domain in StorageDomain:
            target = (
                config.get_int(f"migration.{domain.value}.target_version", None)
                if config
                else None
            )
            self._executors[domain] = MigrationExecutor(
                stores[domain],
                registries[domain],
                target_version=target,
                version_key=version_key,
                name=domain.value,
            )
            self._locks[domain] = asyncio.Lock()

    def executor(self, domain: StorageDomain) -> MigrationExecutor:
        return self._executors[StorageDomain(domain)]

    def state(self, domain: StorageDomain) -> ExecutionState:
        """Execution state of the domain's latest (or current) run."""
        return self._executors[StorageDomain(domain)].state

    def is_running(self, domain: StorageDomain) -> bool:
        return self._locks[StorageDomain(domain)].locked()

    async def migrate_domain(self, domain: StorageDomain) -> DomainMigrationResult:
        """Migrate a single domain.

        A concurrent call for the same domain waits for the running one and
        then finds the store already at the target.
        """
        domain = StorageDomain(domain)
        lock = self._locks[domain]

        if lock.locked():
            self._log.info("domain_migration_waiting", domain=domain.value)

        async with lock:
            result = await self._executors[domain].execute()

        if result.success:
            self._log.info("domain_migration_finished", **result.to_log_context())
        else:
            self._log.error("domain_migration_finished", **result.to_log_context())
        return result

    async def migrate_all(self) -> AggregateMigrationResult:
        """Migrate the general store, then the secure store.

        With migration.concurrent_domains enabled both run at once; they
        touch disjoint stores.
        """
        aggregate = AggregateMigrationResult()
        domains = list(StorageDomain)

        if self._concurrent:
            results = await asyncio.gather(*(self.migrate_domain(d) for d in domains))
            aggregate.results = dict(zip(domains, results))
        else:
            for domain in domains:
                aggregate.results[domain] = await self.migrate_domain(domain)

        if aggregate.success:
            self._log.info("storage_migration_completed", versions=aggregate.versions)
        else:
            self._log.warning(
                "storage_migration_incomplete",
                versions=aggregate.versions,
                failed_domains=[d.value for d in aggregate.failures],
            )
        return aggregate

    async def status(self, domain: StorageDomain) -> DomainStatus:
        """Stored version, target and pending migrations for a domain."""
        domain = StorageDomain(domain)
        executor = self._executors[domain]

        async with self._locks[domain]:
            try:
                stored = await executor.read_version()
            except StorageIOError as e:
                return DomainStatus(
                    domain=domain,
                    stored_version=None,
                    target_version=executor.target_version,
                    error=e,
                )

        status = DomainStatus(
            domain=domain,
            stored_version=stored,
            target_version=executor.target_version,
        )
        try:
            executor.check_target()
            if stored < executor.target_version:
                status.pending = [m.id for m in executor.pending_chain(stored)]
        except RegistryIntegrityError as e:
            status.error = e
        return status

    async def status_all(self) -> dict[StorageDomain, DomainStatus]:
        return {domain: await self.status(domain) for domain in StorageDomain}
