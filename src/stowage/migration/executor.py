"""
Migration executor.

Applies the pending part of a registry's chain to one store:

1. Read the stored version (absent = 0) and check the target is an integer
2. Return immediately if the store is already at the target
3. Validate the registry and make sure the pending chain reaches the target
4. Apply each migration in ascending order, persisting the new version
   right after each successful step
5. Stop at the first failure, leaving the version at the last success

The version is never advanced past a migration that did not succeed, so
re-running after a crash or failure picks up exactly where the last run
stopped. Nothing raised by the store or by a migration escapes execute();
every outcome is reported through DomainMigrationResult.
"""
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

import structlog

from stowage.core.errors import RegistryIntegrityError, StorageIOError, StowageError
from stowage.migration.base import Migration
from stowage.migration.registry import MigrationRegistry
from stowage.storage.base import KeyValueStore
from stowage.storage.version import VERSION_KEY, VersionStore

log = structlog.get_logger()


class ExecutionState(str, Enum):
    """Per-domain, per-run execution state.

    NOT_STARTED -> READING_VERSION -> APPLYING -> ... -> COMPLETED | FAILED
    """

    NOT_STARTED = "not_started"
    READING_VERSION = "reading_version"
    APPLYING = "applying"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ExecutionState.COMPLETED, ExecutionState.FAILED)


@dataclass
class DomainMigrationResult:
    """Outcome of one executor run against one store."""

    domain: str
    state: ExecutionState
    start_version: Optional[int] = None
    end_version: Optional[int] = None
    target_version: Optional[int] = None
    applied: list[str] = field(default_factory=list)
    failed_migration: Optional[str] = None
    error: Optional[StowageError] = None
    duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.state == ExecutionState.COMPLETED and self.error is None

    @property
    def applied_count(self) -> int:
        return len(self.applied)

    def to_log_context(self) -> dict[str, Any]:
        """Flat mapping for structured logging."""
        context: dict[str, Any] = {
            "domain": self.domain,
            "state": self.state.value,
            "start_version": self.start_version,
            "end_version": self.end_version,
            "target_version": self.target_version,
            "applied_count": self.applied_count,
            "duration_ms": self.duration_ms,
        }
        if self.failed_migration is not None:
            context["failed_migration"] = self.failed_migration
        if self.error is not None:
            context["error"] = str(self.error)
            context["error_type"] = type(self.error).__name__
        return context


class MigrationExecutor:
    """Applies a registry's pending chain against one store.

    Usage:
        executor = MigrationExecutor(store, registry, target_version=2)
        result = await executor.execute()
        if not result.success:
            ...
    """

    def __init__(
        self,
        store: KeyValueStore,
        registry: MigrationRegistry,
        target_version: Optional[int] = None,
        version_key: str = VERSION_KEY,
        name: Optional[str] = None,
    ):
        """Initialize executor.

        Args:
            store: Store to migrate.
            registry: Migrations for this store's domain.
            target_version: Version the running application expects.
                Defaults to the registry's latest version.
            version_key: Key holding the stored version.
            name: Domain name used in results and logs.
        """
        self._store = store
        self._registry = registry
        if target_version is None:
            try:
                target_version = registry.latest_version
            except TypeError:
                # Mixed version types; execute() reports the broken registry
                target_version = None
        self._target_version = target_version
        self._versions = VersionStore(store, key=version_key)
        self._version_key = version_key
        self._name = name or getattr(store, "name", registry.name)
        self._state = ExecutionState.NOT_STARTED
        self._current_step: Optional[int] = None
        self._log = log.bind(component="migration_executor", domain=self._name)

    @property
    def name(self) -> str:
        return self._name

    @property
    def target_version(self) -> Optional[int]:
        return self._target_version

    @property
    def state(self) -> ExecutionState:
        return self._state

    @property
    def current_step(self) -> Optional[int]:
        """Index into the pending chain of the migration being applied."""
        return self._current_step

    async def read_version(self) -> int:
        """Stored version of the store. Raises StorageIOError on backend failure."""
        return await self._versions.read()

    def pending_for(self, stored_version: int) -> list[Migration]:
        """Migrations needed to bring stored_version up to the target."""
        return [
            m
            for m in self._registry.migrations_from(stored_version)
            if m.to_version <= self._target_version
        ]

    def check_target(self) -> None:
        """Make sure the target can be compared against stored versions.

        Raises:
            RegistryIntegrityError: When the target is not an integer. A
                registry with non-integer versions is reported as such.
        """
        if isinstance(self._target_version, int) and not isinstance(self._target_version, bool):
            return
        self._registry.validate()
        raise RegistryIntegrityError(
            f"{self._name}: target version {self._target_version!r} is not an integer"
        )

    def pending_chain(self, stored_version: int) -> list[Migration]:
        """Validated migrations leading from stored_version to the target.

        Raises:
            RegistryIntegrityError: On a malformed registry or a chain that
                does not connect stored_version to the target.
        """
        self.check_target()
        self._registry.validate()

        pending = self.pending_for(stored_version)
        if not pending or pending[0].from_version != stored_version:
            raise RegistryIntegrityError(
                f"{self._name}: no migration from v{stored_version} "
                f"(registry covers v{self._registry.base_version}"
                f"-v{self._registry.latest_version})"
            )
        if pending[-1].to_version != self._target_version:
            raise RegistryIntegrityError(
                f"{self._name}: migration chain ends at v{pending[-1].to_version}, "
                f"target is v{self._target_version}"
            )
        return pending

    async def execute(self) -> DomainMigrationResult:
        """Bring the store up to the target version.

        Returns:
            DomainMigrationResult in COMPLETED or FAILED state.
        """
        started = time.perf_counter()
        result = DomainMigrationResult(
            domain=self._name,
            state=ExecutionState.NOT_STARTED,
            target_version=self._target_version,
        )
        self._current_step = None

        def finish(state: ExecutionState) -> DomainMigrationResult:
            self._state = state
            result.state = state
            result.duration_ms = round((time.perf_counter() - started) * 1000, 3)
            return result

        self._state = ExecutionState.READING_VERSION
        try:
            stored_version = await self._versions.read()
        except StorageIOError as e:
            self._log.error("version_read_failed", error=str(e))
            result.error = e
            return finish(ExecutionState.FAILED)

        result.start_version = stored_version
        result.end_version = stored_version

        try:
            self.check_target()
        except RegistryIntegrityError as e:
            self._log.error("migration_chain_invalid", stored_version=stored_version, error=str(e))
            result.error = e
            return finish(ExecutionState.FAILED)

        # Fast path: runs on every startup, so no writes and no validation
        if stored_version >= self._target_version:
            if stored_version > self._target_version:
                self._log.warning(
                    "store_ahead_of_application",
                    stored_version=stored_version,
                    target_version=self._target_version,
                )
            else:
                self._log.debug("store_up_to_date", version=stored_version)
            return finish(ExecutionState.COMPLETED)

        try:
            pending = self.pending_chain(stored_version)
        except RegistryIntegrityError as e:
            self._log.error("migration_chain_invalid", stored_version=stored_version, error=str(e))
            result.error = e
            return finish(ExecutionState.FAILED)

        self._log.info(
            "migration_started",
            stored_version=stored_version,
            target_version=self._target_version,
            pending=[m.id for m in pending],
        )

        for index, migration in enumerate(pending):
            self._state = ExecutionState.APPLYING
            self._current_step = index

            self._log.info(
                "migration_applying",
                migration_id=migration.id,
                description=migration.description,
                step=index + 1,
                total=len(pending),
            )

            outcome = await migration.apply(self._store, version_key=self._version_key)

            if not outcome.success:
                error_context = outcome.error.to_dict() if outcome.error else {}
                error_context["migration_id"] = migration.id
                self._log.error(
                    "migration_failed",
                    description=migration.description,
                    stored_version=result.end_version,
                    duration_ms=outcome.duration_ms,
                    **error_context,
                )
                result.failed_migration = migration.id
                result.error = outcome.error
                return finish(ExecutionState.FAILED)

            try:
                await self._versions.write(migration.to_version)
            except StorageIOError as e:
                # Effects are in place but unrecorded; the step reruns next time
                e.migration_id = migration.id
                self._log.error(
                    "version_write_failed",
                    migration_id=migration.id,
                    version=migration.to_version,
                    error=str(e),
                )
                result.failed_migration = migration.id
                result.error = e
                return finish(ExecutionState.FAILED)

            result.applied.append(migration.id)
            result.end_version = migration.to_version

            self._log.info(
                "migration_applied",
                migration_id=migration.id,
                version=migration.to_version,
                duration_ms=outcome.duration_ms,
            )

        self._log.info(
            "migration_completed",
            start_version=result.start_version,
            end_version=result.end_version,
            applied_count=result.applied_count,
        )
        return finish(ExecutionState.COMPLETED)
