"""
Migration contract.

A migration moves one store from from_version to from_version + 1. It is a
small class with one required coroutine (migrate) and one optional hook
(can_migrate):

    class RenameUserName(Migration):
        from_version = 0
        to_version = 1
        description = "Rename user_name to username"

        async def migrate(self, store):
            value = await store.get_string("user_name")
            if value is not None:
                await store.set_string("username", value)
                await store.remove("user_name")

migrate() must be idempotent: running it against a store that already
reflects its effect changes nothing and raises nothing.

Migrations never touch the schema version key. apply() hands them the store
behind a ReservedKeyGuard, and the executor persists the version.
"""
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from stowage.core.errors import (
    MigrationError,
    MigrationExecutionError,
    MigrationPreconditionFailed,
    StorageIOError,
    StowageError,
)
from stowage.storage.base import KeyValueStore
from stowage.storage.version import VERSION_KEY, ReservedKeyGuard


@dataclass
class MigrationOutcome:
    """Result of applying a single migration."""

    migration_id: str
    success: bool
    error: Optional[StowageError] = None
    duration_ms: float = 0.0

    @classmethod
    def ok(cls, migration_id: str, duration_ms: float = 0.0) -> "MigrationOutcome":
        return cls(migration_id=migration_id, success=True, duration_ms=duration_ms)

    @classmethod
    def failed(
        cls, migration_id: str, error: StowageError, duration_ms: float = 0.0
    ) -> "MigrationOutcome":
        return cls(
            migration_id=migration_id,
            success=False,
            error=error,
            duration_ms=duration_ms,
        )


class Migration(ABC):
    """A single versioned, idempotent transformation of a store."""

    from_version: int
    to_version: int
    description: str = ""

    @property
    def id(self) -> str:
        """Unique identifier within a registry."""
        return f"v{self.from_version}_to_v{self.to_version}"

    @abstractmethod
    async def migrate(self, store: KeyValueStore) -> None:
        """Transform the store. May read, write and remove any non-reserved key."""

    async def can_migrate(self, store: KeyValueStore) -> bool:
        """Precondition check. Returning False fails the migration without running it."""
        return True

    async def apply(
        self, store: KeyValueStore, version_key: str = VERSION_KEY
    ) -> MigrationOutcome:
        """Run can_migrate + migrate, capturing any failure.

        Never raises for migration or storage errors; cancellation still
        propagates.
        """
        guarded = ReservedKeyGuard(store, reserved_key=version_key)
        started = time.perf_counter()

        def elapsed() -> float:
            return round((time.perf_counter() - started) * 1000, 3)

        try:
            if not await self.can_migrate(guarded):
                error: StowageError = MigrationPreconditionFailed(
                    f"Precondition for migration {self.id} not met",
                    migration_id=self.id,
                )
                return MigrationOutcome.failed(self.id, error, elapsed())

            await self.migrate(guarded)
        except StorageIOError as e:
            e.migration_id = self.id
            return MigrationOutcome.failed(self.id, e, elapsed())
        except MigrationError as e:
            # ReservedKeyError and errors raised deliberately by migrate()
            if e.migration_id is None:
                e.migration_id = self.id
            return MigrationOutcome.failed(self.id, e, elapsed())
        except Exception as e:
            error = MigrationExecutionError(
                f"Migration {self.id} raised {type(e).__name__}",
                migration_id=self.id,
                cause=e,
            )
            return MigrationOutcome.failed(self.id, error, elapsed())

        return MigrationOutcome.ok(self.id, elapsed())

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}: {self.description}>"
