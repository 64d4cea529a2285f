"""
Error hierarchy for stowage.

Every failure the migration engine can report is a StowageError. The
executor captures them and turns them into result objects, so none of
these normally escape past the service boundary. AggregateMigrationError
is the one exception, raised only when a host opts in through
AggregateMigrationResult.raise_for_failures().
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class ErrorCategory(str, Enum):
    """Classification of errors for reporting."""

    STORAGE = "storage"  # Backend unavailable, I/O failure
    REGISTRY = "registry"  # Broken migration chain
    PRECONDITION = "precondition"  # can_migrate() said no
    EXECUTION = "execution"  # migrate() raised
    AGGREGATE = "aggregate"
    CONFIGURATION = "configuration"


class StowageError(Exception):
    """Base exception for all stowage errors."""

    category: ErrorCategory = ErrorCategory.EXECUTION

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message} (caused by: {self.cause})"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Serialize for structured log context."""
        data: dict[str, Any] = {
            "error_type": type(self).__name__,
            "category": self.category.value,
            "message": self.message,
        }
        if self.cause is not None:
            data["cause"] = str(self.cause)
            data["cause_type"] = type(self.cause).__name__
        return data


class StorageIOError(StowageError):
    """The underlying store operation failed independently of migration logic.

    Attributes:
        key: Store key involved, when known.
        migration_id: Set when the failure happened inside a migration step.
    """

    category = ErrorCategory.STORAGE

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, cause)
        self.key = key
        self.migration_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.key is not None:
            data["key"] = self.key
        if self.migration_id is not None:
            data["migration_id"] = self.migration_id
        return data


class RegistryIntegrityError(StowageError):
    """The migration chain has a gap, overlap, or ordering violation."""

    category = ErrorCategory.REGISTRY


class MigrationError(StowageError):
    """Failure of one specific migration."""

    def __init__(
        self,
        message: str,
        migration_id: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, cause)
        self.migration_id = migration_id

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.migration_id is not None:
            data["migration_id"] = self.migration_id
        return data


class MigrationPreconditionFailed(MigrationError):
    """can_migrate() returned False; the migration was not applied."""

    category = ErrorCategory.PRECONDITION


class MigrationExecutionError(MigrationError):
    """The migration's transformation raised mid-step."""

    category = ErrorCategory.EXECUTION


class ReservedKeyError(MigrationError):
    """A migration tried to touch the schema version key."""

    category = ErrorCategory.EXECUTION

    def __init__(self, key: str):
        super().__init__(f"Key {key!r} is reserved for the migration executor")
        self.key = key


class AggregateMigrationError(StowageError):
    """One or more storage domains failed to migrate.

    Attributes:
        errors: Mapping of domain name to that domain's error.
    """

    category = ErrorCategory.AGGREGATE

    def __init__(self, errors: dict[str, StowageError]):
        domains = ", ".join(sorted(errors))
        super().__init__(f"Storage migration failed for: {domains}")
        self.errors = errors


class TransientStorageError(StorageIOError):
    """Backend condition that may clear on retry (e.g. a locked database)."""


class ConfigurationError(StowageError):
    """Required configuration is missing or invalid."""

    category = ErrorCategory.CONFIGURATION
