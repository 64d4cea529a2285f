"""Migration engine - contract, registry, executor and service."""

from stowage.migration.base import Migration, MigrationOutcome
from stowage.migration.executor import (
    DomainMigrationResult,
    ExecutionState,
    MigrationExecutor,
)
from stowage.migration.registry import MigrationRegistry
from stowage.migration.service import (
    AggregateMigrationResult,
    DomainStatus,
    StorageDomain,
    StorageMigrationService,
)

__all__ = [
    "Migration",
    "MigrationOutcome",
    "MigrationRegistry",
    "MigrationExecutor",
    "ExecutionState",
    "DomainMigrationResult",
    "StorageMigrationService",
    "StorageDomain",
    "DomainStatus",
    "AggregateMigrationResult",
]
