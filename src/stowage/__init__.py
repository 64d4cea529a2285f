"""Stowage - schema migrations for local key-value stores.

Brings a general-purpose store and an encrypted store from whatever
schema version they were left in up to the version the running
application expects, one idempotent step at a time.
"""

__version__ = "0.1.0"

from stowage.migration import (
    AggregateMigrationResult,
    DomainMigrationResult,
    ExecutionState,
    Migration,
    MigrationExecutor,
    MigrationRegistry,
    StorageDomain,
    StorageMigrationService,
)

__all__ = [
    "__version__",
    "Migration",
    "MigrationRegistry",
    "MigrationExecutor",
    "ExecutionState",
    "DomainMigrationResult",
    "StorageMigrationService",
    "StorageDomain",
    "AggregateMigrationResult",
]
