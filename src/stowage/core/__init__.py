"""Core infrastructure - config, logging, errors, retry."""

from stowage.core.config import ConfigManager
from stowage.core.errors import (
    AggregateMigrationError,
    ConfigurationError,
    ErrorCategory,
    MigrationError,
    MigrationExecutionError,
    MigrationPreconditionFailed,
    RegistryIntegrityError,
    ReservedKeyError,
    StorageIOError,
    StowageError,
    TransientStorageError,
)
from stowage.core.logging import setup_logging
from stowage.core.retry import retry_transient

__all__ = [
    # Config
    "ConfigManager",
    # Logging
    "setup_logging",
    # Errors
    "ErrorCategory",
    "StowageError",
    "StorageIOError",
    "TransientStorageError",
    "RegistryIntegrityError",
    "MigrationError",
    "MigrationPreconditionFailed",
    "MigrationExecutionError",
    "ReservedKeyError",
    "AggregateMigrationError",
    "ConfigurationError",
    # Retry
    "retry_transient",
]
