"""
Unit tests for the stowage error hierarchy.
"""
from stowage.core.errors import (
    AggregateMigrationError,
    ConfigurationError,
    ErrorCategory,
    MigrationExecutionError,
    MigrationPreconditionFailed,
    RegistryIntegrityError,
    ReservedKeyError,
    StorageIOError,
    StowageError,
    TransientStorageError,
)


class TestErrorHierarchy:
    """Test error type classification."""

    def test_everything_is_a_stowage_error(self):
        errors = [
            StorageIOError("x"),
            TransientStorageError("x"),
            RegistryIntegrityError("x"),
            MigrationPreconditionFailed("x"),
            MigrationExecutionError("x"),
            ReservedKeyError("k"),
            AggregateMigrationError({}),
            ConfigurationError("x"),
        ]
        for error in errors:
            assert isinstance(error, StowageError)

    def test_transient_is_a_storage_error(self):
        """Callers that catch StorageIOError also see exhausted retries."""
        assert isinstance(TransientStorageError("locked"), StorageIOError)

    def test_categories(self):
        assert StorageIOError("x").category == ErrorCategory.STORAGE
        assert RegistryIntegrityError("x").category == ErrorCategory.REGISTRY
        assert MigrationPreconditionFailed("x").category == ErrorCategory.PRECONDITION
        assert MigrationExecutionError("x").category == ErrorCategory.EXECUTION


class TestErrorDetails:
    """Test messages and structured context."""

    def test_str_includes_cause(self):
        error = MigrationExecutionError("step failed", cause=KeyError("theme"))
        assert str(error) == "step failed (caused by: 'theme')"

    def test_to_dict(self):
        error = StorageIOError("disk full", key="username", cause=OSError("ENOSPC"))
        error.migration_id = "v0_to_v1"

        data = error.to_dict()
        assert data["error_type"] == "StorageIOError"
        assert data["category"] == "storage"
        assert data["key"] == "username"
        assert data["migration_id"] == "v0_to_v1"
        assert data["cause_type"] == "OSError"

    def test_reserved_key_error_names_key(self):
        error = ReservedKeyError("__stowage_schema_version__")
        assert error.key == "__stowage_schema_version__"
        assert "__stowage_schema_version__" in str(error)

    def test_aggregate_lists_domains(self):
        error = AggregateMigrationError(
            {"secure": StorageIOError("x"), "general": RegistryIntegrityError("y")}
        )
        assert str(error) == "Storage migration failed for: general, secure"
        assert set(error.errors) == {"general", "secure"}
