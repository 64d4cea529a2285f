"""
Unit tests for StorageMigrationService.

Tests verify:
- Each domain is migrated against its own store and registry
- A failure in one domain never affects the other
- Concurrent calls for the same domain are serialized
- Configuration drives version key, targets and concurrency
- raise_for_failures() is opt-in
"""
import asyncio
from unittest.mock import MagicMock

import pytest

from stowage.core.config import ConfigManager
from stowage.core.errors import (
    AggregateMigrationError,
    MigrationExecutionError,
    RegistryIntegrityError,
)
from stowage.migration.executor import ExecutionState
from stowage.migration.registry import MigrationRegistry
from stowage.migration.service import StorageDomain, StorageMigrationService
from stowage.storage.version import VERSION_KEY

from tests.fixtures import RecordingStore, StepMigration, failing_effect


def mock_config(values: dict):
    """ConfigManager stand-in answering from a flat dict."""
    config = MagicMock(spec=ConfigManager)
    config.get.side_effect = lambda key, default=None: values.get(key, default)
    config.get_bool.side_effect = lambda key, default=False: bool(values.get(key, default))
    config.get_int.side_effect = lambda key, default=0: values.get(key, default)
    return config


@pytest.fixture
def general_store():
    return RecordingStore(name="general")


@pytest.fixture
def secure_store():
    return RecordingStore(name="secure")


class TestMigrateAll:
    """Tests for running every domain."""

    @pytest.mark.asyncio
    async def test_both_domains_reach_target(self, general_store, secure_store, make_registry):
        service = StorageMigrationService(
            general_store,
            secure_store,
            general_registry=make_registry(0, 3, name="general"),
            secure_registry=make_registry(0, 1, name="secure"),
        )

        result = await service.migrate_all()

        assert result.success
        assert result.versions == {"general": 3, "secure": 1}
        assert general_store.snapshot()[VERSION_KEY] == "3"
        assert secure_store.snapshot()[VERSION_KEY] == "1"
        assert result[StorageDomain.GENERAL].applied_count == 3

    @pytest.mark.asyncio
    async def test_domain_isolation(self, general_store, secure_store, make_registry):
        """Verify a secure failure leaves the general store fully migrated."""
        broken = StepMigration(0, effect=failing_effect(RuntimeError("bad token")))
        service = StorageMigrationService(
            general_store,
            secure_store,
            general_registry=make_registry(0, 2),
            secure_registry=MigrationRegistry([broken]),
        )

        result = await service.migrate_all()

        assert not result.success
        assert result[StorageDomain.GENERAL].success
        assert general_store.snapshot()[VERSION_KEY] == "2"
        assert list(result.failures) == [StorageDomain.SECURE]
        assert VERSION_KEY not in secure_store.snapshot()

    @pytest.mark.asyncio
    async def test_general_failure_does_not_block_secure(
        self, general_store, secure_store, make_registry
    ):
        general_store.fail_reads = True
        service = StorageMigrationService(
            general_store,
            secure_store,
            general_registry=make_registry(0, 2),
            secure_registry=make_registry(0, 1),
        )

        result = await service.migrate_all()

        assert not result[StorageDomain.GENERAL].success
        assert result[StorageDomain.SECURE].success
        assert secure_store.snapshot()[VERSION_KEY] == "1"

    @pytest.mark.asyncio
    async def test_concurrent_domains(self, general_store, secure_store, make_registry):
        config = mock_config({"migration.concurrent_domains": True})
        service = StorageMigrationService(
            general_store,
            secure_store,
            general_registry=make_registry(0, 2),
            secure_registry=make_registry(0, 2),
            config=config,
        )

        result = await service.migrate_all()

        assert result.success
        assert list(result.results) == [StorageDomain.GENERAL, StorageDomain.SECURE]

    @pytest.mark.asyncio
    async def test_default_registries_are_bundled(self, general_store, secure_store):
        service = StorageMigrationService(general_store, secure_store)

        result = await service.migrate_all()

        assert result.success
        assert result.versions == {"general": 2, "secure": 1}


class TestRaiseForFailures:

    @pytest.mark.asyncio
    async def test_no_raise_on_success(self, general_store, secure_store, make_registry):
        service = StorageMigrationService(
            general_store,
            secure_store,
            general_registry=make_registry(0, 1),
            secure_registry=make_registry(0, 1),
        )
        result = await service.migrate_all()
        result.raise_for_failures()

    @pytest.mark.asyncio
    async def test_raises_aggregate(self, general_store, secure_store, make_registry):
        broken = StepMigration(0, effect=failing_effect(RuntimeError("boom")))
        service = StorageMigrationService(
            general_store,
            secure_store,
            general_registry=MigrationRegistry([broken]),
            secure_registry=make_registry(0, 1),
        )
        result = await service.migrate_all()

        with pytest.raises(AggregateMigrationError) as exc_info:
            result.raise_for_failures()
        assert list(exc_info.value.errors) == ["general"]
        assert isinstance(exc_info.value.errors["general"], MigrationExecutionError)


class TestMigrateDomain:
    """Tests for single-domain runs and serialization."""

    @pytest.mark.asyncio
    async def test_only_requested_domain_runs(self, general_store, secure_store, make_registry):
        service = StorageMigrationService(
            general_store,
            secure_store,
            general_registry=make_registry(0, 2),
            secure_registry=make_registry(0, 1),
        )

        result = await service.migrate_domain(StorageDomain.SECURE)

        assert result.success
        assert result.domain == "secure"
        assert general_store.writes == []
        assert service.state(StorageDomain.SECURE) == ExecutionState.COMPLETED
        assert service.state(StorageDomain.GENERAL) == ExecutionState.NOT_STARTED

    @pytest.mark.asyncio
    async def test_accepts_domain_name(self, general_store, secure_store, make_registry):
        service = StorageMigrationService(
            general_store,
            secure_store,
            general_registry=make_registry(0, 1),
            secure_registry=make_registry(0, 1),
        )
        result = await service.migrate_domain("general")
        assert result.domain == "general"

    @pytest.mark.asyncio
    async def test_concurrent_calls_serialized(self, general_store, secure_store):
        """Verify the second caller waits and then finds nothing to do."""
        release = asyncio.Event()
        calls: list[str] = []

        async def slow(store):
            await release.wait()
            await store.set_string("slow", "done")

        registry = MigrationRegistry([StepMigration(0, effect=slow, calls=calls)])
        service = StorageMigrationService(
            general_store,
            secure_store,
            general_registry=registry,
            secure_registry=MigrationRegistry(),
        )

        first = asyncio.create_task(service.migrate_domain(StorageDomain.GENERAL))
        await asyncio.sleep(0)
        assert service.is_running(StorageDomain.GENERAL)
        second = asyncio.create_task(service.migrate_domain(StorageDomain.GENERAL))
        await asyncio.sleep(0)
        release.set()

        first_result, second_result = await asyncio.gather(first, second)

        assert calls == ["v0_to_v1"]
        assert first_result.applied == ["v0_to_v1"]
        assert second_result.success
        assert second_result.applied == []
        assert general_store.version_writes() == ["1"]
        assert not service.is_running(StorageDomain.GENERAL)


class TestServiceConfig:

    @pytest.mark.asyncio
    async def test_custom_version_key(self, general_store, secure_store, make_registry):
        config = mock_config({"migration.version_key": "schema_version"})
        service = StorageMigrationService(
            general_store,
            secure_store,
            general_registry=make_registry(0, 1),
            secure_registry=make_registry(0, 1),
            config=config,
        )

        await service.migrate_all()

        assert general_store.snapshot()["schema_version"] == "1"
        assert VERSION_KEY not in general_store.snapshot()

    @pytest.mark.asyncio
    async def test_target_version_from_config(self, general_store, secure_store, make_registry):
        config = mock_config({"migration.general.target_version": 1})
        service = StorageMigrationService(
            general_store,
            secure_store,
            general_registry=make_registry(0, 3),
            secure_registry=make_registry(0, 1),
            config=config,
        )

        result = await service.migrate_all()

        assert result.versions == {"general": 1, "secure": 1}
        assert service.executor(StorageDomain.SECURE).target_version == 1

    def test_malformed_target_version_uses_latest(
        self, general_store, secure_store, make_registry, monkeypatch
    ):
        monkeypatch.setenv("STOWAGE_MIGRATION_GENERAL_TARGET_VERSION", "two")
        service = StorageMigrationService(
            general_store,
            secure_store,
            general_registry=make_registry(0, 3),
            secure_registry=make_registry(0, 1),
            config=ConfigManager(),
        )

        assert service.executor(StorageDomain.GENERAL).target_version == 3


class TestStatus:

    @pytest.mark.asyncio
    async def test_pending_reported(self, secure_store, make_registry):
        general_store = RecordingStore(name="general", initial={VERSION_KEY: "1"})
        service = StorageMigrationService(
            general_store,
            secure_store,
            general_registry=make_registry(0, 3),
            secure_registry=MigrationRegistry(),
        )

        statuses = await service.status_all()

        general = statuses[StorageDomain.GENERAL]
        assert general.stored_version == 1
        assert general.target_version == 3
        assert general.pending == ["v1_to_v2", "v2_to_v3"]
        assert not general.up_to_date
        assert statuses[StorageDomain.SECURE].up_to_date
        assert general_store.writes == []

    @pytest.mark.asyncio
    async def test_read_error_reported(self, general_store, secure_store, make_registry):
        general_store.fail_reads = True
        service = StorageMigrationService(
            general_store,
            secure_store,
            general_registry=make_registry(0, 1),
            secure_registry=make_registry(0, 1),
        )

        status = await service.status(StorageDomain.GENERAL)

        assert status.stored_version is None
        assert status.error is not None
        assert not status.up_to_date

    @pytest.mark.asyncio
    async def test_malformed_registry_reported(self, general_store, secure_store, make_registry):
        service = StorageMigrationService(
            general_store,
            secure_store,
            general_registry=MigrationRegistry([StepMigration("0", to_version="1")]),
            secure_registry=make_registry(0, 1),
        )

        status = await service.status(StorageDomain.GENERAL)

        assert status.stored_version == 0
        assert isinstance(status.error, RegistryIntegrityError)
        assert status.pending == []
        assert not status.up_to_date
