"""
Shared pytest fixtures for stowage tests.
"""
from typing import Optional

import pytest
import pytest_asyncio

from stowage.migration.base import Migration
from stowage.migration.registry import MigrationRegistry
from stowage.storage.secure import generate_key
from stowage.storage.sqlite import SqliteStore

from tests.fixtures import RecordingStore, StepMigration


@pytest.fixture
def store():
    """Empty recording store."""
    return RecordingStore()


@pytest.fixture
def make_registry():
    """Build a registry of StepMigrations for start..end sharing one call log."""

    def factory(
        start: int = 0,
        end: int = 3,
        calls: Optional[list[str]] = None,
        overrides: Optional[dict[int, Migration]] = None,
        name: str = "test",
    ) -> MigrationRegistry:
        calls = calls if calls is not None else []
        overrides = overrides or {}
        migrations = [
            overrides.get(v) or StepMigration(v, calls=calls) for v in range(start, end)
        ]
        return MigrationRegistry(migrations, name=name)

    return factory


@pytest.fixture
def fernet_key() -> str:
    return generate_key()


@pytest_asyncio.fixture
async def sqlite_store(tmp_path):
    """Connected SqliteStore in a temp directory."""
    store = SqliteStore(str(tmp_path / "kv.db"), name="general")
    await store.connect()
    yield store
    await store.close()
