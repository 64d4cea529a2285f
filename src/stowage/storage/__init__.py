"""Key-value store backends and the schema version adapter."""

from stowage.storage.base import BaseStore, KeyValueStore
from stowage.storage.memory import InMemoryStore
from stowage.storage.secure import EncryptedStore, generate_key
from stowage.storage.sqlite import SqliteStore
from stowage.storage.version import (
    INITIAL_VERSION,
    VERSION_KEY,
    ReservedKeyGuard,
    VersionStore,
)

__all__ = [
    "KeyValueStore",
    "BaseStore",
    "InMemoryStore",
    "SqliteStore",
    "EncryptedStore",
    "generate_key",
    "VersionStore",
    "ReservedKeyGuard",
    "VERSION_KEY",
    "INITIAL_VERSION",
]
