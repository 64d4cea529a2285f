"""Stored schema version adapter.

The schema version of a store lives inside the store itself under a
reserved key. Only the migration executor reads or writes it, through
VersionStore. Migrations see the store through ReservedKeyGuard, which
refuses any access to that key.
"""
from typing import Optional

import structlog

from stowage.core.errors import ReservedKeyError, StorageIOError
from stowage.storage.base import KeyValueStore

log = structlog.get_logger()

VERSION_KEY = "__stowage_schema_version__"
INITIAL_VERSION = 0


class VersionStore:
    """Reads and writes the StoredVersion of one store."""

    def __init__(self, store: KeyValueStore, key: str = VERSION_KEY):
        self._store = store
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    async def read(self) -> int:
        """Current stored version.

        An absent key means a fresh install (version 0). A value that is not
        a non-negative integer is logged and treated as 0; every migration
        is idempotent, so replaying the chain from the start is safe.

        Raises:
            StorageIOError: If the backend fails.
        """
        try:
            raw: Optional[object] = await self._store.get_string(self._key)
            if raw is None:
                if not await self._store.contains_key(self._key):
                    return INITIAL_VERSION
                # Present but not a string
                raw = await self._store.get_int(self._key)
        except StorageIOError:
            raise
        except Exception as e:
            raise StorageIOError(
                f"Cannot read schema version: {e}", key=self._key, cause=e
            ) from e

        try:
            version = int(raw)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            version = -1

        if version < INITIAL_VERSION:
            log.warning(
                "invalid_stored_version",
                store=getattr(self._store, "name", None),
                key=self._key,
                raw_value=raw,
            )
            return INITIAL_VERSION
        return version

    async def write(self, version: int) -> None:
        """Persist version.

        Raises:
            StorageIOError: If the backend fails or rejects the write.
        """
        try:
            written = await self._store.set_string(self._key, str(int(version)))
        except StorageIOError:
            raise
        except Exception as e:
            raise StorageIOError(
                f"Cannot write schema version {version}: {e}", key=self._key, cause=e
            ) from e

        if not written:
            raise StorageIOError(
                f"Store rejected schema version write ({version})", key=self._key
            )

    async def is_set(self) -> bool:
        return await self._store.contains_key(self._key)


class ReservedKeyGuard:
    """Store proxy handed to migrations.

    Every operation is forwarded to the wrapped store, except that touching
    the reserved key raises ReservedKeyError. keys() hides the reserved key
    and clear() leaves it in place.
    """

    def __init__(self, store: KeyValueStore, reserved_key: str = VERSION_KEY):
        self._store = store
        self._reserved = reserved_key
        self.name = getattr(store, "name", "store")

    def _check(self, key: str) -> None:
        if key == self._reserved:
            raise ReservedKeyError(key)

    async def get_string(self, key: str) -> Optional[str]:
        self._check(key)
        return await self._store.get_string(key)

    async def set_string(self, key: str, value: str) -> bool:
        self._check(key)
        return await self._store.set_string(key, value)

    async def get_int(self, key: str) -> Optional[int]:
        self._check(key)
        return await self._store.get_int(key)

    async def set_int(self, key: str, value: int) -> bool:
        self._check(key)
        return await self._store.set_int(key, value)

    async def get_bool(self, key: str) -> Optional[bool]:
        self._check(key)
        return await self._store.get_bool(key)

    async def set_bool(self, key: str, value: bool) -> bool:
        self._check(key)
        return await self._store.set_bool(key, value)

    async def get_float(self, key: str) -> Optional[float]:
        self._check(key)
        return await self._store.get_float(key)

    async def set_float(self, key: str, value: float) -> bool:
        self._check(key)
        return await self._store.set_float(key, value)

    async def get_string_list(self, key: str) -> Optional[list[str]]:
        self._check(key)
        return await self._store.get_string_list(key)

    async def set_string_list(self, key: str, value: list[str]) -> bool:
        self._check(key)
        return await self._store.set_string_list(key, value)

    async def remove(self, key: str) -> bool:
        self._check(key)
        return await self._store.remove(key)

    async def contains_key(self, key: str) -> bool:
        self._check(key)
        return await self._store.contains_key(key)

    async def keys(self) -> list[str]:
        return [k for k in await self._store.keys() if k != self._reserved]

    async def clear(self) -> bool:
        for key in await self.keys():
            await self._store.remove(key)
        return True
