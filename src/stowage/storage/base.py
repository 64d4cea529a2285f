"""
Key-value store contract.

KeyValueStore is the narrow interface the migration engine consumes.
BaseStore implements the typed accessors on top of a handful of raw
operations so each backend only deals with reading, writing and removing
JSON-compatible values.

All operations are coroutines. Backend failures surface as StorageIOError.
"""
from abc import ABC, abstractmethod
from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """Async key-value store with typed accessors."""

    name: str

    async def get_string(self, key: str) -> Optional[str]: ...

    async def set_string(self, key: str, value: str) -> bool: ...

    async def get_int(self, key: str) -> Optional[int]: ...

    async def set_int(self, key: str, value: int) -> bool: ...

    async def get_bool(self, key: str) -> Optional[bool]: ...

    async def set_bool(self, key: str, value: bool) -> bool: ...

    async def get_float(self, key: str) -> Optional[float]: ...

    async def set_float(self, key: str, value: float) -> bool: ...

    async def get_string_list(self, key: str) -> Optional[list[str]]: ...

    async def set_string_list(self, key: str, value: list[str]) -> bool: ...

    async def remove(self, key: str) -> bool: ...

    async def contains_key(self, key: str) -> bool: ...

    async def clear(self) -> bool: ...

    async def keys(self) -> list[str]: ...


class BaseStore(ABC):
    """Typed accessors over raw JSON-compatible values.

    Getters return None when the key is absent or holds a value of another
    type. Integers stored as strings (as secure backends tend to do) are
    accepted by get_int and get_float.
    """

    name: str = "store"

    @abstractmethod
    async def _read(self, key: str) -> tuple[bool, Any]:
        """Return (found, value) for key."""

    @abstractmethod
    async def _write(self, key: str, value: Any) -> None:
        """Persist value under key, replacing any previous value."""

    @abstractmethod
    async def remove(self, key: str) -> bool:
        """Remove key. Returns True if it existed."""

    @abstractmethod
    async def contains_key(self, key: str) -> bool:
        """Check whether key holds a value."""

    @abstractmethod
    async def keys(self) -> list[str]:
        """List all keys, sorted."""

    async def clear(self) -> bool:
        """Remove every key."""
        for key in await self.keys():
            await self.remove(key)
        return True

    async def get_string(self, key: str) -> Optional[str]:
        found, value = await self._read(key)
        if found and isinstance(value, str):
            return value
        return None

    async def set_string(self, key: str, value: str) -> bool:
        await self._write(key, str(value))
        return True

    async def get_int(self, key: str) -> Optional[int]:
        found, value = await self._read(key)
        if not found or isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            try:
                return int(value)
            except ValueError:
                return None
        return None

    async def set_int(self, key: str, value: int) -> bool:
        await self._write(key, int(value))
        return True

    async def get_bool(self, key: str) -> Optional[bool]:
        found, value = await self._read(key)
        if found and isinstance(value, bool):
            return value
        return None

    async def set_bool(self, key: str, value: bool) -> bool:
        await self._write(key, bool(value))
        return True

    async def get_float(self, key: str) -> Optional[float]:
        found, value = await self._read(key)
        if not found or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value)
            except ValueError:
                return None
        return None

    async def set_float(self, key: str, value: float) -> bool:
        await self._write(key, float(value))
        return True

    async def get_string_list(self, key: str) -> Optional[list[str]]:
        found, value = await self._read(key)
        if found and isinstance(value, list) and all(isinstance(v, str) for v in value):
            return list(value)
        return None

    async def set_string_list(self, key: str, value: list[str]) -> bool:
        await self._write(key, [str(v) for v in value])
        return True

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
