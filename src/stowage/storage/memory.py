"""In-memory store, used by tests and for throwaway runs."""
import copy
from typing import Any, Optional

from stowage.storage.base import BaseStore


class InMemoryStore(BaseStore):
    """Dict-backed store. Values are deep-copied on the way in and out."""

    def __init__(self, name: str = "memory", initial: Optional[dict[str, Any]] = None):
        self.name = name
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    async def _read(self, key: str) -> tuple[bool, Any]:
        if key not in self._data:
            return False, None
        return True, copy.deepcopy(self._data[key])

    async def _write(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    async def remove(self, key: str) -> bool:
        if key not in self._data:
            return False
        del self._data[key]
        return True

    async def contains_key(self, key: str) -> bool:
        return key in self._data

    async def keys(self) -> list[str]:
        return sorted(self._data)

    async def clear(self) -> bool:
        self._data.clear()
        return True

    def snapshot(self) -> dict[str, Any]:
        """Copy of the current contents."""
        return copy.deepcopy(self._data)
