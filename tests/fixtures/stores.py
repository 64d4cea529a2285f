"""In-memory store with write recording and failure injection."""
from typing import Any, Optional

from stowage.core.errors import StorageIOError
from stowage.storage.memory import InMemoryStore
from stowage.storage.version import VERSION_KEY


class RecordingStore(InMemoryStore):
    """InMemoryStore that records writes and can be told to fail.

    Attributes:
        writes: Every (key, value) passed to _write, in order.
        fail_writes_to: Keys whose writes raise StorageIOError.
        fail_reads: When True, every read raises StorageIOError.
    """

    def __init__(self, name: str = "recording", initial: Optional[dict[str, Any]] = None):
        super().__init__(name=name, initial=initial)
        self.writes: list[tuple[str, Any]] = []
        self.fail_writes_to: set[str] = set()
        self.fail_reads = False

    async def _read(self, key: str) -> tuple[bool, Any]:
        if self.fail_reads:
            raise StorageIOError("backend unavailable", key=key)
        return await super()._read(key)

    async def _write(self, key: str, value: Any) -> None:
        if key in self.fail_writes_to:
            raise StorageIOError("disk full", key=key)
        self.writes.append((key, value))
        await super()._write(key, value)

    def version_writes(self, version_key: str = VERSION_KEY) -> list[Any]:
        return [value for key, value in self.writes if key == version_key]
