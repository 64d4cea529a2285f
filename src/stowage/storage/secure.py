"""Encrypted store for sensitive values (tokens, credentials).

Wraps any BaseStore and Fernet-encrypts every value before it reaches the
inner store. Keys stay in plaintext so contains_key/remove/keys work
without decrypting anything.
"""
import json
from typing import Any, Union

import structlog
from cryptography.fernet import Fernet, InvalidToken

from stowage.core.errors import StorageIOError
from stowage.storage.base import BaseStore

log = structlog.get_logger()


def generate_key() -> str:
    """Create a new urlsafe base64 Fernet key."""
    return Fernet.generate_key().decode("ascii")


class EncryptedStore(BaseStore):
    """Fernet-encrypted view over another store.

    Usage:
        inner = SqliteStore("./data/secure.db", name="secure")
        store = EncryptedStore(inner, key=config.get("storage.secure.key"))
    """

    def __init__(self, inner: BaseStore, key: Union[str, bytes], name: str = "secure"):
        """Initialize the store.

        Args:
            inner: Store holding the ciphertext.
            key: Fernet key (urlsafe base64, 32 bytes decoded).
            name: Store name used in log context.

        Raises:
            ValueError: If key is not a valid Fernet key.
        """
        self.name = name
        self._inner = inner
        self._fernet = Fernet(key.encode("ascii") if isinstance(key, str) else key)

    @property
    def inner(self) -> BaseStore:
        return self._inner

    async def connect(self) -> None:
        connect = getattr(self._inner, "connect", None)
        if connect is not None:
            await connect()

    async def close(self) -> None:
        close = getattr(self._inner, "close", None)
        if close is not None:
            await close()

    async def _read(self, key: str) -> tuple[bool, Any]:
        token = await self._inner.get_string(key)
        if token is None:
            return False, None
        try:
            plaintext = self._fernet.decrypt(token.encode("ascii"))
            return True, json.loads(plaintext)
        except (InvalidToken, UnicodeError, json.JSONDecodeError) as e:
            log.error("secure_value_unreadable", store=self.name, key=key)
            raise StorageIOError(f"Cannot decrypt value for key {key!r}", key=key, cause=e) from e

    async def _write(self, key: str, value: Any) -> None:
        token = self._fernet.encrypt(json.dumps(value).encode("utf-8"))
        if not await self._inner.set_string(key, token.decode("ascii")):
            raise StorageIOError(f"Inner store rejected write for key {key!r}", key=key)

    async def remove(self, key: str) -> bool:
        return await self._inner.remove(key)

    async def contains_key(self, key: str) -> bool:
        return await self._inner.contains_key(key)

    async def keys(self) -> list[str]:
        return await self._inner.keys()

    async def clear(self) -> bool:
        return await self._inner.clear()
