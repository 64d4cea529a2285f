"""Migration V001 (secure store): Namespace auth tokens.

access_token -> auth.access_token, refresh_token -> auth.refresh_token.
A token already present under the new key wins over the legacy one.
"""
from stowage.migration.base import Migration
from stowage.storage.base import KeyValueStore

RENAMES = {
    "access_token": "auth.access_token",
    "refresh_token": "auth.refresh_token",
}


class NamespaceAuthTokens(Migration):
    from_version = 0
    to_version = 1
    description = "Move auth tokens under the auth. namespace"

    async def migrate(self, store: KeyValueStore) -> None:
        for old_key, new_key in RENAMES.items():
            token = await store.get_string(old_key)
            if token is None:
                continue
            if not await store.contains_key(new_key):
                await store.set_string(new_key, token)
            await store.remove(old_key)
