"""Migration V001: Rename legacy preference keys.

- user_name -> username
- theme -> theme_mode, normalized to dark | light | system
- user_tags: comma-separated string -> string list
- language defaults to "en"
- deprecated keys are dropped

Every step checks before it writes, so re-running is a no-op.
"""
from stowage.migration.base import Migration
from stowage.storage.base import KeyValueStore

THEME_MODES = ("dark", "light", "system")
DEFAULT_LANGUAGE = "en"
DEPRECATED_KEYS = ("old_setting_1", "old_setting_2", "deprecated_key")


class RenameLegacyPreferenceKeys(Migration):
    from_version = 0
    to_version = 1
    description = "Rename legacy preference keys and normalize their formats"

    async def migrate(self, store: KeyValueStore) -> None:
        user_name = await store.get_string("user_name")
        if user_name is not None:
            if not await store.contains_key("username"):
                await store.set_string("username", user_name)
            await store.remove("user_name")

        theme = await store.get_string("theme")
        if theme is not None:
            mode = theme.strip().lower()
            if mode not in THEME_MODES:
                mode = "system"
            await store.set_string("theme_mode", mode)
            await store.remove("theme")

        # A list written by a previous run reads back as None here
        tags = await store.get_string("user_tags")
        if tags is not None:
            await store.set_string_list(
                "user_tags", [t.strip() for t in tags.split(",") if t.strip()]
            )

        if not await store.contains_key("language"):
            await store.set_string("language", DEFAULT_LANGUAGE)

        for key in DEPRECATED_KEYS:
            if await store.contains_key(key):
                await store.remove(key)
