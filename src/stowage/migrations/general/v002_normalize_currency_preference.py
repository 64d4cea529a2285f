"""Migration V002: Normalize the currency preference.

Moves `currency` to `default_currency` as an upper-case ISO 4217 code.
Values that are not three letters fall back to USD.
"""
import re

from stowage.migration.base import Migration
from stowage.storage.base import KeyValueStore

DEFAULT_CURRENCY = "USD"
ISO_CODE = re.compile(r"^[A-Z]{3}$")


def normalize_currency(value: str) -> str:
    code = value.strip().upper()
    return code if ISO_CODE.match(code) else DEFAULT_CURRENCY


class NormalizeCurrencyPreference(Migration):
    from_version = 1
    to_version = 2
    description = "Move currency to default_currency as an ISO 4217 code"

    async def migrate(self, store: KeyValueStore) -> None:
        legacy = await store.get_string("currency")
        if legacy is not None:
            if not await store.contains_key("default_currency"):
                await store.set_string("default_currency", normalize_currency(legacy))
            await store.remove("currency")
            return

        current = await store.get_string("default_currency")
        if current is not None and current != normalize_currency(current):
            await store.set_string("default_currency", normalize_currency(current))
