"""Bundled migrations, one catalog per storage domain.

Each migration lives in its own vNNN_*.py module under general/ or
secure/. Add new ones to the matching list below; the registries are
validated by the test suite and again before every run.
"""

from stowage.migration.registry import MigrationRegistry
from stowage.migrations.general.v001_rename_legacy_preference_keys import (
    RenameLegacyPreferenceKeys,
)
from stowage.migrations.general.v002_normalize_currency_preference import (
    NormalizeCurrencyPreference,
)
from stowage.migrations.secure.v001_namespace_auth_tokens import NamespaceAuthTokens


def general_migrations() -> MigrationRegistry:
    """Registry for the general-purpose store."""
    return MigrationRegistry(
        [
            RenameLegacyPreferenceKeys(),
            NormalizeCurrencyPreference(),
        ],
        name="general",
    )


def secure_migrations() -> MigrationRegistry:
    """Registry for the encrypted store."""
    return MigrationRegistry(
        [
            NamespaceAuthTokens(),
        ],
        name="secure",
    )


__all__ = ["general_migrations", "secure_migrations"]
