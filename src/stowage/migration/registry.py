"""
Ordered catalog of migrations for one storage domain.

A registry is a plain constructed value, so tests can build fake or partial
registries. Entries are sorted by from_version on construction; validate()
checks that they form one contiguous chain.
"""
from typing import Iterable, Iterator, Optional

from stowage.core.errors import RegistryIntegrityError
from stowage.migration.base import Migration


class MigrationRegistry:
    """Contiguous chain of migrations, keyed by from_version.

    Usage:
        registry = MigrationRegistry([RenameLegacyKeys(), NormalizeCurrency()])
        registry.validate()
        pending = registry.migrations_from(stored_version)
    """

    def __init__(self, migrations: Iterable[Migration] = (), name: str = "default"):
        self.name = name
        self._migrations: tuple[Migration, ...] = tuple(
            sorted(migrations, key=lambda m: m.from_version)
        )

    def __len__(self) -> int:
        return len(self._migrations)

    def __iter__(self) -> Iterator[Migration]:
        return iter(self._migrations)

    def __repr__(self) -> str:
        ids = ", ".join(m.id for m in self._migrations)
        return f"MigrationRegistry(name={self.name!r}, [{ids}])"

    @property
    def migrations(self) -> tuple[Migration, ...]:
        return self._migrations

    @property
    def base_version(self) -> int:
        """Version the chain starts from (0 when empty)."""
        if not self._migrations:
            return 0
        return self._migrations[0].from_version

    @property
    def latest_version(self) -> int:
        """Version the chain ends at."""
        if not self._migrations:
            return self.base_version
        return max(m.to_version for m in self._migrations)

    def get(self, from_version: int) -> Optional[Migration]:
        """Migration starting at from_version, if registered."""
        for migration in self._migrations:
            if migration.from_version == from_version:
                return migration
        return None

    def migrations_from(self, version: int) -> list[Migration]:
        """Every migration with from_version >= version, ascending.

        Returns an empty list when version is at or past latest_version.
        """
        return [m for m in self._migrations if m.from_version >= version]

    def validate(self) -> None:
        """Check the chain is contiguous and strictly ascending.

        Raises:
            RegistryIntegrityError: On a step other than +1, a duplicate
                from_version, or a gap between consecutive migrations.
        """
        seen: dict[int, Migration] = {}
        for migration in self._migrations:
            if not isinstance(migration.from_version, int) or not isinstance(
                migration.to_version, int
            ):
                raise RegistryIntegrityError(
                    f"{self.name}: migration {migration!r} has non-integer versions"
                )
            if migration.from_version < 0:
                raise RegistryIntegrityError(
                    f"{self.name}: migration {migration.id} starts below version 0"
                )
            if migration.to_version != migration.from_version + 1:
                raise RegistryIntegrityError(
                    f"{self.name}: migration {migration.id} must advance exactly one version"
                )
            if migration.from_version in seen:
                raise RegistryIntegrityError(
                    f"{self.name}: duplicate migrations from v{migration.from_version}: "
                    f"{type(seen[migration.from_version]).__name__} and "
                    f"{type(migration).__name__}"
                )
            seen[migration.from_version] = migration

        for current, following in zip(self._migrations, self._migrations[1:]):
            if current.to_version != following.from_version:
                raise RegistryIntegrityError(
                    f"{self.name}: gap in migration chain between "
                    f"v{current.to_version} and v{following.from_version}"
                )

    def is_valid(self) -> bool:
        try:
            self.validate()
        except RegistryIntegrityError:
            return False
        return True
