"""Stowage - Entry Point

Usage:
    python -m stowage [--config PATH] [--log-level LEVEL] [--json-logs] COMMAND

Commands:
    migrate   - Bring stores up to the current schema version (default)
    status    - Show stored/target version and pending migrations
    validate  - Check both migration registries for gaps and overlaps
    keygen    - Print a new key for the secure store
    version   - Show version

Examples:
    python -m stowage migrate
    python -m stowage migrate --domain secure
    python -m stowage --config config/stowage.toml status
    python -m stowage validate
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

import structlog

from stowage import __version__
from stowage.core.errors import RegistryIntegrityError, StowageError


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="stowage",
        description="Schema migrations for local key-value stores",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"stowage {__version__}",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (TOML)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Log level",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        default=None,
        help="Emit JSON log lines",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    migrate_parser = subparsers.add_parser("migrate", help="Run pending migrations")
    migrate_parser.add_argument(
        "--domain",
        choices=["general", "secure"],
        default=None,
        help="Migrate only this storage domain",
    )

    subparsers.add_parser("status", help="Show migration status")
    subparsers.add_parser("validate", help="Validate migration registries")
    subparsers.add_parser("keygen", help="Generate a secure store key")
    subparsers.add_parser("version", help="Show version")

    return parser.parse_args(argv)


def find_config_file(specified: Optional[Path]) -> Optional[Path]:
    """Find configuration file."""
    if specified:
        return specified

    search_paths = [
        Path("config/stowage.toml"),
        Path("stowage.toml"),
    ]

    for path in search_paths:
        if path.exists():
            return path

    return None


def cmd_validate() -> int:
    """Validate bundled registries without touching any store."""
    from stowage.migrations import general_migrations, secure_migrations

    exit_code = 0
    for registry in (general_migrations(), secure_migrations()):
        try:
            registry.validate()
        except RegistryIntegrityError as e:
            print(f"{registry.name}: INVALID - {e}")
            exit_code = 1
            continue

        print(f"{registry.name}: OK (v{registry.base_version} -> v{registry.latest_version})")
        for migration in registry:
            print(f"  {migration.id}  {migration.description}")

    return exit_code


def cmd_keygen() -> int:
    from stowage.storage.secure import generate_key

    print(generate_key())
    return 0


async def cmd_migrate(args: argparse.Namespace, config_path: Optional[Path]) -> int:
    """Run migrations and print a per-domain summary."""
    from stowage.app import StowageApp
    from stowage.migration.service import StorageDomain

    async with StowageApp(config_path, configure_logging=False) as app:
        if args.domain:
            domain = StorageDomain(args.domain)
            results = {domain: await app.migrate_domain(domain)}
        else:
            results = (await app.migrate_all()).results

    failed = False
    for domain, result in results.items():
        if result.success:
            print(
                f"{domain.value}: v{result.start_version} -> v{result.end_version} "
                f"({result.applied_count} applied)"
            )
        else:
            failed = True
            where = f" at {result.failed_migration}" if result.failed_migration else ""
            print(f"{domain.value}: FAILED{where} (stored version v{result.end_version})")
            print(f"  {result.error}")

    return 1 if failed else 0


async def cmd_status(config_path: Optional[Path]) -> int:
    """Print stored/target version per domain."""
    from stowage.app import StowageApp

    async with StowageApp(config_path, configure_logging=False) as app:
        statuses = await app.status()

    behind = False
    for domain, status in statuses.items():
        if status.error is not None:
            behind = True
            print(f"{domain.value}: ERROR {status.error}")
            continue

        state = "up to date" if status.up_to_date else "behind"
        print(f"{domain.value}: v{status.stored_version} / v{status.target_version} ({state})")
        for migration_id in status.pending:
            print(f"  pending: {migration_id}")
        behind = behind or not status.up_to_date

    return 1 if behind else 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    command = args.command or "migrate"

    if command == "version":
        print(f"stowage {__version__}")
        return 0
    if command == "validate":
        return cmd_validate()
    if command == "keygen":
        return cmd_keygen()

    from stowage.core.config import ConfigManager
    from stowage.core.logging import setup_logging

    config_path = find_config_file(args.config)
    config = ConfigManager(config_path)
    setup_logging(
        level=args.log_level or config.get("logging.level", "INFO"),
        json_output=(
            args.json_logs if args.json_logs is not None else config.get_bool("logging.json")
        ),
        log_file=config.get("logging.file"),
    )
    log = structlog.get_logger("stowage.cli")

    try:
        if command == "status":
            return asyncio.run(cmd_status(config_path))
        if not hasattr(args, "domain"):
            args.domain = None
        return asyncio.run(cmd_migrate(args, config_path))
    except StowageError as e:
        log.error("stowage_command_failed", command=command, error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
