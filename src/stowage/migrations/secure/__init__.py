"""Migrations for the encrypted store."""
