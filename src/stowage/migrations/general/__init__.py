"""Migrations for the general-purpose store."""
