"""Test fixtures for stowage unit tests.

This package provides:
- RecordingStore, an in-memory store that records writes and injects failures
- StepMigration, a configurable migration that records its invocations
"""

from .migrations import StepMigration, failing_effect
from .stores import RecordingStore

__all__ = ["RecordingStore", "StepMigration", "failing_effect"]
