"""Pytest configuration and fixtures for log-shipper tests."""

from __future__ import annotations

import pytest

from log_shipper.writer.batch import BufferEntry
from tests.fakes import RecordingStore, make_entry


@pytest.fixture()
def store() -> RecordingStore:
    """Provide a fresh recording store."""
    return RecordingStore()


@pytest.fixture()
def entries() -> list[BufferEntry]:
    """Provide five ordered entries."""
    return [make_entry(n) for n in range(1, 6)]
