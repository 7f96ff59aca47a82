"""Test helpers shared across the test suite."""

from tests.helpers.fakes import (
    BASE_TIME,
    ONLINE,
    FakeNetworkSource,
    FakeTransport,
    RecordingObserver,
    make_record,
)

__all__ = [
    "BASE_TIME",
    "ONLINE",
    "FakeNetworkSource",
    "FakeTransport",
    "RecordingObserver",
    "make_record",
]
