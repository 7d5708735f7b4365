"""Shared test fixtures."""
import os
import sys
import pytest
import tempfile

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models.database import Database
from models.metrics import MetricSample
from config.runtime import RuntimeConfig
from utils.constants import MINUTE_MS

# 2024-03-01 12:00:00 UTC
BASE_TS = 1_709_294_400_000


class FakeClock:
    """Controllable epoch-ms clock."""

    def __init__(self, start=BASE_TS):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms
        return self.now


class RecordingChannel:
    """AlertChannel that remembers every send."""

    def __init__(self, ok=True):
        self.ok = ok
        self.sent = []

    def send(self, text, actions=None):
        self.sent.append((text, actions))
        return self.ok


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    db = Database(db_path)
    db.connect()
    yield db
    db.close()
    for suffix in ("", "-wal", "-shm"):
        if os.path.exists(db_path + suffix):
            os.unlink(db_path + suffix)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def runtime(temp_db):
    return RuntimeConfig(temp_db)


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def make_sample():
    """Build a MetricSample at BASE_TS + minute * 60s."""
    def _make(minute=0, **fields):
        return MetricSample(timestamp=BASE_TS + minute * MINUTE_MS, **fields)
    return _make
