"""
Pytest configuration and shared fixtures.
"""
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from capsule_engine.config import Settings
from capsule_engine.progression import ProgressionEngine
from capsule_engine.srs import ONE_DAY_MS, ReviewScheduler

# 2026-01-05 00:00 UTC
T0 = int(datetime(2026, 1, 5, tzinfo=timezone.utc).timestamp() * 1000)
DAY = ONE_DAY_MS


@pytest.fixture
def engine_settings():
    """Default settings, ignoring any local .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def scheduler(engine_settings):
    return ReviewScheduler(engine_settings)


@pytest.fixture
def engine(engine_settings):
    return ProgressionEngine(engine_settings)
