"""Pytest configuration and shared fixtures for quote calculator tests."""

import os
import sys

import pytest


# ============================================================================
# Ensure local imports work (config/, models/, services/, utils/, validators/)
# ============================================================================
#
# The codebase uses absolute imports like `from models...` / `from services...`.
# This guarantees that `calculator/` is importable as the top-level module root.
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


# ============================================================================
# Settings / Stores
# ============================================================================

@pytest.fixture
def settings_factory(tmp_path):
    """Build Settings pointing at temporary sources and state directory."""
    from config.settings import Settings

    def _factory(**overrides):
        params = {
            "machines_source": str(tmp_path / "machines.csv"),
            "job_fields_source": str(tmp_path / "job_fields.csv"),
            "source_timeout_seconds": 1.0,
            "state_dir": str(tmp_path / "state"),
            "storage_version": "test",
            "no_persist": False,
            "currency_symbol": "₱",
            "log_level": "WARNING",
        }
        params.update(overrides)
        return Settings(**params)

    return _factory


@pytest.fixture
def test_settings(settings_factory):
    return settings_factory()


@pytest.fixture
def file_store(test_settings):
    from services.state_store import JsonFileStateStore

    return JsonFileStateStore(test_settings.state_dir, test_settings.storage_key)


@pytest.fixture
def memory_store():
    """In-memory store that records every saved snapshot."""

    class MemoryStateStore:
        enabled = True

        def __init__(self):
            self.snapshot = None
            self.saves = 0

        def load(self):
            return self.snapshot

        def save(self, snapshot):
            self.snapshot = snapshot
            self.saves += 1

    return MemoryStateStore()


# ============================================================================
# Registry / Session
# ============================================================================

@pytest.fixture
def registry():
    """Registry seeded with the built-in placeholders (jobA / mA)."""
    from services.schema_registry import SchemaRegistry

    return SchemaRegistry()


@pytest.fixture
def job_x_registry():
    """Registry whose only job type is jobX (units × rateX)."""
    from services.schema_builder import build_job_types
    from services.schema_registry import SchemaRegistry
    from tests.fixtures.mock_source_rows import JOB_X_ROWS

    return SchemaRegistry(job_types=build_job_types(JOB_X_ROWS))


@pytest.fixture
def session(test_settings, memory_store):
    """Fresh session on placeholders that confirms everything."""
    from services.quote_session import QuoteSession

    return QuoteSession.start(test_settings, memory_store, confirm=lambda message: True)


@pytest.fixture
def declining_session(test_settings, memory_store):
    """Fresh session whose user declines every confirmation."""
    from services.quote_session import QuoteSession

    return QuoteSession.start(test_settings, memory_store, confirm=lambda message: False)


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo configure_logging() so later tests don't write to a closed capture stream."""
    yield
    import structlog

    structlog.reset_defaults()
