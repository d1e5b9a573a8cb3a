"""
Shared pytest fixtures for the training record sync tests.

Provides reusable fixtures for:
- Local training sessions (factory + SQLite store in a temp dir)
- VATUSA training records (factory + mocked async client)
- Configuration dictionaries

The VATUSA client is mocked with AsyncMock so no network access happens
outside the respx-based client tests.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from training.models import TrainingSession
from training.store import SQLiteSessionStore
from vatusa.models import VatusaTrainingRecord


SESSION_START = datetime(2025, 3, 1, 18, 0, 0, tzinfo=timezone.utc)
SESSION_END = datetime(2025, 3, 1, 19, 30, 0, tzinfo=timezone.utc)

STUDENT_NOTES = (
    "Student worked ORD_TWR during a moderate push. Good scanning, "
    "needs to tighten up departure release coordination with C90."
)


# =============================================================================
# Local Session Fixtures
# =============================================================================

@pytest.fixture
def make_session():
    """
    Factory for TrainingSession objects with sensible defaults.

    Usage:
        def test_something(make_session):
            session = make_session(student_notes="Other notes", vatusa_id=7)
    """
    def _make(**overrides):
        fields = {
            'student_cid': 1500001,
            'instructor_cid': 1400002,
            'milestone_code': 'ORD-TWR-1',
            'position': 'ORD_TWR',
            'start_time': SESSION_START,
            'end_time': SESSION_END,
            'progress': 3,
            'duration': '01:30',
            'movements': 12,
            'location': 1,
            'student_notes': STUDENT_NOTES,
            'submitted': False,
            'vatusa_id': None,
        }
        fields.update(overrides)
        return TrainingSession(**fields)

    return _make


@pytest.fixture
def store(tmp_path):
    """SQLiteSessionStore backed by a temporary database file."""
    return SQLiteSessionStore(str(tmp_path / 'training.db'))


@pytest.fixture
def add_session(store, make_session):
    """
    Persist a session built by make_session and return it with its id.

    Usage:
        def test_something(add_session):
            session = add_session(vatusa_id=42)
    """
    def _add(**overrides):
        session = make_session(**overrides)
        fields = {k: v for k, v in vars(session).items() if k != 'id'}
        return store.create(fields)

    return _add


# =============================================================================
# VATUSA Fixtures
# =============================================================================

@pytest.fixture
def make_record():
    """
    Factory for VatusaTrainingRecord objects matching make_session's defaults.

    Usage:
        def test_something(make_record):
            record = make_record(id=42, notes="<p>Different</p>")
    """
    def _make(**overrides):
        data = {
            'id': 9001,
            'student_id': 1500001,
            'instructor_id': 1400002,
            'session_date': '2025-03-01 18:00:00',
            'facility_id': 'ZAU',
            'position': 'ORD_TWR',
            'duration': '01:30:00',
            'movements': 12,
            'score': 3,
            'notes': f"<p>{STUDENT_NOTES}</p>",
            'location': 1,
            'ots_status': 0,
        }
        data.update(overrides)
        return VatusaTrainingRecord(**data)

    return _make


@pytest.fixture
def mock_client():
    """
    Mock VatusaClient whose fetch_training_records returns an empty list.

    Usage:
        def test_fetch(mock_client, make_record):
            mock_client.fetch_training_records.return_value = [make_record()]
    """
    client = MagicMock()
    client.fetch_training_records = AsyncMock(return_value=[])
    return client


# =============================================================================
# Configuration Fixtures
# =============================================================================

@pytest.fixture
def valid_config_dict(tmp_path):
    """Dictionary with valid configuration values for TrainingSyncConfig."""
    return {
        'vatusa_api_key': 'vatusa-key-abc123xyz',
        'facility_id': 'ZAU',
        'database_path': str(tmp_path / 'training.db'),
        'data_dir': str(tmp_path / 'data'),
        'max_retries': 2,
        'retry_base_delay': 0.0,
    }


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep VZAU_* variables from the developer's shell out of the tests."""
    import os
    for name in list(os.environ):
        if name.startswith('VZAU_'):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def student_notes():
    """Plain-text notes shared by make_session and (HTML-wrapped) make_record."""
    return STUDENT_NOTES
