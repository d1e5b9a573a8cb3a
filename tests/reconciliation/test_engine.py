"""Tests for TrainingRecordSyncEngine orchestration."""

from collections import Counter
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from reconciliation.engine import SyncResult, TrainingRecordSyncEngine
from training.models import TrainingSession
from training.store import StoreError
from vatusa.exceptions import VatusaConnectionError, VatusaPermanentError


# =============================================================================
# Helpers
# =============================================================================

def make_engine(store, client, facility='ZAU'):
    return TrainingRecordSyncEngine(store, client, facility)


def assert_unique_cross_references(store):
    counts = Counter(s.vatusa_id for s in store.find_all() if s.vatusa_id)
    duplicated = {vid: n for vid, n in counts.items() if n > 1}
    assert duplicated == {}


# =============================================================================
# Short-circuits
# =============================================================================

def test_no_client_skips_without_fetching(store, add_session):
    add_session()

    result = make_engine(store, None).run()

    assert result.skipped_reason == "no_api_key"
    assert result.failed is False
    assert result.summary() == {'synced': 0, 'added': 0, 'updated': 0}


def test_no_local_sessions_skips_before_fetch(store, mock_client, make_record):
    mock_client.fetch_training_records.return_value = [make_record()]

    result = make_engine(store, mock_client).run()

    assert result.skipped_reason == "no_local_sessions"
    mock_client.fetch_training_records.assert_not_awaited()
    assert store.find_all() == []


def test_no_in_scope_records_skips(store, add_session, mock_client, make_record):
    """Records from other facilities never produce work."""
    session = add_session()
    mock_client.fetch_training_records.return_value = [
        make_record(id=1, facility_id='ZMA'),
        make_record(id=2, facility_id='ZOB'),
    ]

    result = make_engine(store, mock_client).run()

    assert result.skipped_reason == "no_external_records"
    assert result.records_in_scope == 0
    assert store.find_all() == [session]


def test_fetch_is_scoped_to_facility(store, add_session, mock_client):
    add_session()

    make_engine(store, mock_client, facility='zau').run()

    mock_client.fetch_training_records.assert_awaited_once_with('ZAU')


# =============================================================================
# Reconciliation
# =============================================================================

def test_unreconciled_session_is_bound_not_duplicated(store, add_session, mock_client, make_record):
    """A session bound in the matching pass is visible to the import pass."""
    session = add_session()
    mock_client.fetch_training_records.return_value = [make_record(id=9001)]

    result = make_engine(store, mock_client).run()

    assert result.synced == 1
    assert result.added == 0
    assert result.updated == 0
    assert result.unchanged == 1
    assert len(store.find_all()) == 1
    bound = store.get(session.id)
    assert bound.vatusa_id == 9001
    assert bound.submitted is True


def test_addition_of_unknown_record(store, add_session, mock_client, make_record):
    """A record nobody references is imported exactly once."""
    add_session(position='MDW_GND')
    mock_client.fetch_training_records.return_value = [make_record(id=42, duration='00:45:30')]

    result = make_engine(store, mock_client).run()

    assert result.added == 1
    imported = [s for s in store.find_all() if s.vatusa_id == 42]
    assert len(imported) == 1
    assert imported[0].submitted is True
    assert imported[0].end_time == imported[0].start_time + timedelta(minutes=45)


def test_update_on_material_note_change(store, add_session, mock_client, make_record):
    session = add_session(vatusa_id=42, submitted=True, student_notes="Old notes from the first draft.")
    record = make_record(
        id=42,
        notes="<p>Final notes: excellent scan, ready for the OTS.</p>",
        score=5,
        movements=20,
        location=2,
        position='ORD_APP',
        session_date='2025-03-05 20:00:00',
        duration='01:00:00',
    )
    mock_client.fetch_training_records.return_value = [record]

    result = make_engine(store, mock_client).run()

    assert result.updated == 1
    updated = store.get(session.id)
    assert updated.student_notes == "Final notes: excellent scan, ready for the OTS."
    assert updated.progress == 5
    assert updated.movements == 20
    assert updated.location == 2
    assert updated.position == 'ORD_APP'
    assert updated.start_time == record.start_time()
    assert updated.end_time == record.start_time() + timedelta(hours=1)


def test_cosmetic_note_change_is_not_written(store, add_session, mock_client, make_record, student_notes):
    session = add_session(vatusa_id=42, submitted=True, student_notes=student_notes + "   ")
    mock_client.fetch_training_records.return_value = [make_record(id=42)]
    store.save = MagicMock(wraps=store.save)

    result = make_engine(store, mock_client).run()

    assert result.updated == 0
    assert result.unchanged == 1
    store.save.assert_not_called()
    assert store.get(session.id) == session


def test_ambiguous_match_stays_unreconciled(store, add_session, mock_client, make_record):
    """Two equally good candidates never bind the session."""
    session = add_session()
    mock_client.fetch_training_records.return_value = [make_record(id=1), make_record(id=2)]

    result = make_engine(store, mock_client).run()

    assert result.synced == 0
    assert result.ambiguous == 1
    assert store.get(session.id).vatusa_id is None
    assert_unique_cross_references(store)


def test_scope_filter_excludes_other_facilities(store, add_session, mock_client, make_record):
    """An identical record from another facility is neither a match nor an import."""
    session = add_session()
    mock_client.fetch_training_records.return_value = [
        make_record(id=1, facility_id='ZMA'),
        make_record(id=2, position='ORD_DEL', student_id=1600000),
    ]

    result = make_engine(store, mock_client).run()

    assert result.records_in_scope == 1
    assert result.synced == 0
    assert result.added == 1
    assert store.get(session.id).vatusa_id is None
    assert store.find_by_vatusa_id(1) is None
    assert store.find_by_vatusa_id(2) is not None


def test_second_run_is_idempotent(store, add_session, mock_client, make_record):
    add_session()
    add_session(vatusa_id=77, submitted=True, student_notes="Needs rework", position='ORD_GND')
    mock_client.fetch_training_records.return_value = [
        make_record(id=9001),
        make_record(id=77, position='ORD_GND', notes="<p>Rewritten notes after review with the TA.</p>"),
        make_record(id=500, student_id=1700000, notes="<p>Imported session</p>"),
        make_record(id=501, student_id=1700001, notes=None, duration='00:20:10'),
    ]
    engine = make_engine(store, mock_client)

    first = engine.run()
    snapshot = store.find_all()
    second = engine.run()

    assert first.summary() == {'synced': 1, 'added': 2, 'updated': 1}
    assert second.summary() == {'synced': 0, 'added': 0, 'updated': 0}
    assert store.find_all() == snapshot
    assert_unique_cross_references(store)


# =============================================================================
# Failures
# =============================================================================

@pytest.mark.parametrize("error", [
    VatusaConnectionError("connection refused"),
    VatusaPermanentError("HTTP 401", status_code=401),
])
def test_fetch_failure_mutates_nothing(store, add_session, mock_client, error):
    add_session()
    add_session(vatusa_id=3, submitted=True)
    before = store.find_all()
    mock_client.fetch_training_records.side_effect = error

    result = make_engine(store, mock_client).run()

    assert result.failed is True
    assert "Failed to fetch VATUSA training records" in result.error
    assert result.summary() == {'synced': 0, 'added': 0, 'updated': 0}
    assert store.find_all() == before


def test_local_load_failure_aborts(mock_client):
    store = MagicMock()
    store.find_all.side_effect = StoreError("no such table")

    result = make_engine(store, mock_client).run()

    assert result.failed is True
    mock_client.fetch_training_records.assert_not_awaited()


def test_per_record_failure_does_not_abort(make_session, make_record, mock_client):
    """A failed import is logged and the run continues with the next record."""
    existing = make_session(position='MDW_GND')
    existing.id = 1
    store = MagicMock()
    store.find_all.return_value = [existing]
    store.find_by_vatusa_id.return_value = None
    store.create.side_effect = [StoreError("disk I/O error"), MagicMock()]
    mock_client.fetch_training_records.return_value = [make_record(id=10), make_record(id=11)]

    result = make_engine(store, mock_client).run()

    assert result.failed is False
    assert result.added == 1
    assert len(result.errors) == 1
    assert "VATUSA record 10" in result.errors[0]
    assert store.create.call_count == 2


def test_bind_failure_does_not_abort(make_session, make_record, mock_client):
    session = make_session()
    session.id = 1
    store = MagicMock()
    store.find_all.return_value = [session]
    store.find_by_vatusa_id.return_value = None
    store.save.side_effect = StoreError("database is locked")
    mock_client.fetch_training_records.return_value = [make_record(id=9001)]

    result = make_engine(store, mock_client).run()

    assert result.synced == 0
    # The matched record waits for the session instead of being imported
    assert result.added == 0
    assert result.deferred == 1
    assert result.conflicts == 0
    assert session.vatusa_id is None
    store.create.assert_not_called()


def test_failed_bind_recovers_on_next_run(store, add_session, mock_client, make_record):
    """A transient save failure leaves the record for the next run, not a duplicate."""
    session = add_session()
    mock_client.fetch_training_records.return_value = [make_record(id=9001)]

    real_save = store.save
    store.save = MagicMock(side_effect=[StoreError("database is locked"), None])
    first = make_engine(store, mock_client).run()

    assert first.deferred == 1
    assert first.added == 0
    assert len(store.find_all()) == 1
    assert store.get(session.id).vatusa_id is None

    store.save = real_save
    second = make_engine(store, mock_client).run()

    assert second.synced == 1
    assert second.conflicts == 0
    assert second.added == 0
    sessions = store.find_all()
    assert len(sessions) == 1
    assert sessions[0].vatusa_id == 9001
    assert_unique_cross_references(store)


def test_conflict_is_reported_distinctly(store, add_session, mock_client, make_record):
    """A record already owned by another session is refused, not rebound."""
    owner = add_session(vatusa_id=9001, submitted=True)
    duplicate = add_session()
    mock_client.fetch_training_records.return_value = [make_record(id=9001)]

    result = make_engine(store, mock_client).run()

    assert result.conflicts == 1
    assert result.synced == 0
    assert "already bound" in result.errors[0]
    assert store.get(duplicate.id).vatusa_id is None
    assert store.get(owner.id).vatusa_id == 9001
    assert_unique_cross_references(store)


def test_sync_result_defaults():
    result = SyncResult()
    assert result.failed is False
    assert result.errors == []
    assert result.summary() == {'synced': 0, 'added': 0, 'updated': 0}


def test_store_calls_run_off_the_event_loop(make_session, mock_client):
    import threading

    main_thread = threading.get_ident()
    seen = []
    store = MagicMock()
    store.find_all.side_effect = lambda: seen.append(threading.get_ident()) or [make_session()]

    make_engine(store, mock_client).run()

    assert seen and seen[0] != main_thread
