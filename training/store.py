"""
SQLite-backed training session store.

Stateless helpers open a connection per call; the database file is created
on first use. A partial unique index on vatusa_id guarantees that no two
sessions ever reference the same VATUSA record.
"""

import os
import sqlite3
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

from shared.log import create_logger
from training.models import FIELD_NAMES, TrainingSession

log_trace, log_debug, _, _, _ = create_logger("Store")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS training_sessions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    student_cid INTEGER NOT NULL,
    instructor_cid INTEGER NOT NULL,
    milestone_code TEXT NOT NULL,
    position TEXT,
    start_time TEXT NOT NULL,
    end_time TEXT NOT NULL,
    progress INTEGER,
    duration TEXT,
    movements INTEGER,
    location INTEGER,
    ots INTEGER,
    student_notes TEXT,
    ins_notes TEXT,
    submitted INTEGER NOT NULL DEFAULT 0,
    vatusa_id INTEGER
);
CREATE UNIQUE INDEX IF NOT EXISTS idx_training_sessions_vatusa_id
    ON training_sessions (vatusa_id) WHERE vatusa_id IS NOT NULL;
"""

_COLUMNS = [name for name in FIELD_NAMES if name != 'id']


class StoreError(Exception):
    """A training session could not be read or written."""


class SessionStore(Protocol):
    """Operations the sync engine needs from the local record store."""

    def find_all(self) -> list[TrainingSession]: ...

    def find_by_vatusa_id(self, vatusa_id: int) -> Optional[TrainingSession]: ...

    def save(self, session: TrainingSession) -> None: ...

    def create(self, fields: dict[str, Any]) -> TrainingSession: ...


def _to_db_time(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _from_db_time(value: str) -> datetime:
    return datetime.fromisoformat(value).astimezone(timezone.utc)


def _row_to_session(row: sqlite3.Row) -> TrainingSession:
    data = dict(row)
    data['start_time'] = _from_db_time(data['start_time'])
    data['end_time'] = _from_db_time(data['end_time'])
    data['submitted'] = bool(data['submitted'])
    return TrainingSession(**data)


def _session_to_params(session: TrainingSession) -> dict[str, Any]:
    params = {name: getattr(session, name) for name in _COLUMNS}
    params['start_time'] = _to_db_time(session.start_time)
    params['end_time'] = _to_db_time(session.end_time)
    params['submitted'] = int(session.submitted)
    return params


class SQLiteSessionStore:
    """Training session store on a single SQLite file.

    Args:
        db_path: Path to the database file (parent directory is created)
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        parent = os.path.dirname(os.path.abspath(db_path))
        os.makedirs(parent, exist_ok=True)
        conn = self._connect()
        try:
            conn.executescript(_SCHEMA)
            conn.commit()
        finally:
            conn.close()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def find_all(self) -> list[TrainingSession]:
        """Return every training session, oldest first."""
        conn = self._connect()
        try:
            cursor = conn.execute("SELECT * FROM training_sessions ORDER BY id")
            return [_row_to_session(row) for row in cursor]
        except sqlite3.Error as e:
            raise StoreError(f"Failed to read training sessions: {e}") from e
        finally:
            conn.close()

    def find_by_vatusa_id(self, vatusa_id: int) -> Optional[TrainingSession]:
        """Return the session cross-referenced to *vatusa_id*, if any."""
        conn = self._connect()
        try:
            cursor = conn.execute(
                "SELECT * FROM training_sessions WHERE vatusa_id = ?", (vatusa_id,)
            )
            row = cursor.fetchone()
            return _row_to_session(row) if row is not None else None
        except sqlite3.Error as e:
            raise StoreError(f"Failed to look up VATUSA record {vatusa_id}: {e}") from e
        finally:
            conn.close()

    def get(self, session_id: int) -> Optional[TrainingSession]:
        """Return the session with primary key *session_id*, if any."""
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT * FROM training_sessions WHERE id = ?", (session_id,)
            ).fetchone()
            return _row_to_session(row) if row is not None else None
        finally:
            conn.close()

    def save(self, session: TrainingSession) -> None:
        """Write every field of an existing session.

        Raises:
            StoreError: Session was never persisted, no longer exists, or the
                write violates the vatusa_id uniqueness constraint.
        """
        if session.id is None:
            raise StoreError("Cannot save a session that was never created")

        params = _session_to_params(session)
        params['id'] = session.id
        assignments = ", ".join(f"{name} = :{name}" for name in _COLUMNS)

        conn = self._connect()
        try:
            cursor = conn.execute(
                f"UPDATE training_sessions SET {assignments} WHERE id = :id", params
            )
            if cursor.rowcount == 0:
                raise StoreError(f"Training session {session.id} does not exist")
            conn.commit()
            log_trace(f"Saved training session {session.id}")
        except sqlite3.Error as e:
            raise StoreError(f"Failed to save training session {session.id}: {e}") from e
        finally:
            conn.close()

    def create(self, fields: dict[str, Any]) -> TrainingSession:
        """Insert a new session built from *fields* and return it with its id.

        Raises:
            StoreError: Fields are incomplete or the insert violates a constraint.
        """
        try:
            session = TrainingSession(**fields)
        except TypeError as e:
            raise StoreError(f"Invalid training session fields: {e}") from e

        params = _session_to_params(session)
        columns = ", ".join(_COLUMNS)
        placeholders = ", ".join(f":{name}" for name in _COLUMNS)

        conn = self._connect()
        try:
            cursor = conn.execute(
                f"INSERT INTO training_sessions ({columns}) VALUES ({placeholders})", params
            )
            conn.commit()
            session.id = cursor.lastrowid
            log_debug(f"Created training session {session.id} (vatusa_id={session.vatusa_id})")
            return session
        except sqlite3.Error as e:
            raise StoreError(f"Failed to create training session: {e}") from e
        finally:
            conn.close()


__all__ = ['SessionStore', 'SQLiteSessionStore', 'StoreError']
