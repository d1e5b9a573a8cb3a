"""Local training session records and their SQLite store."""

from training.models import TrainingSession, UNKNOWN_MILESTONE
from training.store import SessionStore, SQLiteSessionStore, StoreError

__all__ = [
    'TrainingSession',
    'UNKNOWN_MILESTONE',
    'SessionStore',
    'SQLiteSessionStore',
    'StoreError',
]
