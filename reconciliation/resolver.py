"""
Import or refresh local sessions from VATUSA records.

For every in-scope VATUSA record:
- no session references it: create one (an addition)
- a session references it but its notes differ materially: VATUSA's copy is
  the newer version, overwrite the session (an update)
- otherwise: leave the session alone, cosmetic note differences must not
  cause writes
"""

from enum import Enum
from typing import Any

from reconciliation.matcher import clean_external_notes, notes_similarity
from reconciliation.similarity import SIMILARITY_THRESHOLD
from shared.log import create_logger
from training.models import UNKNOWN_MILESTONE, TrainingSession
from training.store import SessionStore
from vatusa.models import VatusaTrainingRecord

log_trace, log_debug, _, _, _ = create_logger("Resolver")


class ResolveOutcome(Enum):
    ADDED = "added"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


def build_session_fields(record: VatusaTrainingRecord) -> dict[str, Any]:
    """Map a VATUSA record onto the fields of a new local session."""
    return {
        'student_cid': record.student_id,
        'instructor_cid': record.instructor_id,
        'milestone_code': UNKNOWN_MILESTONE,
        'position': record.position,
        'start_time': record.start_time(),
        'end_time': record.end_time(),
        'progress': record.score,
        'duration': record.duration_display(),
        'movements': record.movements or 0,
        'location': record.location,
        'ots': record.ots_status,
        'student_notes': clean_external_notes(record.notes),
        'submitted': True,
        'vatusa_id': record.id,
    }


def apply_record(session: TrainingSession, record: VatusaTrainingRecord) -> None:
    """Overwrite the VATUSA-owned fields of *session* from *record*."""
    session.student_notes = clean_external_notes(record.notes)
    session.progress = record.score
    session.movements = record.movements or 0
    session.location = record.location
    session.position = record.position
    session.start_time = record.start_time()
    session.end_time = record.end_time()
    session.duration = record.duration_display()


class SessionResolver:
    """Resolves VATUSA records into additions and updates of local sessions.

    The store is queried per record so that cross-references written earlier
    in the same run are always observed.

    Args:
        store: Local session store
    """

    def __init__(self, store: SessionStore):
        self.store = store

    def resolve(self, record: VatusaTrainingRecord) -> ResolveOutcome:
        """Add, update or skip the local session for *record*.

        Raises:
            StoreError: Reading or writing the session failed.
        """
        matched = self.store.find_by_vatusa_id(record.id)

        if matched is None:
            self.store.create(build_session_fields(record))
            log_trace(f"Imported VATUSA record {record.id}")
            return ResolveOutcome.ADDED

        similarity = notes_similarity(record, matched.student_notes)
        if similarity >= SIMILARITY_THRESHOLD:
            return ResolveOutcome.UNCHANGED

        log_debug(
            f"VATUSA record {record.id} notes differ from session {matched.id} "
            f"(similarity {similarity:.2f}), updating"
        )
        apply_record(matched, record)
        self.store.save(matched)
        return ResolveOutcome.UPDATED


__all__ = ['ResolveOutcome', 'SessionResolver', 'apply_record', 'build_session_fields']
