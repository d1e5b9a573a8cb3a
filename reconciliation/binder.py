"""Persist a discovered VATUSA cross-reference on a local session."""

from training.models import TrainingSession
from training.store import SessionStore
from vatusa.models import VatusaTrainingRecord


class CrossReferenceConflict(Exception):
    """Binding would break the one-session-per-VATUSA-record invariant.

    Raised when a session already references a different VATUSA record, or
    when the VATUSA record is already referenced by another session. Either
    points at bad upstream data or a matcher bug, never at a transient
    persistence failure.
    """

    def __init__(self, message: str, session_id=None, vatusa_id=None):
        super().__init__(message)
        self.session_id = session_id
        self.vatusa_id = vatusa_id


def bind_session(
    store: SessionStore,
    session: TrainingSession,
    record: VatusaTrainingRecord,
) -> bool:
    """
    Cross-reference *session* to *record* and mark it submitted.

    Binding a session already bound to the same record is a no-op. On a
    failed save the in-memory session is restored so it stays unbound.

    Args:
        store: Session store used to check ownership and persist
        session: Local session to bind
        record: Its uniquely matched VATUSA record

    Returns:
        True if the session was written, False if it was already bound.

    Raises:
        CrossReferenceConflict: Session bound elsewhere, or record already owned.
        StoreError: Persisting the session failed.
    """
    if session.vatusa_id == record.id:
        return False

    if session.vatusa_id:
        raise CrossReferenceConflict(
            f"Session {session.id} is bound to VATUSA record {session.vatusa_id}, "
            f"refusing to rebind to {record.id}",
            session_id=session.id,
            vatusa_id=record.id,
        )

    owner = store.find_by_vatusa_id(record.id)
    if owner is not None and owner.id != session.id:
        raise CrossReferenceConflict(
            f"VATUSA record {record.id} is already bound to session {owner.id}, "
            f"refusing to bind session {session.id}",
            session_id=session.id,
            vatusa_id=record.id,
        )

    previous = (session.vatusa_id, session.submitted)
    session.vatusa_id = record.id
    session.submitted = True
    try:
        store.save(session)
    except Exception:
        session.vatusa_id, session.submitted = previous
        raise
    return True


__all__ = ['CrossReferenceConflict', 'bind_session']
