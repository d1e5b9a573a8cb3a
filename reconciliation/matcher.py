"""
Fuzzy matching of local training sessions against VATUSA records.

A local session created on the website never learns its VATUSA record id, so
the link has to be inferred. A VATUSA record is a candidate for a session
when all identity fields agree exactly:

1. instructor and student CIDs (field for field, not as a set)
2. position
3. location
4. start time, to the second, with VATUSA's session_date read as UTC

and the session's student notes are at least 90% similar to the cleaned
VATUSA notes. Exactly one candidate is a match; zero or several leave the
session for a later run.
"""

from enum import Enum
from typing import Optional

from reconciliation.similarity import SIMILARITY_THRESHOLD, dice_similarity
from training.models import TrainingSession
from vatusa.models import VatusaTrainingRecord

# Applied in order; VATUSA stores notes as HTML fragments
_NOTE_REPLACEMENTS = (
    ('<p>', ''),
    ('</p>', ''),
    ('\\n', ''),
    ('&amp;', '-'),
    ('&apos;', "'"),
    ('&gt;', '>'),
    ('&lt;', '<'),
    ('<br>', ''),
    ('<li>', '- '),
    ('</li>', ''),
)


def clean_external_notes(notes: Optional[str]) -> str:
    """Convert VATUSA's HTML notes to the plain text stored locally."""
    text = notes or ''
    for old, new in _NOTE_REPLACEMENTS:
        text = text.replace(old, new)
    return text


def comparable_notes(text: Optional[str]) -> str:
    """Notes with newlines removed and outer whitespace trimmed."""
    return (text or '').replace('\n', '').strip()


def notes_similarity(record: VatusaTrainingRecord, session_notes: Optional[str]) -> float:
    """Similarity between a VATUSA record's notes and a session's notes."""
    return dice_similarity(
        comparable_notes(clean_external_notes(record.notes)),
        comparable_notes(session_notes),
    )


class MatchConfidence(Enum):
    NONE = "none"   # No candidate
    HIGH = "high"   # Single unique candidate - safe to bind
    LOW = "low"     # Multiple candidates - ambiguous, never auto-resolved


def is_candidate(session: TrainingSession, record: VatusaTrainingRecord) -> bool:
    """Return True if *record* could be the VATUSA copy of *session*."""
    if record.instructor_id != session.instructor_cid:
        return False
    if record.student_id != session.student_cid:
        return False
    if record.position != session.position:
        return False
    if record.location != session.location:
        return False
    if record.start_time().replace(microsecond=0) != session.start_time.replace(microsecond=0):
        return False

    # Sessions without notes cannot be told apart from each other
    if not comparable_notes(session.student_notes):
        return False

    return notes_similarity(record, session.student_notes) >= SIMILARITY_THRESHOLD


def find_match_with_confidence(
    session: TrainingSession,
    records: list[VatusaTrainingRecord],
) -> tuple[MatchConfidence, Optional[VatusaTrainingRecord], list[VatusaTrainingRecord]]:
    """
    Find the VATUSA record for a session, with confidence scoring.

    Args:
        session: Local session without a VATUSA id
        records: In-scope VATUSA records

    Returns:
        Tuple of (confidence, record, candidates):
        - NONE: (NONE, None, [])
        - HIGH: (HIGH, record, [record])
        - LOW:  (LOW, None, candidates)
    """
    candidates = [record for record in records if is_candidate(session, record)]

    if not candidates:
        return MatchConfidence.NONE, None, []
    if len(candidates) == 1:
        return MatchConfidence.HIGH, candidates[0], candidates
    return MatchConfidence.LOW, None, candidates


def find_unique_match(
    session: TrainingSession,
    records: list[VatusaTrainingRecord],
) -> Optional[VatusaTrainingRecord]:
    """Return the single matching VATUSA record, or None if zero or ambiguous."""
    _, record, _ = find_match_with_confidence(session, records)
    return record


__all__ = [
    'MatchConfidence',
    'clean_external_notes',
    'comparable_notes',
    'notes_similarity',
    'is_candidate',
    'find_match_with_confidence',
    'find_unique_match',
]
