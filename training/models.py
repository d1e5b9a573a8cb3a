"""Local training session record."""

from dataclasses import dataclass, fields
from datetime import datetime
from typing import Optional

# Milestone placeholder for sessions imported from VATUSA, which has no
# equivalent of the local milestone classification
UNKNOWN_MILESTONE = 'UNKNOWN'


@dataclass
class TrainingSession:
    """A completed training session owned by the facility.

    Attributes:
        student_cid: Student's VATSIM CID
        instructor_cid: Instructor's VATSIM CID
        milestone_code: Training milestone the session counted towards
        start_time: Session start (aware UTC)
        end_time: Session end (aware UTC)
        position: Callsign/position worked, e.g. ORD_TWR
        progress: Instructor's progress score
        duration: Display duration, HH:MM
        movements: Number of movements worked
        location: VATUSA location code (0 classroom, 1 live, 2 sweatbox)
        ots: OTS status code
        student_notes: Notes visible to the student
        ins_notes: Instructor-only notes
        submitted: Session has been submitted to VATUSA
        vatusa_id: VATUSA training record id once reconciled
        id: Store primary key (None until persisted)
    """
    student_cid: int
    instructor_cid: int
    milestone_code: str
    start_time: datetime
    end_time: datetime
    position: Optional[str] = None
    progress: Optional[int] = None
    duration: Optional[str] = None
    movements: Optional[int] = None
    location: Optional[int] = None
    ots: Optional[int] = None
    student_notes: Optional[str] = None
    ins_notes: Optional[str] = None
    submitted: bool = False
    vatusa_id: Optional[int] = None
    id: Optional[int] = None

    @property
    def is_reconciled(self) -> bool:
        """True once the session is cross-referenced to a VATUSA record."""
        return bool(self.vatusa_id)


FIELD_NAMES = tuple(f.name for f in fields(TrainingSession))
