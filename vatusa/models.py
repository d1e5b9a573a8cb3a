"""
Typed models for VATUSA API payloads.

The training records endpoint returns more fields than the sync needs; only
the fields the reconciler reads are modelled, everything else is ignored.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

_DURATION_RE = re.compile(r'^(\d{1,3}):([0-5]\d):([0-5]\d)$')


class VatusaTrainingRecord(BaseModel):
    """
    A training record as published by VATUSA.

    ``session_date`` is sent without an offset but is UTC; use
    :meth:`start_time` rather than parsing it directly.
    """

    model_config = ConfigDict(extra='ignore', frozen=True)

    id: int
    student_id: int
    instructor_id: int
    session_date: str
    facility_id: str
    position: str
    duration: str  # HH:MM:SS
    movements: Optional[int] = None
    score: int = 0
    notes: str = ""
    location: int
    ots_status: Optional[int] = None

    @field_validator('notes', mode='before')
    @classmethod
    def validate_notes(cls, v):
        """Null notes are treated as empty text."""
        return "" if v is None else v

    @field_validator('duration', mode='after')
    @classmethod
    def validate_duration(cls, v: str) -> str:
        """Duration must be HH:MM:SS."""
        if not _DURATION_RE.match(v):
            raise ValueError(f"duration must be HH:MM:SS, got: {v!r}")
        return v

    @field_validator('session_date', mode='after')
    @classmethod
    def validate_session_date(cls, v: str) -> str:
        """session_date must parse as an ISO-8601 date and time."""
        try:
            datetime.fromisoformat(v)
        except ValueError as e:
            raise ValueError(f"session_date is not a valid timestamp: {v!r}") from e
        return v

    def start_time(self) -> datetime:
        """Session start as an aware UTC datetime."""
        parsed = datetime.fromisoformat(self.session_date)
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)

    def duration_offset(self) -> timedelta:
        """Duration as a timedelta; the seconds field does not count."""
        hours, minutes, _ = (int(part) for part in self.duration.split(":"))
        return timedelta(hours=hours, minutes=minutes)

    def end_time(self) -> datetime:
        """Session end: start plus the hours and minutes of the duration."""
        return self.start_time() + self.duration_offset()

    def duration_display(self) -> str:
        """Duration trimmed to HH:MM for storage."""
        return self.duration[:-3]


class VatusaTrainingRecordsResponse(BaseModel):
    """Envelope returned by ``/facility/{facility}/training/records``."""

    model_config = ConfigDict(extra='ignore')

    data: list[dict] = []
    testing: bool = False


__all__ = ['VatusaTrainingRecord', 'VatusaTrainingRecordsResponse']
