"""Service for detecting overlapping study sessions."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from quiet_hours.domain.models import StudySession


def intervals_overlap(
    start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime
) -> bool:
    """Half-open overlap test for ``[start_a, end_a)`` and ``[start_b, end_b)``."""
    return start_a < end_b and start_b < end_a


def find_conflicts(
    new_start: datetime,
    new_end: datetime,
    existing_sessions: Iterable[StudySession],
    exclude_id: str | None = None,
) -> list[StudySession]:
    """Return existing sessions that overlap with the given time range.

    Overlap rule: conflict if new_start < existing.end_time AND existing.start_time < new_end.
    Exact boundary touches (end == start) are NOT considered conflicts.
    Status is not consulted, so cancelled sessions still block the slot.
    The session with id ``exclude_id`` (the one being edited) is ignored.
    """
    return [
        session
        for session in existing_sessions
        if session.id != exclude_id
        and intervals_overlap(new_start, new_end, session.start_time, session.end_time)
    ]
