"""Booking service: create, read, update and delete study sessions for an owner."""

from __future__ import annotations

import logging
from datetime import datetime

from quiet_hours.domain.models import SessionRequest, StudySession, as_utc
from quiet_hours.errors import InvalidSessionError, SessionConflictError, SessionNotFoundError
from quiet_hours.repos.base import ASCENDING, Store
from quiet_hours.services.conflicts import find_conflicts

logger = logging.getLogger(__name__)


def _validated_interval(request: SessionRequest) -> tuple[datetime, datetime]:
    start = as_utc(request.start_time)
    end = as_utc(request.end_time)
    if start >= end:
        raise InvalidSessionError("End time must be after start time")
    return start, end


def _ensure_slot_free(
    store: Store,
    owner_id: str,
    start: datetime,
    end: datetime,
    exclude_id: str | None = None,
) -> None:
    """Raise SessionConflictError if ``[start, end)`` overlaps another session of the owner."""
    query: dict = {"owner_id": owner_id, "start_time": {"$lt": end}}
    if exclude_id is not None:
        query["_id"] = {"$ne": exclude_id}
    candidates = [StudySession.from_document(doc) for doc in store.find(query)]
    conflicts = find_conflicts(start, end, candidates, exclude_id=exclude_id)
    if conflicts:
        logger.info(
            "Rejected booking for owner %s: overlaps %s",
            owner_id,
            [c.id for c in conflicts],
        )
        raise SessionConflictError(c.id for c in conflicts)


def list_sessions(store: Store, owner_id: str) -> list[StudySession]:
    """Return every session of the owner, earliest first."""
    docs = store.find({"owner_id": owner_id}, sort=[("start_time", ASCENDING)])
    return [StudySession.from_document(doc) for doc in docs]


def get_session(store: Store, owner_id: str, session_id: str) -> StudySession:
    doc = store.find_one({"_id": session_id, "owner_id": owner_id})
    if doc is None:
        raise SessionNotFoundError(session_id)
    return StudySession.from_document(doc)


def create_session(
    store: Store, owner_id: str, request: SessionRequest, now: datetime
) -> StudySession:
    """Book a new session after the ordering, past-start and overlap checks.

    The overlap check and the insert run as one exclusive unit per owner.
    """
    start, end = _validated_interval(request)
    if start < now:
        raise InvalidSessionError("Cannot schedule sessions in the past")

    session = StudySession(
        owner_id=owner_id,
        title=request.title,
        description=request.description or "",
        start_time=start,
        end_time=end,
        created_at=now,
        updated_at=now,
    )

    def _book(tx: Store) -> StudySession:
        _ensure_slot_free(tx, owner_id, start, end)
        tx.insert_one(session.to_document())
        return session

    created = store.run_exclusive(owner_id, _book)
    logger.info("Created study session %s for owner %s", created.id, owner_id)
    return created


def update_session(
    store: Store,
    owner_id: str,
    session_id: str,
    request: SessionRequest,
    now: datetime,
) -> StudySession:
    """Replace title, description and times of an owned session.

    The session itself is excluded from the overlap check. Notification
    fields are left untouched.
    """
    start, end = _validated_interval(request)
    owned = {"_id": session_id, "owner_id": owner_id}

    def _reschedule(tx: Store) -> StudySession:
        doc = tx.find_one(owned)
        if doc is None:
            raise SessionNotFoundError(session_id)
        _ensure_slot_free(tx, owner_id, start, end, exclude_id=session_id)
        values = {
            "title": request.title,
            "description": request.description or "",
            "start_time": start,
            "end_time": end,
            "updated_at": now,
        }
        if tx.update_one(owned, values) == 0:
            raise SessionNotFoundError(session_id)
        return StudySession.from_document({**doc, **values})

    updated = store.run_exclusive(owner_id, _reschedule)
    logger.info("Updated study session %s for owner %s", session_id, owner_id)
    return updated


def delete_session(store: Store, owner_id: str, session_id: str) -> None:
    if store.delete_one({"_id": session_id, "owner_id": owner_id}) == 0:
        raise SessionNotFoundError(session_id)
    logger.info("Deleted study session %s for owner %s", session_id, owner_id)
