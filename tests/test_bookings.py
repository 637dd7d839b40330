"""Tests for the booking service against the in-memory store."""

from __future__ import annotations

from datetime import timedelta

import pytest

from conftest import NOW
from quiet_hours.domain.models import SessionRequest, SessionStatus
from quiet_hours.errors import InvalidSessionError, SessionConflictError, SessionNotFoundError
from quiet_hours.services import bookings

_TEN = NOW.replace(hour=10) + timedelta(days=1)


def _request(start, end, title: str = "Deep work", description: str | None = None):
    return SessionRequest(
        title=title, description=description, start_time=start, end_time=end
    )


def _book(store, start, end, owner: str = "alice", **kwargs):
    return bookings.create_session(store, owner, _request(start, end, **kwargs), NOW)


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


def test_create_persists_scheduled_session(store):
    session = _book(store, _TEN, _TEN + timedelta(hours=1), description="  Chapter 3  ")

    stored = store.find_one({"_id": session.id})
    assert stored is not None
    assert stored["owner_id"] == "alice"
    assert stored["status"] == SessionStatus.SCHEDULED.value
    assert stored["notification_sent"] is False
    assert stored["description"] == "Chapter 3"
    assert stored["created_at"] == NOW


@pytest.mark.parametrize("length", [timedelta(0), timedelta(minutes=-30)])
def test_create_rejects_empty_or_inverted_interval(store, length):
    with pytest.raises(InvalidSessionError, match="End time must be after start time"):
        _book(store, _TEN, _TEN + length)
    assert store.count() == 0


def test_create_rejects_past_start(store):
    with pytest.raises(InvalidSessionError, match="in the past"):
        _book(store, NOW - timedelta(seconds=1), NOW + timedelta(hours=1))
    assert store.count() == 0


def test_create_allows_start_exactly_now(store):
    session = _book(store, NOW, NOW + timedelta(minutes=30))
    assert session.start_time == NOW


def test_create_rejects_contained_session(store):
    _book(store, _TEN, _TEN + timedelta(hours=1))

    with pytest.raises(SessionConflictError) as excinfo:
        _book(store, _TEN + timedelta(minutes=30), _TEN + timedelta(minutes=45))
    assert len(excinfo.value.conflicting_ids) == 1
    assert store.count() == 1


def test_create_accepts_touching_sessions(store):
    _book(store, _TEN, _TEN + timedelta(hours=1))

    _book(store, _TEN - timedelta(hours=1), _TEN)
    _book(store, _TEN + timedelta(hours=1), _TEN + timedelta(hours=2))
    assert store.count() == 3


def test_conflicts_are_scoped_per_owner(store):
    _book(store, _TEN, _TEN + timedelta(hours=1), owner="alice")
    _book(store, _TEN, _TEN + timedelta(hours=1), owner="bob")
    assert store.count() == 2


def test_cancelled_session_still_blocks_the_slot(store):
    session = _book(store, _TEN, _TEN + timedelta(hours=1))
    store.update_one({"_id": session.id}, {"status": SessionStatus.CANCELLED.value})

    with pytest.raises(SessionConflictError):
        _book(store, _TEN, _TEN + timedelta(hours=1))


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------


def test_update_with_unchanged_times_does_not_conflict_with_itself(store):
    session = _book(store, _TEN, _TEN + timedelta(hours=1))

    updated = bookings.update_session(
        store,
        "alice",
        session.id,
        _request(session.start_time, session.end_time, title="Renamed"),
        NOW + timedelta(minutes=5),
    )
    assert updated.title == "Renamed"
    assert updated.updated_at == NOW + timedelta(minutes=5)
    assert store.find_one({"_id": session.id})["title"] == "Renamed"


def test_update_rejects_overlap_with_another_session(store):
    first = _book(store, _TEN, _TEN + timedelta(hours=1))
    second = _book(store, _TEN + timedelta(hours=2), _TEN + timedelta(hours=3))

    with pytest.raises(SessionConflictError) as excinfo:
        bookings.update_session(
            store,
            "alice",
            second.id,
            _request(_TEN + timedelta(minutes=30), _TEN + timedelta(hours=2)),
            NOW,
        )
    assert excinfo.value.conflicting_ids == [first.id]
    assert store.find_one({"_id": second.id})["start_time"] == _TEN + timedelta(hours=2)


def test_update_rejects_inverted_interval(store):
    session = _book(store, _TEN, _TEN + timedelta(hours=1))
    with pytest.raises(InvalidSessionError):
        bookings.update_session(store, "alice", session.id, _request(_TEN, _TEN), NOW)


def test_update_keeps_notification_fields(store):
    session = _book(store, _TEN, _TEN + timedelta(hours=1))
    store.update_one(
        {"_id": session.id}, {"notification_sent": True, "notification_sent_at": NOW}
    )

    updated = bookings.update_session(
        store, "alice", session.id, _request(_TEN, _TEN + timedelta(hours=2)), NOW
    )
    assert updated.notification_sent is True
    assert updated.notification_sent_at == NOW


def test_update_of_foreign_session_is_not_found(store):
    session = _book(store, _TEN, _TEN + timedelta(hours=1), owner="alice")
    with pytest.raises(SessionNotFoundError):
        bookings.update_session(
            store, "bob", session.id, _request(_TEN, _TEN + timedelta(hours=2)), NOW
        )
    assert store.find_one({"_id": session.id})["end_time"] == _TEN + timedelta(hours=1)


# ---------------------------------------------------------------------------
# Read / delete
# ---------------------------------------------------------------------------


def test_list_sessions_is_owner_scoped_and_sorted(store):
    later = _book(store, _TEN + timedelta(hours=3), _TEN + timedelta(hours=4))
    earlier = _book(store, _TEN, _TEN + timedelta(hours=1))
    _book(store, _TEN, _TEN + timedelta(hours=1), owner="bob")

    sessions = bookings.list_sessions(store, "alice")
    assert [s.id for s in sessions] == [earlier.id, later.id]


def test_get_foreign_session_is_not_found(store):
    session = _book(store, _TEN, _TEN + timedelta(hours=1), owner="alice")
    assert bookings.get_session(store, "alice", session.id).id == session.id
    with pytest.raises(SessionNotFoundError):
        bookings.get_session(store, "bob", session.id)


def test_delete_foreign_session_is_not_found(store):
    session = _book(store, _TEN, _TEN + timedelta(hours=1), owner="alice")
    with pytest.raises(SessionNotFoundError):
        bookings.delete_session(store, "bob", session.id)
    assert store.count() == 1

    bookings.delete_session(store, "alice", session.id)
    assert store.count() == 0
