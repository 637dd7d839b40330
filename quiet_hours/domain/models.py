"""Domain models for the study-session booking service."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500


class SessionStatus(StrEnum):
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def as_utc(value: datetime) -> datetime:
    """Normalise a timestamp to an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def derive_status(start_time: datetime, end_time: datetime, now: datetime) -> SessionStatus:
    """Project the display status of a session from the clock.

    The stored ``status`` field is never consulted here.
    """
    if now < start_time:
        return SessionStatus.SCHEDULED
    if now < end_time:
        return SessionStatus.ACTIVE
    return SessionStatus.COMPLETED


# ---------------------------------------------------------------------------
# Core domain models
# ---------------------------------------------------------------------------


class StudySession(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=_new_id)
    owner_id: str
    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str = Field(default="", max_length=DESCRIPTION_MAX_LENGTH)
    start_time: datetime
    end_time: datetime
    status: SessionStatus = SessionStatus.SCHEDULED
    notification_sent: bool = False
    notification_sent_at: datetime | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator(
        "start_time", "end_time", "created_at", "updated_at", "notification_sent_at"
    )
    @classmethod
    def _normalise_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value is not None else None

    @model_validator(mode="after")
    def _end_after_start(self) -> StudySession:
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    @property
    def duration(self) -> timedelta:
        return self.end_time - self.start_time

    def to_document(self) -> dict[str, Any]:
        """Serialise to the stored document shape (``id`` becomes ``_id``)."""
        doc = self.model_dump(mode="python")
        doc["_id"] = doc.pop("id")
        doc["status"] = self.status.value
        return doc

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> StudySession:
        data = dict(doc)
        data["id"] = str(data.pop("_id"))
        if data.get("description") is None:
            data["description"] = ""
        return cls.model_validate(data)


class Owner(BaseModel):
    """Identity-provider view of a session owner."""

    user_id: str
    email: str
    confirmed: bool = False

    @property
    def display_name(self) -> str:
        return self.email.split("@", 1)[0]


class ReminderMessage(BaseModel):
    session_id: str
    to: str
    subject: str
    html: str


class DeliveryResult(BaseModel):
    session_id: str
    success: bool
    message_id: str | None = None
    error: str | None = None


class BatchResult(BaseModel):
    results: list[DeliveryResult] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return self.total - self.successful


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class SessionRequest(BaseModel):
    """Body of a create or update call. Ordering rules are checked by the booking service."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    start_time: datetime
    end_time: datetime


class StudySessionView(BaseModel):
    id: str
    title: str
    description: str
    start_time: datetime
    end_time: datetime
    status: SessionStatus
    duration_minutes: int
    notification_sent: bool
    notification_sent_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_session(cls, session: StudySession, now: datetime) -> StudySessionView:
        return cls(
            id=session.id,
            title=session.title,
            description=session.description,
            start_time=session.start_time,
            end_time=session.end_time,
            status=derive_status(session.start_time, session.end_time, now),
            duration_minutes=int(session.duration.total_seconds() // 60),
            notification_sent=session.notification_sent,
            notification_sent_at=session.notification_sent_at,
            created_at=session.created_at,
            updated_at=session.updated_at,
        )


class ScanSummary(BaseModel):
    """Structured result of one reminder scan, returned to the scheduler."""

    success: bool = True
    message: str
    sessions_found: int = 0
    sessions_processed: int = 0
    emails_attempted: int = 0
    emails_successful: int = 0
    emails_failed: int = 0
    sessions_updated: int = 0
    checked_window: str
    timestamp: datetime


class UpcomingSession(BaseModel):
    id: str
    title: str
    start_time: datetime
    notification_sent: bool
    minutes_until_start: int
    owner_id: str


class UpcomingReport(BaseModel):
    current_time: datetime
    reminder_lead_time: datetime
    upcoming_sessions: list[UpcomingSession] = Field(default_factory=list)
    total_upcoming: int = 0
