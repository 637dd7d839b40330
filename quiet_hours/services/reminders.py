"""Service for selecting sessions due a reminder and dispatching them."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from quiet_hours.boundary.email import NotificationSender
from quiet_hours.boundary.identity import IdentityProvider
from quiet_hours.domain.models import (
    Owner,
    ReminderMessage,
    ScanSummary,
    SessionStatus,
    StudySession,
    UpcomingReport,
    UpcomingSession,
)
from quiet_hours.email_templates import (
    format_duration,
    format_timestamp,
    reminder_subject,
    render_reminder_html,
)
from quiet_hours.errors import IdentityLookupError
from quiet_hours.repos.base import ASCENDING, Store

logger = logging.getLogger(__name__)

DEFAULT_LEAD = timedelta(minutes=10)
DEFAULT_WINDOW = timedelta(minutes=2)


def due_window(
    now: datetime, lead: timedelta = DEFAULT_LEAD, width: timedelta = DEFAULT_WINDOW
) -> tuple[datetime, datetime]:
    """Closed range of start times that are due a reminder at ``now``."""
    return now + lead, now + lead + width


def select_due_sessions(
    store: Store,
    now: datetime,
    lead: timedelta = DEFAULT_LEAD,
    width: timedelta = DEFAULT_WINDOW,
) -> list[StudySession]:
    """Return scheduled, not-yet-notified sessions starting inside the due window.

    Read-only. A session that is never seen inside its window is never
    reminded; there is no catch-up.
    """
    window_start, window_end = due_window(now, lead, width)
    docs = store.find(
        {
            "start_time": {"$gte": window_start, "$lte": window_end},
            "status": SessionStatus.SCHEDULED.value,
            "notification_sent": {"$ne": True},
        },
        sort=[("start_time", ASCENDING)],
    )
    return [StudySession.from_document(doc) for doc in docs]


def build_reminder(session: StudySession, owner: Owner, lead_minutes: int) -> ReminderMessage:
    html = render_reminder_html(
        user_name=owner.display_name,
        session_title=session.title,
        session_description=session.description,
        start_time=format_timestamp(session.start_time),
        end_time=format_timestamp(session.end_time),
        duration=format_duration(session.duration),
        lead_minutes=lead_minutes,
    )
    return ReminderMessage(
        session_id=session.id,
        to=owner.email,
        subject=reminder_subject(session.title, lead_minutes),
        html=html,
    )


def mark_notified(store: Store, session_ids: list[str], now: datetime) -> int:
    """Flag exactly ``session_ids`` as notified in one update. Store errors propagate."""
    return store.update_many(
        {"_id": {"$in": session_ids}},
        {"notification_sent": True, "notification_sent_at": now},
    )


def dispatch_reminders(
    store: Store,
    identity: IdentityProvider,
    sender: NotificationSender,
    now: datetime,
    lead: timedelta = DEFAULT_LEAD,
    width: timedelta = DEFAULT_WINDOW,
) -> ScanSummary:
    """Run one reminder scan: select, resolve owners, send, then flag.

    Every session handed to the sender is flagged, whatever the per-message
    outcome. Sessions whose owner cannot be resolved are skipped and stay
    eligible for the next scan.
    """
    window_start, window_end = due_window(now, lead, width)
    checked_window = f"{window_start.isoformat()} to {window_end.isoformat()}"
    logger.info("Checking for sessions between %s and %s", window_start, window_end)

    due = select_due_sessions(store, now, lead, width)
    logger.info("Found %d sessions to notify", len(due))
    if not due:
        return ScanSummary(
            message="No sessions to notify",
            checked_window=checked_window,
            timestamp=now,
        )

    lead_minutes = int(lead.total_seconds() // 60)
    messages: list[ReminderMessage] = []
    for session in due:
        try:
            owner = identity.get_user(session.owner_id)
        except IdentityLookupError as exc:
            logger.error("Skipping session %s: %s", session.id, exc.message)
            continue
        messages.append(build_reminder(session, owner, lead_minutes))

    logger.info("Prepared %d sessions for email sending", len(messages))
    if not messages:
        return ScanSummary(
            message="No valid sessions to notify (users not found)",
            sessions_found=len(due),
            checked_window=checked_window,
            timestamp=now,
        )

    batch = sender.send_batch(messages)

    session_ids = [m.session_id for m in messages]
    modified = mark_notified(store, session_ids, now)
    logger.info("Updated %d sessions as notified", modified)

    return ScanSummary(
        message="Reminder scan completed",
        sessions_found=len(due),
        sessions_processed=len(messages),
        emails_attempted=batch.total,
        emails_successful=batch.successful,
        emails_failed=batch.failed,
        sessions_updated=len(session_ids),
        checked_window=checked_window,
        timestamp=now,
    )


def list_upcoming(
    store: Store,
    now: datetime,
    lookahead: timedelta,
    limit: int,
    lead: timedelta = DEFAULT_LEAD,
) -> UpcomingReport:
    """Read-only view of scheduled sessions starting within ``lookahead``."""
    docs = store.find(
        {
            "start_time": {"$gte": now, "$lte": now + lookahead},
            "status": SessionStatus.SCHEDULED.value,
        },
        sort=[("start_time", ASCENDING)],
        limit=limit,
    )
    upcoming = []
    for doc in docs:
        session = StudySession.from_document(doc)
        upcoming.append(
            UpcomingSession(
                id=session.id,
                title=session.title,
                start_time=session.start_time,
                notification_sent=session.notification_sent,
                minutes_until_start=round((session.start_time - now).total_seconds() / 60),
                owner_id=session.owner_id,
            )
        )
    return UpcomingReport(
        current_time=now,
        reminder_lead_time=now + lead,
        upcoming_sessions=upcoming,
        total_upcoming=len(upcoming),
    )
