"""Explicitly constructed service handles shared by the request handlers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable

from quiet_hours.boundary.email import NotificationSender, ResendSender
from quiet_hours.boundary.identity import IdentityProvider, SupabaseIdentity
from quiet_hours.config import Settings
from quiet_hours.domain.models import as_utc
from quiet_hours.repos.base import Store
from quiet_hours.repos.mongo import MongoStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Services:
    settings: Settings
    store: Store
    identity: IdentityProvider
    sender: NotificationSender
    clock: Callable[[], datetime] = field(default=_utcnow)

    def now(self) -> datetime:
        return as_utc(self.clock())

    @property
    def reminder_lead(self) -> timedelta:
        return timedelta(minutes=self.settings.REMINDER_LEAD_MINUTES)

    @property
    def reminder_window(self) -> timedelta:
        return timedelta(minutes=self.settings.REMINDER_WINDOW_MINUTES)

    @property
    def upcoming_lookahead(self) -> timedelta:
        return timedelta(minutes=self.settings.UPCOMING_LOOKAHEAD_MINUTES)

    def close(self) -> None:
        self.identity.close()
        self.store.close()


def build_services(settings: Settings) -> Services:
    """Open the production collaborators: MongoDB, Supabase Auth and Resend."""
    store = MongoStore(
        settings.MONGODB_URI, settings.MONGODB_DB, settings.MONGODB_COLLECTION
    )
    store.ensure_indexes()
    logger.info("✅ Connected to MongoDB database %s", settings.MONGODB_DB)

    identity = SupabaseIdentity(
        url=settings.SUPABASE_URL,
        service_role_key=settings.SUPABASE_SERVICE_ROLE_KEY,
        jwt_secret=settings.SUPABASE_JWT_SECRET,
        audience=settings.SUPABASE_JWT_AUDIENCE,
        timeout=settings.IDENTITY_TIMEOUT_SECONDS,
    )
    sender = ResendSender(settings.RESEND_API_KEY, settings.EMAIL_FROM_ADDRESS)
    return Services(settings=settings, store=store, identity=identity, sender=sender)
