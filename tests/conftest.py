"""Shared fakes: identity provider, email sender and a controllable clock."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from quiet_hours.config import Settings
from quiet_hours.container import Services
from quiet_hours.domain.models import BatchResult, DeliveryResult, Owner, ReminderMessage
from quiet_hours.errors import AuthenticationError, IdentityLookupError, NotificationError
from quiet_hours.repos.memory import MemoryStore

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)
CRON_SECRET = "test-cron-secret"


class FakeIdentity:
    """Tokens map to user ids; users map to owners. Unknown users fail lookup."""

    def __init__(self) -> None:
        self.tokens: dict[str, str] = {}
        self.users: dict[str, Owner] = {}
        self.closed = False

    def add_user(self, user_id: str, email: str, token: str | None = None) -> None:
        self.users[user_id] = Owner(user_id=user_id, email=email, confirmed=True)
        if token:
            self.tokens[token] = user_id

    def authenticate(self, token: str) -> str:
        try:
            return self.tokens[token]
        except KeyError:
            raise AuthenticationError("Invalid or expired token") from None

    def get_user(self, user_id: str) -> Owner:
        try:
            return self.users[user_id]
        except KeyError:
            raise IdentityLookupError(user_id, "User not found") from None

    def close(self) -> None:
        self.closed = True


class RecordingSender:
    """Records every batch; addresses in ``failing`` are reported as rejected."""

    def __init__(self) -> None:
        self.batches: list[list[ReminderMessage]] = []
        self.failing: set[str] = set()
        self.unreachable = False

    @property
    def sent(self) -> list[ReminderMessage]:
        return [m for batch in self.batches for m in batch]

    def send_batch(self, messages: list[ReminderMessage]) -> BatchResult:
        if self.unreachable:
            raise NotificationError("Email API unreachable")
        self.batches.append(list(messages))
        return BatchResult(
            results=[
                DeliveryResult(
                    session_id=m.session_id,
                    success=m.to not in self.failing,
                    error="rejected" if m.to in self.failing else None,
                )
                for m in messages
            ]
        )


class Clock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture()
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def identity() -> FakeIdentity:
    fake = FakeIdentity()
    fake.add_user("alice", "alice@example.com", token="alice-token")
    fake.add_user("bob", "bob@example.com", token="bob-token")
    return fake


@pytest.fixture()
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture()
def clock() -> Clock:
    return Clock()


@pytest.fixture()
def services(store, identity, sender, clock) -> Services:
    settings = Settings(CRON_SECRET=CRON_SECRET, _env_file=None)
    return Services(
        settings=settings, store=store, identity=identity, sender=sender, clock=clock
    )
