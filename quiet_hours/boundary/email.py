"""Reminder delivery through the Resend transactional email API."""

from __future__ import annotations

import logging
from typing import Protocol

import resend

from quiet_hours.domain.models import BatchResult, DeliveryResult, ReminderMessage
from quiet_hours.errors import NotificationError

logger = logging.getLogger(__name__)


class NotificationSender(Protocol):
    def send_batch(self, messages: list[ReminderMessage]) -> BatchResult:
        """Send every message, reporting per-message outcome.

        Any failure of an individual message is reported, not raised. Only a
        sender that cannot start (no API key) raises NotificationError.
        """
        ...


class ResendSender:
    def __init__(self, api_key: str, from_address: str) -> None:
        self.api_key = api_key
        self.from_address = from_address

    def send_batch(self, messages: list[ReminderMessage]) -> BatchResult:
        if not self.api_key:
            logger.error("❌ No email service configured - RESEND_API_KEY missing")
            raise NotificationError("Email service is not configured")

        resend.api_key = self.api_key
        results: list[DeliveryResult] = []
        for message in messages:
            params: resend.Emails.SendParams = {
                "from": self.from_address,
                "to": [message.to],
                "subject": message.subject,
                "html": message.html,
            }
            # Earlier messages may already be delivered, so a failure here is
            # recorded against this message only.
            try:
                response = resend.Emails.send(params)
            except Exception as exc:
                logger.error("❌ Email send error to %s: %s", message.to, exc)
                results.append(
                    DeliveryResult(session_id=message.session_id, success=False, error=str(exc))
                )
                continue

            logger.info("✅ Reminder for session %s sent to %s", message.session_id, message.to)
            results.append(
                DeliveryResult(
                    session_id=message.session_id,
                    success=True,
                    message_id=response.get("id"),
                )
            )

        batch = BatchResult(results=results)
        logger.info(
            "Bulk email results: %d successful, %d failed out of %d total",
            batch.successful,
            batch.failed,
            batch.total,
        )
        return batch
