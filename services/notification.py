"""
Notification Service
Deliver reminder notifications over web push and email

The dispatcher makes exactly one delivery attempt per recipient per call.
A failure for one recipient is logged and never stops the rest of the
cohort; nothing is retried.
"""

import asyncio
import json
import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import List, Optional, Sequence

from pywebpush import webpush

from monitoring.metrics import record_dispatch
from services.recipient_service import Recipient

logger = logging.getLogger(__name__)


class DispatchFailure(Exception):
    """Delivery to one recipient failed."""

    def __init__(self, recipient: Recipient, cause: BaseException):
        self.recipient = recipient
        self.cause = cause
        super().__init__(f"Failed to notify {recipient.email}: {cause}")


@dataclass
class DispatchReport:
    """Outcome counts for one cohort dispatch."""

    sent: int = 0
    failed: int = 0
    skipped: int = 0

    @property
    def attempted(self) -> int:
        return self.sent + self.failed


class NotificationSender:
    """Base class for one delivery channel."""

    channel = "base"

    def accepts(self, recipient: Recipient) -> bool:
        """Whether this channel can reach the recipient."""
        raise NotImplementedError

    async def send(self, recipient: Recipient, title: str, body: str) -> None:
        raise NotImplementedError


class PushSender(NotificationSender):
    """Web push delivery using VAPID credentials."""

    channel = "push"

    def __init__(
        self,
        vapid_private_key: str,
        vapid_subject: str = "mailto:admin@example.com",
        ttl: int = 30,
    ):
        self.vapid_private_key = vapid_private_key
        self.vapid_subject = vapid_subject
        self.ttl = ttl

    def accepts(self, recipient: Recipient) -> bool:
        return recipient.push_enabled and bool(recipient.push_subscription)

    @staticmethod
    def build_payload(title: str, body: str) -> str:
        """Build the JSON payload the service worker expects."""
        return json.dumps({
            "title": title,
            "body": body,
            "icon": "/static/icons/icon-192x192.png",
            "badge": "/static/icons/badge-96x96.png",
            "data": {"url": "/"},
        })

    async def send(self, recipient: Recipient, title: str, body: str) -> None:
        """
        Send one push notification.

        Raises:
            ValueError: If the stored subscription is not valid JSON
            WebPushException: If the push service rejects the message
        """
        try:
            subscription_info = json.loads(recipient.push_subscription)
        except (TypeError, json.JSONDecodeError) as e:
            raise ValueError(f"invalid push subscription: {e}") from e

        # pywebpush is blocking (requests), keep it off the event loop
        await asyncio.to_thread(
            webpush,
            subscription_info=subscription_info,
            data=self.build_payload(title, body),
            vapid_private_key=self.vapid_private_key,
            vapid_claims={"sub": self.vapid_subject},
            ttl=self.ttl,
        )


class EmailSender(NotificationSender):
    """Plain-text reminder email over SMTP with STARTTLS."""

    channel = "email"

    def __init__(
        self,
        host: str,
        port: int,
        from_email: str,
        from_name: str = "CRAPP Notification",
        username: Optional[str] = None,
        password: Optional[str] = None,
        app_url: str = "http://localhost:5000",
        timeout: float = 30.0,
    ):
        self.host = host
        self.port = port
        self.from_email = from_email
        self.from_name = from_name
        self.username = username
        self.password = password
        self.app_url = app_url
        self.timeout = timeout

    def accepts(self, recipient: Recipient) -> bool:
        return recipient.email_enabled and bool(recipient.email)

    def build_message(self, recipient: Recipient, title: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = title
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = recipient.email
        msg.set_content(
            f"Hi {recipient.display_name}, {body}\n\n"
            f"Visit {self.app_url} to log in."
        )
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password or "")
            smtp.send_message(msg)

    async def send(self, recipient: Recipient, title: str, body: str) -> None:
        msg = self.build_message(recipient, title, body)
        await asyncio.to_thread(self._deliver, msg)


class NotificationDispatcher:
    """Fan a reminder out to a cohort over every channel each recipient enabled."""

    def __init__(
        self,
        senders: Sequence[NotificationSender],
        timeout: float = 30.0,
        concurrency: int = 10,
    ):
        self.senders = list(senders)
        self.timeout = timeout
        self.concurrency = concurrency

    def channels_for(self, recipient: Recipient) -> List[NotificationSender]:
        return [s for s in self.senders if s.accepts(recipient)]

    async def send(self, recipient: Recipient, title: str, body: str) -> None:
        """
        Deliver one notification over each of the recipient's channels.

        Every channel is tried even if an earlier one fails.

        Raises:
            DispatchFailure: If any channel failed or timed out
        """
        first_error: Optional[BaseException] = None

        for sender in self.channels_for(recipient):
            try:
                await asyncio.wait_for(sender.send(recipient, title, body), timeout=self.timeout)
            except asyncio.TimeoutError:
                first_error = first_error or TimeoutError(
                    f"{sender.channel} send timed out after {self.timeout}s"
                )
            except Exception as e:
                first_error = first_error or e
                logger.debug(f"{sender.channel} delivery to {recipient.email} failed: {e}")

        if first_error is not None:
            raise DispatchFailure(recipient, first_error)

    async def dispatch(self, recipients: Sequence[Recipient], title: str, body: str) -> DispatchReport:
        """
        Send the reminder to every recipient independently.

        Args:
            recipients: Eligible cohort
            title: Notification title
            body: Notification body

        Returns:
            DispatchReport with sent/failed/skipped counts
        """
        report = DispatchReport()
        semaphore = asyncio.Semaphore(self.concurrency)

        async def _send_one(recipient: Recipient) -> None:
            if not self.channels_for(recipient):
                report.skipped += 1
                logger.debug(f"No enabled channel for {recipient.email}, skipping")
                return

            async with semaphore:
                try:
                    await self.send(recipient, title, body)
                except DispatchFailure as e:
                    report.failed += 1
                    logger.error(f"Failed to send reminder to {recipient.email}: {e.cause}")
                    return
            report.sent += 1

        await asyncio.gather(*(_send_one(r) for r in recipients))

        record_dispatch("sent", report.sent)
        record_dispatch("failed", report.failed)
        record_dispatch("skipped", report.skipped)
        logger.info(
            f"Reminders dispatched: {report.sent}/{len(recipients)} sent, "
            f"{report.failed} failed, {report.skipped} skipped"
        )
        return report
