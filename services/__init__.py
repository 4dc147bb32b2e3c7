"""
Services Module
Collaborators used by the schedulers: recipient lookup, delivery, token cleanup
"""

from .recipient_service import Recipient, RecipientService, normalize_time, parse_preferences
from .notification import (
    DispatchFailure,
    DispatchReport,
    NotificationSender,
    PushSender,
    EmailSender,
    NotificationDispatcher,
)
from .token_service import cleanup_expired_tokens, EXPIRING_TOKEN_TABLES

__all__ = [
    "Recipient",
    "RecipientService",
    "normalize_time",
    "parse_preferences",
    "DispatchFailure",
    "DispatchReport",
    "NotificationSender",
    "PushSender",
    "EmailSender",
    "NotificationDispatcher",
    "cleanup_expired_tokens",
    "EXPIRING_TOKEN_TABLES",
]
