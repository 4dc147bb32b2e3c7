"""
Recipient Service
Select users eligible for a reminder at a given time of day
"""

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import pytz

from database.connection import Database

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Recipient:
    """A user the reminder can be delivered to."""

    user_id: int
    email: str
    display_name: str
    push_subscription: Optional[str] = None
    push_enabled: bool = False
    email_enabled: bool = False


def normalize_time(text: str) -> str:
    """
    Normalize a stored preference time to 24-hour HH:MM.

    Accepts "15:04" and "3:04 PM" forms; anything else is returned unchanged
    so it simply never matches a slot.
    """
    value = (text or "").strip()
    for fmt in ("%H:%M", "%I:%M %p"):
        try:
            return datetime.strptime(value, fmt).strftime("%H:%M")
        except ValueError:
            continue
    return value


def parse_preferences(raw: Any) -> Dict[str, Any]:
    """
    Decode a stored notification preferences value.

    Users without stored preferences get the defaults (both channels off).

    Raises:
        ValueError: If the stored value is not a JSON object
    """
    defaults = {
        "push_enabled": False,
        "email_enabled": False,
        "reminder_times": ["20:00"],
        "cutoff_time": "10:00",
    }
    if raw is None or raw == "":
        return defaults

    prefs = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
    if not isinstance(prefs, dict):
        raise ValueError("preferences must be a JSON object")
    return {**defaults, **prefs}


def _display_name(row) -> str:
    first_name = row["first_name"]
    return first_name or row["email"].split("@")[0]


class RecipientService:
    """Looks up reminder cohorts from the users table."""

    def __init__(self, db: Database, timezone: str = "UTC"):
        self.db = db
        self.tz = pytz.timezone(timezone)

    def today(self) -> date:
        return datetime.now(self.tz).date()

    async def select_eligible(self, time_key: str) -> List[Recipient]:
        """
        Get users who want a reminder at time_key and have not yet reported today.

        Args:
            time_key: Slot key in HH:MM form

        Returns:
            List of recipients (possibly empty)
        """
        target = normalize_time(time_key)
        today = self.today()

        rows = await self.db.fetch_all(
            """
            SELECT id, email, first_name, push_subscription,
                   notification_preferences, last_assessment_date
            FROM users
            WHERE notification_preferences IS NOT NULL
              AND notification_preferences <> ''
            """
        )

        recipients = []
        for row in rows:
            try:
                prefs = parse_preferences(row["notification_preferences"])
            except ValueError as e:
                logger.warning(f"Failed to read notification preferences for {row['email']}: {e}")
                continue

            push_enabled = bool(prefs.get("push_enabled"))
            email_enabled = bool(prefs.get("email_enabled"))
            if not push_enabled and not email_enabled:
                continue

            times = prefs.get("reminder_times") or []
            if not any(normalize_time(str(t)) == target for t in times):
                continue

            last_assessment = row["last_assessment_date"]
            if isinstance(last_assessment, datetime):
                last_assessment = last_assessment.astimezone(self.tz).date()
            if last_assessment is not None and last_assessment >= today:
                logger.info(f"Skipping reminder - assessment already completed: {row['email']}")
                continue

            recipients.append(Recipient(
                user_id=row["id"],
                email=row["email"],
                display_name=_display_name(row),
                push_subscription=row["push_subscription"] or None,
                push_enabled=push_enabled,
                email_enabled=email_enabled,
            ))

        return recipients
