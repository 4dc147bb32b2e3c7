"""Tests for reminder cohort selection."""

import json
from datetime import date, datetime, timedelta

import pytest
import pytz

from services import RecipientService, normalize_time, parse_preferences

from tests.fakes import FakeDatabase

TODAY = date(2026, 6, 1)


def user(n, prefs, last_assessment=None, first_name="Ana", subscription='{"endpoint": "x"}'):
    return {
        "id": n,
        "email": f"user{n}@example.com",
        "first_name": first_name,
        "push_subscription": subscription,
        "notification_preferences": json.dumps(prefs) if isinstance(prefs, dict) else prefs,
        "last_assessment_date": last_assessment,
    }


def service(rows):
    svc = RecipientService(FakeDatabase(rows=rows), timezone="UTC")
    svc.today = lambda: TODAY
    return svc


class TestNormalizeTime:
    @pytest.mark.parametrize("text,expected", [
        ("20:00", "20:00"),
        ("9:05", "09:05"),
        ("8:00 PM", "20:00"),
        ("12:30 AM", "00:30"),
        ("garbage", "garbage"),
        ("", ""),
    ])
    def test_forms(self, text, expected):
        assert normalize_time(text) == expected


class TestParsePreferences:
    def test_defaults_when_missing(self):
        prefs = parse_preferences(None)
        assert prefs["push_enabled"] is False
        assert prefs["email_enabled"] is False
        assert prefs["reminder_times"] == ["20:00"]

    def test_stored_values_override_defaults(self):
        prefs = parse_preferences('{"push_enabled": true, "reminder_times": ["08:00"]}')
        assert prefs["push_enabled"] is True
        assert prefs["email_enabled"] is False
        assert prefs["reminder_times"] == ["08:00"]

    @pytest.mark.parametrize("raw", ["[1, 2]", "{broken", '"text"'])
    def test_rejects_non_objects(self, raw):
        with pytest.raises(ValueError):
            parse_preferences(raw)


class TestSelectEligible:
    @pytest.mark.asyncio
    async def test_matches_slot_and_enabled_channel(self):
        svc = service([
            user(1, {"push_enabled": True, "reminder_times": ["20:00"]}),
            user(2, {"email_enabled": True, "reminder_times": ["8:00 PM"]}),
            user(3, {"push_enabled": True, "reminder_times": ["09:00"]}),
            user(4, {"reminder_times": ["20:00"]}),
        ])

        recipients = await svc.select_eligible("20:00")

        assert [r.user_id for r in recipients] == [1, 2]
        assert recipients[0].push_enabled and not recipients[0].email_enabled
        assert recipients[1].email_enabled and not recipients[1].push_enabled

    @pytest.mark.asyncio
    async def test_default_reminder_time_applies(self):
        svc = service([user(1, {"push_enabled": True})])
        assert len(await svc.select_eligible("20:00")) == 1

    @pytest.mark.asyncio
    async def test_users_who_reported_today_are_skipped(self):
        svc = service([
            user(1, {"push_enabled": True}, last_assessment=pytz.utc.localize(datetime(2026, 6, 1, 7, 0))),
            user(2, {"push_enabled": True}, last_assessment=pytz.utc.localize(datetime(2026, 5, 31, 22, 0))),
            user(3, {"push_enabled": True}, last_assessment=TODAY - timedelta(days=3)),
        ])

        recipients = await svc.select_eligible("20:00")

        assert [r.user_id for r in recipients] == [2, 3]

    @pytest.mark.asyncio
    async def test_bad_preferences_row_is_skipped(self):
        svc = service([
            user(1, "{not json"),
            user(2, {"push_enabled": True}),
        ])

        recipients = await svc.select_eligible("20:00")

        assert [r.user_id for r in recipients] == [2]

    @pytest.mark.asyncio
    async def test_display_name_falls_back_to_email(self):
        svc = service([user(7, {"email_enabled": True}, first_name=None, subscription="")])

        [r] = await svc.select_eligible("20:00")

        assert r.display_name == "user7"
        assert r.push_subscription is None

    @pytest.mark.asyncio
    async def test_no_users(self):
        assert await service([]).select_eligible("20:00") == []
