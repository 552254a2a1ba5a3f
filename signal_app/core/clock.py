"""
Wall-clock access for the services. Tests monkeypatch `utcnow`.
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from signal_app.core.config import settings


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def to_local(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(ZoneInfo(settings.TIMEZONE))


def local_date(value: datetime) -> date:
    """Calendar date of `value` in the configured time zone."""
    return to_local(value).date()
