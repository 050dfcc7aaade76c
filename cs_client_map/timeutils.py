"""Local-time helpers for the default query window."""

from __future__ import annotations

from datetime import datetime, timedelta


def _local_midnight(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def today_midnight_ms(now: datetime | None = None) -> int:
    """Return today at 00:00 local time as a Unix millisecond timestamp."""

    reference = now or datetime.now()
    return int(_local_midnight(reference).timestamp() * 1000)


def yesterday_midnight_ms(now: datetime | None = None) -> int:
    """Return yesterday at 00:00 local time as a Unix millisecond timestamp."""

    reference = now or datetime.now()
    return int(_local_midnight(reference - timedelta(days=1)).timestamp() * 1000)


def format_ms(value: int) -> str:
    """Render a millisecond timestamp the way the run banner shows it (RFC 822)."""

    moment = datetime.fromtimestamp(value / 1000).astimezone()
    return moment.strftime("%d %b %y %H:%M %Z")


__all__ = ["format_ms", "today_midnight_ms", "yesterday_midnight_ms"]
