from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

DAY_SECONDS = 24 * 3600


def _load_uk_timezone() -> tzinfo:
    try:
        return ZoneInfo("Europe/London")
    except ZoneInfoNotFoundError:
        logger.warning("Europe/London timezone data unavailable, using UTC for day boundaries")
        return timezone.utc


UK_TZ = _load_uk_timezone()


def uk_day(unix_seconds: int) -> date:
    """Calendar day of a Unix timestamp in UK local time."""
    return datetime.fromtimestamp(unix_seconds, tz=UK_TZ).date()


def uk_yesterday(now: int) -> date:
    return uk_day(now) - timedelta(days=1)


def new_cards_today(count: int, updated_at: int, now: int) -> int:
    """Stored new-card count, or 0 once the UK day has rolled over since it was written."""
    if updated_at == 0 or uk_day(updated_at) != uk_day(now):
        return 0
    return count


def incremented_new_cards_today(count: int, updated_at: int, now: int) -> int:
    return new_cards_today(count, updated_at, now) + 1
