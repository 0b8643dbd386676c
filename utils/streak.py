from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from utils.daily import uk_day, uk_yesterday
from utils.due import DueStats

NEW_CARDS_FOR_STREAK = 20

DEAD_EMOJI = "\U0001F480"  # skull

STREAK_TIERS = (
    (5, "\U0001F525"),    # fire
    (10, "\U0001F4AA"),   # flexed biceps
    (20, "\U0001F947"),   # gold medal
    (49, "\U0001F3C6"),   # trophy
    (99, "\U0001F48E"),   # gem
)
TOP_TIER_EMOJI = "\U0001F4AF"  # hundred points


@dataclass(frozen=True)
class StreakUpdate:
    streak_end_time: int
    streak_start_time: Optional[int] = None

    def as_fields(self) -> Dict[str, int]:
        fields = {"streak_end_time": self.streak_end_time}
        if self.streak_start_time is not None:
            fields["streak_start_time"] = self.streak_start_time
        return fields


def streak_emoji(days: int) -> str:
    for limit, emoji in STREAK_TIERS:
        if days <= limit:
            return emoji
    return TOP_TIER_EMOJI


def current_streak(streak_start_time: int, streak_end_time: int, now: int) -> Tuple[int, str]:
    """Return (day count, emoji) for the stored streak as seen at `now`.

    A streak whose last active UK day is before yesterday is broken.
    """
    if uk_day(streak_end_time) < uk_yesterday(now):
        return 0, DEAD_EMOJI
    days = int((streak_end_time - streak_start_time) / 3600 / 24) + 1
    if days < 1:
        days = 1
    return days, streak_emoji(days)


def session_complete(due_stats: DueStats, num_new_cards_today: int) -> bool:
    return (
        due_stats.in_progress_due == 0
        and due_stats.review_due == 0
        and (num_new_cards_today >= NEW_CARDS_FOR_STREAK or due_stats.new_available == 0)
    )


def decide_streak_update(
    due_stats: DueStats,
    num_new_cards_today: int,
    last_streak_start: int,
    last_streak_end: int,
    now: int,
) -> Optional[StreakUpdate]:
    """Decide which streak timestamps to persist, or None if the session is not complete.

    The start time only moves when the streak had already lapsed (last end day
    before yesterday); an end day of yesterday or today continues the streak.
    """
    if not session_complete(due_stats, num_new_cards_today):
        return None
    if uk_day(last_streak_end) < uk_yesterday(now):
        return StreakUpdate(streak_end_time=now, streak_start_time=now)
    return StreakUpdate(streak_end_time=now)
