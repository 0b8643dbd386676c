from datetime import date, datetime, timezone

from utils.daily import DAY_SECONDS, incremented_new_cards_today, new_cards_today, uk_day, uk_yesterday
from utils.due import DueStats
from utils.streak import (
    DEAD_EMOJI,
    StreakUpdate,
    current_streak,
    decide_streak_update,
    streak_emoji,
)

# 2024-06-12 13:00 in London
NOW = int(datetime(2024, 6, 12, 12, 0, tzinfo=timezone.utc).timestamp())
DONE = DueStats(in_progress_due=0, review_due=0, new_available=0)


def test_streak_ended_three_days_ago_is_dead():
    assert current_streak(NOW - 10 * DAY_SECONDS, NOW - 3 * DAY_SECONDS, NOW) == (0, DEAD_EMOJI)
    assert current_streak(0, NOW - 3 * DAY_SECONDS, NOW) == (0, DEAD_EMOJI)


def test_streak_within_one_day_counts_one():
    count, emoji = current_streak(NOW - 3600, NOW, NOW)
    assert count == 1
    assert emoji == streak_emoji(1)


def test_streak_ending_yesterday_is_still_alive():
    assert current_streak(NOW - 2 * DAY_SECONDS, NOW - DAY_SECONDS, NOW)[0] == 2


def test_streak_emoji_tiers():
    assert streak_emoji(5) == "\U0001F525"
    assert streak_emoji(6) == "\U0001F4AA"
    assert streak_emoji(20) == "\U0001F947"
    assert streak_emoji(49) == "\U0001F3C6"
    assert streak_emoji(99) == "\U0001F48E"
    assert streak_emoji(100) == "\U0001F4AF"


def test_no_update_while_cards_are_due():
    stats = DueStats(in_progress_due=1, review_due=0, new_available=0)
    assert decide_streak_update(stats, 0, NOW, NOW, NOW) is None
    stats = DueStats(in_progress_due=0, review_due=2, new_available=0)
    assert decide_streak_update(stats, 0, NOW, NOW, NOW) is None


def test_new_cards_must_be_finished_or_quota_met():
    stats = DueStats(in_progress_due=0, review_due=0, new_available=3)
    assert decide_streak_update(stats, 19, NOW, NOW, NOW) is None
    assert decide_streak_update(stats, 20, NOW, NOW, NOW) is not None


def test_continuing_streak_keeps_start_time():
    start = NOW - 5 * DAY_SECONDS
    update = decide_streak_update(DONE, 0, start, NOW - DAY_SECONDS, NOW)
    assert update == StreakUpdate(streak_end_time=NOW)
    assert update.as_fields() == {"streak_end_time": NOW}

    update = decide_streak_update(DONE, 0, start, NOW - 60, NOW)
    assert update.as_fields() == {"streak_end_time": NOW}


def test_lapsed_streak_restarts():
    update = decide_streak_update(DONE, 0, NOW - 9 * DAY_SECONDS, NOW - 2 * DAY_SECONDS, NOW)
    assert update.as_fields() == {"streak_end_time": NOW, "streak_start_time": NOW}
    update = decide_streak_update(DONE, 0, 0, 0, NOW)
    assert update.streak_start_time == NOW


def test_day_boundaries_follow_london_time():
    late_evening_utc = int(datetime(2024, 6, 12, 23, 30, tzinfo=timezone.utc).timestamp())
    assert uk_day(late_evening_utc) == date(2024, 6, 13)
    winter = int(datetime(2024, 1, 12, 23, 30, tzinfo=timezone.utc).timestamp())
    assert uk_day(winter) == date(2024, 1, 12)


def test_new_card_counter_resets_on_a_new_day():
    assert new_cards_today(5, NOW - 3600, NOW) == 5
    assert new_cards_today(5, NOW - DAY_SECONDS, NOW) == 0
    assert new_cards_today(5, 0, NOW) == 0
    assert incremented_new_cards_today(5, NOW - 3600, NOW) == 6
    assert incremented_new_cards_today(5, NOW - DAY_SECONDS, NOW) == 1


def test_yesterday_on_the_autumn_clock_change_evening():
    # 23:30 GMT on 2024-10-27, the day has 25 hours
    now = int(datetime(2024, 10, 27, 23, 30, tzinfo=timezone.utc).timestamp())
    end = int(datetime(2024, 10, 26, 19, 0, tzinfo=timezone.utc).timestamp())
    start = end - DAY_SECONDS

    assert uk_yesterday(now) == date(2024, 10, 26)
    assert current_streak(start, end, now)[0] > 0
    assert decide_streak_update(DONE, 0, start, end, now).as_fields() == {"streak_end_time": now}


def test_yesterday_the_day_after_spring_clock_change():
    # 00:30 BST on 2024-04-01, after a 23 hour day
    now = int(datetime(2024, 3, 31, 23, 30, tzinfo=timezone.utc).timestamp())
    end = int(datetime(2024, 3, 31, 10, 0, tzinfo=timezone.utc).timestamp())
    start = end - 3 * DAY_SECONDS

    assert uk_day(now) == date(2024, 4, 1)
    assert uk_yesterday(now) == date(2024, 3, 31)
    assert current_streak(start, end, now)[0] > 0
    assert decide_streak_update(DONE, 0, start, end, now).as_fields() == {"streak_end_time": now}
