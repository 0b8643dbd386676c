from __future__ import annotations

from typing import Dict, List, Tuple

MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR

INVALID_TRANSITION: Tuple[int, int] = (-1, -1)

RATINGS: List[Tuple[int, str]] = [(1, "Bad"), (2, "Okay"), (3, "Good"), (4, "Great")]

# status -> rating -> (next status, delay seconds)
SCHEDULE: Dict[int, Dict[int, Tuple[int, int]]] = {
    0: {1: (1, 120), 2: (1, 300), 3: (1, 600), 4: (4, 72000)},
    1: {1: (1, 120), 2: (2, 300), 3: (3, 600), 4: (4, 72000)},
    2: {1: (1, 120), 2: (3, 300), 3: (4, 72000), 4: (4, 72000)},
    3: {1: (1, 120), 2: (3, 300), 3: (4, 72000), 4: (4, 165600)},
    4: {1: (1, 120), 2: (3, 300), 3: (4, 165600), 4: (5, 252000)},
    5: {1: (1, 120), 2: (3, 300), 3: (5, 424800), 4: (6, 1209600)},
    6: {1: (1, 120), 2: (3, 300), 3: (6, 2668800), 4: (6, 5356800)},
}

NEW_STATUSES = frozenset({0})
IN_PROGRESS_STATUSES = frozenset({1, 2, 3})
REVIEW_STATUSES = frozenset({4, 5, 6})


def next_transition(current_status: int, rating: int) -> Tuple[int, int]:
    """Return (next status, delay seconds) for a rating, or (-1, -1) if the pair is unknown."""
    return SCHEDULE.get(current_status, {}).get(rating, INVALID_TRANSITION)


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


def format_due_delay(seconds: int, next_status: int) -> str:
    """Compact label for a delay, e.g. '<5 min' or '3 d'.

    Statuses 0-3 are short re-tests, so their label reads as an upper bound.
    """
    magnitude = abs(seconds)
    if magnitude < 90:
        label = f"{magnitude} sec"
    elif magnitude <= 90 * MINUTE:
        label = f"{_round_half_up(magnitude / MINUTE)} min"
    elif magnitude < 36 * HOUR:
        label = f"{_round_half_up(magnitude / HOUR)} hr"
    else:
        label = f"{_round_half_up(magnitude / DAY)} d"
    if 0 <= next_status <= 3:
        label = "<" + label
    return label


def status_label(status: int) -> str:
    if status in NEW_STATUSES:
        return "New"
    if status in IN_PROGRESS_STATUSES:
        return "InProgress"
    if status in REVIEW_STATUSES:
        return "Review"
    return ""


def status_text(status: int) -> str:
    """Lower-case wording shown (and searched) on the browse page."""
    if status in NEW_STATUSES:
        return "new"
    if status in IN_PROGRESS_STATUSES:
        return "in progress"
    if status in REVIEW_STATUSES:
        return "consolidating"
    return "unknown"


def rating_times(current_status: int) -> List[Dict[str, object]]:
    times: List[Dict[str, object]] = []
    for value, label in RATINGS:
        next_status, delay = next_transition(current_status, value)
        if next_status == -1:
            time_string = "?"
        else:
            time_string = format_due_delay(delay, next_status)
        times.append({"label": label, "value": value, "time_string": time_string})
    return times
