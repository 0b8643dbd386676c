from __future__ import annotations

import logging
import random
import time
from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from models.card import Flashcard
from models.student_card import StudentCard
from utils.due import classify

logger = logging.getLogger(__name__)

MAX_IN_PROGRESS_BEFORE_NEW = 5

_rng = random.Random()


class NoCardsAvailableError(LookupError):
    """Nothing is due and no card is in progress; the learner is caught up."""


class InvalidSettingError(ValueError):
    pass


def parse_max_new_cards(value: Union[int, str]) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError) as exc:
        raise InvalidSettingError(f"invalid max new cards per day value: {value!r}") from exc


def get_soonest_card(cards: Sequence[StudentCard]) -> StudentCard:
    if not cards:
        raise NoCardsAvailableError("no cards available")
    # min() keeps the first card on ties
    return min(cards, key=lambda card: card.due)


def pick_next_card(
    review_ahead_seconds: int,
    cards: Iterable[StudentCard],
    num_new_cards_today: int,
    max_new_cards_per_day: Union[int, str],
    flashcard_index: Dict[str, Flashcard],
    allowed_tags: AbstractSet[str],
    *,
    now: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> Tuple[str, bool]:
    """Choose the next card to show and whether it is a new card.

    A non-empty bucket is picked uniformly at random (not weighted by size) and
    the soonest-due card in it is returned. New cards are only offered while
    under the daily cap and while fewer than five in-progress cards are due.

    Raises NoCardsAvailableError when there is nothing to study and
    InvalidSettingError when max_new_cards_per_day is not an integer.
    """
    if now is None:
        now = int(time.time())
    rng = rng or _rng
    now_effective = now + review_ahead_seconds

    buckets = classify(cards, flashcard_index, allowed_tags, now_effective)
    max_new = parse_max_new_cards(max_new_cards_per_day)

    options: List[Tuple[List[StudentCard], bool]] = []
    if buckets.review_due:
        options.append((buckets.review_due, False))
    if buckets.in_progress_due:
        options.append((buckets.in_progress_due, False))
    if (
        num_new_cards_today < max_new
        and len(buckets.in_progress_due) < MAX_IN_PROGRESS_BEFORE_NEW
        and buckets.new_due
    ):
        options.append((buckets.new_due, True))

    if not options:
        if buckets.in_progress_any:
            soonest = get_soonest_card(buckets.in_progress_any)
            logger.debug("Nothing due, falling back to in-progress card %s", soonest.card_id)
            return soonest.card_id, False
        raise NoCardsAvailableError("no cards available")

    selected, is_new = rng.choice(options)
    soonest = get_soonest_card(selected)
    return soonest.card_id, is_new
