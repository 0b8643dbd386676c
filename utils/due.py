from __future__ import annotations

from dataclasses import dataclass, field
from typing import AbstractSet, Dict, Iterable, List

from models.card import Flashcard
from models.student_card import StudentCard
from utils.schedule import IN_PROGRESS_STATUSES, NEW_STATUSES, REVIEW_STATUSES
from utils.tags import card_matches_tags


@dataclass
class DueBuckets:
    new_due: List[StudentCard] = field(default_factory=list)
    in_progress_any: List[StudentCard] = field(default_factory=list)
    in_progress_due: List[StudentCard] = field(default_factory=list)
    review_due: List[StudentCard] = field(default_factory=list)


@dataclass(frozen=True)
class DueStats:
    in_progress_due: int = 0
    review_due: int = 0
    new_available: int = 0


def classify(
    cards: Iterable[StudentCard],
    flashcard_index: Dict[str, Flashcard],
    allowed_tags: AbstractSet[str],
    now_effective: int,
) -> DueBuckets:
    """Split a student's cards into the new / in-progress / review buckets.

    Cards missing from the index or filtered out by tag are skipped. In-progress
    cards are also collected regardless of due time so selection can fall back
    to them when nothing is strictly due.
    """
    buckets = DueBuckets()
    for card in cards:
        flashcard = flashcard_index.get(card.card_id)
        if flashcard is None or not card_matches_tags(flashcard, allowed_tags):
            continue
        if card.status in IN_PROGRESS_STATUSES:
            buckets.in_progress_any.append(card)
        if card.due > now_effective:
            continue
        if card.status in NEW_STATUSES:
            buckets.new_due.append(card)
        elif card.status in IN_PROGRESS_STATUSES:
            buckets.in_progress_due.append(card)
        elif card.status in REVIEW_STATUSES:
            buckets.review_due.append(card)
    return buckets


def count_due_cards(cards: Iterable[StudentCard], now: int) -> DueStats:
    """Due counts for the session-complete check; in-progress cards count whether due or not."""
    in_progress = review = new = 0
    for card in cards:
        if card.status in IN_PROGRESS_STATUSES:
            in_progress += 1
        elif card.status in REVIEW_STATUSES and card.due <= now:
            review += 1
        elif card.status in NEW_STATUSES and card.due <= now:
            new += 1
    return DueStats(in_progress_due=in_progress, review_due=review, new_available=new)


def status_panel_counts(
    cards: Iterable[StudentCard],
    now_effective: int,
    num_new_today: int,
    max_new_per_day: int,
) -> Dict[str, int]:
    max_new_allowed = max_new_per_day - num_new_today
    counts = {"New": 0, "InProgress": 0, "Review": 0}
    for card in cards:
        if card.status in NEW_STATUSES:
            if card.due <= now_effective and counts["New"] < max_new_allowed:
                counts["New"] += 1
        elif card.status in IN_PROGRESS_STATUSES:
            counts["InProgress"] += 1
        elif card.status in REVIEW_STATUSES and card.due <= now_effective:
            counts["Review"] += 1
    return counts
