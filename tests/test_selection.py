import random

import pytest

from models.card import Flashcard
from models.student_card import StudentCard
from utils.due import classify
from utils.schedule import next_transition
from utils.selection import (
    InvalidSettingError,
    NoCardsAvailableError,
    get_soonest_card,
    parse_max_new_cards,
    pick_next_card,
)

NOW = 1_718_193_600
DAY = 24 * 3600


def _index(cards):
    return {card.card_id: Flashcard(id=card.card_id) for card in cards}


def _pick(cards, num_new=0, max_new=20, review_ahead=0, rng=None, allowed=frozenset()):
    return pick_next_card(
        review_ahead,
        cards,
        num_new,
        max_new,
        _index(cards),
        allowed,
        now=NOW,
        rng=rng or random.Random(7),
    )


def test_two_buckets_are_chosen_evenly():
    cards = [
        StudentCard(card_id="review", status=5, due=NOW - 10),
        StudentCard(card_id="learning", status=2, due=NOW - 10),
    ]
    rng = random.Random(1234)
    trials = 10_000
    review_picks = 0
    for _ in range(trials):
        card_id, is_new = _pick(cards, rng=rng)
        assert not is_new
        if card_id == "review":
            review_picks += 1
    assert 0.46 < review_picks / trials < 0.54


def test_new_cards_blocked_at_five_in_progress_due():
    cards = [StudentCard(card_id=f"p{i}", status=1, due=NOW - 5) for i in range(5)]
    cards.append(StudentCard(card_id="new", status=0, due=0))
    rng = random.Random(99)
    for _ in range(500):
        card_id, is_new = _pick(cards, rng=rng)
        assert card_id != "new"
        assert not is_new


def test_new_cards_offered_below_five_in_progress_due():
    cards = [StudentCard(card_id=f"p{i}", status=1, due=NOW - 5) for i in range(4)]
    cards.append(StudentCard(card_id="new", status=0, due=0))
    rng = random.Random(99)
    picks = {_pick(cards, rng=rng) for _ in range(200)}
    assert ("new", True) in picks


def test_daily_cap_blocks_new_cards():
    cards = [StudentCard(card_id="new", status=0, due=0)]
    with pytest.raises(NoCardsAvailableError):
        _pick(cards, num_new=20, max_new="20")


def test_falls_back_to_soonest_in_progress_card():
    cards = [
        StudentCard(card_id="later", status=3, due=NOW + 500),
        StudentCard(card_id="sooner", status=2, due=NOW + 100),
        StudentCard(card_id="review", status=6, due=NOW + DAY),
    ]
    assert _pick(cards) == ("sooner", False)


def test_no_cards_available():
    with pytest.raises(NoCardsAvailableError):
        _pick([])
    with pytest.raises(NoCardsAvailableError):
        _pick([StudentCard(card_id="review", status=4, due=NOW + DAY)])


def test_review_ahead_brings_future_cards_forward():
    cards = [StudentCard(card_id="review", status=4, due=NOW + 2 * DAY)]
    assert _pick(cards, review_ahead=3 * DAY) == ("review", False)


def test_soonest_due_card_wins_within_bucket():
    cards = [
        StudentCard(card_id="r1", status=4, due=NOW - 100),
        StudentCard(card_id="r2", status=5, due=NOW - 500),
        StudentCard(card_id="r3", status=6, due=NOW - 500),
    ]
    assert _pick(cards) == ("r2", False)
    assert get_soonest_card(cards).card_id == "r2"


def test_tag_filter_limits_selection():
    cards = [
        StudentCard(card_id="fr", status=4, due=NOW - 100),
        StudentCard(card_id="de", status=4, due=NOW - 500),
    ]
    index = {
        "fr": Flashcard(id="fr", tags=["french"]),
        "de": Flashcard(id="de", tags=["german"]),
    }
    picked = pick_next_card(0, cards, 0, 20, index, {"french"}, now=NOW, rng=random.Random(1))
    assert picked == ("fr", False)


def test_invalid_max_new_cards_setting():
    cards = [StudentCard(card_id="new", status=0, due=0)]
    with pytest.raises(InvalidSettingError):
        _pick(cards, max_new="lots")
    assert parse_max_new_cards(" 7 ") == 7
    with pytest.raises(InvalidSettingError):
        parse_max_new_cards("")


def test_answered_card_is_not_due_again():
    cards = [
        StudentCard(card_id="new", status=0, due=0),
        StudentCard(card_id="other", status=0, due=0),
    ]
    card_id, is_new = _pick(cards)
    assert is_new

    current = next(card for card in cards if card.card_id == card_id)
    next_status, delay = next_transition(current.status, 3)
    answered = StudentCard(card_id=card_id, status=next_status, due=NOW + delay)
    updated = [answered if card.card_id == card_id else card for card in cards]

    buckets = classify(updated, _index(updated), set(), NOW)
    due_ids = {card.card_id for card in buckets.new_due + buckets.in_progress_due + buckets.review_due}
    assert card_id not in due_ids
    for seed in range(20):
        assert _pick(updated, num_new=1, rng=random.Random(seed))[0] != card_id
