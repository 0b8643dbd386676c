from models.card import Flashcard
from models.student_card import StudentCard
from utils.due import DueStats, classify, count_due_cards, status_panel_counts

NOW = 1_718_193_600


def _index(*cards):
    return {card.id: card for card in cards}


def _cards():
    return [
        StudentCard(card_id="a", status=0, due=0),
        StudentCard(card_id="b", status=2, due=NOW + 100),
        StudentCard(card_id="c", status=2, due=NOW - 1),
        StudentCard(card_id="d", status=5, due=NOW - 1),
        StudentCard(card_id="e", status=5, due=NOW + 1000),
        StudentCard(card_id="missing", status=0, due=0),
    ]


def _flashcards():
    return _index(
        Flashcard(id="a", tags=["french"]),
        Flashcard(id="b", tags=["french"]),
        Flashcard(id="c", tags=["german"]),
        Flashcard(id="d", tags=["french", "verbs"]),
        Flashcard(id="e"),
    )


def test_classify_splits_cards_into_buckets():
    buckets = classify(_cards(), _flashcards(), set(), NOW)
    assert [card.card_id for card in buckets.new_due] == ["a"]
    assert [card.card_id for card in buckets.in_progress_any] == ["b", "c"]
    assert [card.card_id for card in buckets.in_progress_due] == ["c"]
    assert [card.card_id for card in buckets.review_due] == ["d"]


def test_classify_applies_tag_filter():
    buckets = classify(_cards(), _flashcards(), {"french"}, NOW)
    assert [card.card_id for card in buckets.new_due] == ["a"]
    assert [card.card_id for card in buckets.in_progress_any] == ["b"]
    assert buckets.in_progress_due == []
    assert [card.card_id for card in buckets.review_due] == ["d"]


def test_classify_with_review_ahead_includes_future_cards():
    buckets = classify(_cards(), _flashcards(), set(), NOW + 2000)
    assert [card.card_id for card in buckets.in_progress_due] == ["b", "c"]
    assert [card.card_id for card in buckets.review_due] == ["d", "e"]


def test_count_due_cards_counts_in_progress_whether_due_or_not():
    stats = count_due_cards(_cards(), NOW)
    assert stats == DueStats(in_progress_due=2, review_due=1, new_available=2)


def test_status_panel_caps_new_cards_at_remaining_allowance():
    cards = [StudentCard(card_id=f"n{i}", status=0, due=0) for i in range(5)]
    cards.append(StudentCard(card_id="p", status=3, due=NOW + 500))
    counts = status_panel_counts(cards, NOW, num_new_today=18, max_new_per_day=20)
    assert counts == {"New": 2, "InProgress": 1, "Review": 0}


def test_status_panel_shows_no_new_cards_once_over_the_cap():
    cards = [StudentCard(card_id="n", status=0, due=0)]
    counts = status_panel_counts(cards, NOW, num_new_today=25, max_new_per_day=20)
    assert counts["New"] == 0
