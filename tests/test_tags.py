from models.card import Flashcard
from models.student_card import StudentCard
from utils.tags import (
    card_matches_tags,
    filter_student_cards_by_tags,
    parse_tag_filter,
    parse_tag_names,
    sort_tags_alphabetically,
)


def test_parse_tag_names_normalises_and_dedupes():
    assert parse_tag_names("French, verbs,,french\nNouns ") == ["french", "verbs", "nouns"]
    assert parse_tag_names("") == []


def test_parse_tag_filter():
    assert parse_tag_filter(" a , B ") == {"a", "b"}
    assert parse_tag_filter("") == set()


def test_sort_tags_alphabetically():
    assert sort_tags_alphabetically(["Verbs", "animals", " colours"]) == ["animals", "colours", "verbs"]


def test_card_matches_tags():
    card = Flashcard(id="c1", tags=["french", "verbs"])
    assert card_matches_tags(card, set())
    assert card_matches_tags(card, {"verbs", "maths"})
    assert not card_matches_tags(card, {"maths"})
    assert not card_matches_tags(Flashcard(id="c2"), {"maths"})


def test_filter_student_cards_drops_unknown_and_unmatched():
    index = {
        "c1": Flashcard(id="c1", tags=["french"]),
        "c2": Flashcard(id="c2", tags=["german"]),
    }
    cards = [
        StudentCard(card_id="c1"),
        StudentCard(card_id="c2"),
        StudentCard(card_id="gone"),
    ]
    assert [c.card_id for c in filter_student_cards_by_tags(cards, index, set())] == ["c1", "c2"]
    assert [c.card_id for c in filter_student_cards_by_tags(cards, index, {"german"})] == ["c2"]
