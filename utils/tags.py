from __future__ import annotations

import re
from typing import AbstractSet, Dict, Iterable, List, Set

from models.card import Flashcard
from models.student_card import StudentCard


_TAG_SPLIT_RE = re.compile(r"[,\n]+")


def parse_tag_names(raw: str) -> List[str]:
    if not raw:
        return []
    parts = _TAG_SPLIT_RE.split(raw)
    seen = set()
    tags: List[str] = []
    for part in parts:
        name = part.strip()
        if not name:
            continue
        normalized = name.lower()
        if normalized in seen:
            continue
        seen.add(normalized)
        tags.append(normalized)
    return tags


def parse_tag_filter(raw: str) -> Set[str]:
    """Turn the comma separated tag filter cookie into the allowed-tag set."""
    return set(parse_tag_names(raw))


def sort_tags_alphabetically(tags: Iterable[str]) -> List[str]:
    return sorted(tag.strip().lower() for tag in tags)


def card_matches_tags(card: Flashcard, allowed: AbstractSet[str]) -> bool:
    """True if no filter is set or the card carries at least one allowed tag."""
    if not allowed:
        return True
    return any(tag in allowed for tag in card.tags)


def filter_student_cards_by_tags(
    cards: Iterable[StudentCard],
    all_cards: Dict[str, Flashcard],
    allowed: AbstractSet[str],
) -> List[StudentCard]:
    filtered: List[StudentCard] = []
    for student_card in cards:
        card = all_cards.get(student_card.card_id)
        if card is None:
            continue
        if card_matches_tags(card, allowed):
            filtered.append(student_card)
    return filtered


def upsert_tags(conn, tag_names: Iterable[str]) -> List[int]:
    names = list(tag_names)
    if not names:
        return []
    cursor = conn.cursor()
    cursor.executemany(
        "INSERT OR IGNORE INTO tags (name) VALUES (?)",
        [(name,) for name in names],
    )
    placeholders = ",".join("?" for _ in names)
    cursor.execute(
        f"SELECT id, name FROM tags WHERE name IN ({placeholders})",
        names,
    )
    id_map = {row["name"]: row["id"] for row in cursor.fetchall()}
    return [id_map[name] for name in names if name in id_map]


def set_card_tags(conn, card_id: str, tag_names: Iterable[str]) -> None:
    cursor = conn.cursor()
    cursor.execute("DELETE FROM card_tags WHERE card_id = ?", (card_id,))
    tag_ids = upsert_tags(conn, tag_names)
    if not tag_ids:
        return
    cursor.executemany(
        "INSERT OR IGNORE INTO card_tags (card_id, tag_id) VALUES (?, ?)",
        [(card_id, tag_id) for tag_id in tag_ids],
    )
