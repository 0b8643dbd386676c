from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

from models.card import Flashcard
from models.student_card import StudentCard

CARD_ID_PREFIX = "card_"


def _split_tags(raw: Optional[str]) -> List[str]:
    return [tag for tag in (raw or "").split(",") if tag]


def _row_to_flashcard(row) -> Flashcard:
    return Flashcard(
        id=row["id"],
        front=row["front"],
        back=row["back"],
        created_by=row["created_by"],
        tags=_split_tags(row["tags"]),
    )


def load_cards_index(conn) -> Dict[str, Flashcard]:
    """All flashcards keyed by id, with their tag names."""
    cursor = conn.cursor()
    cursor.execute(
        """
        SELECT
            c.id,
            c.front,
            c.back,
            c.created_by,
            GROUP_CONCAT(t.name, ',') AS tags
        FROM cards c
        LEFT JOIN card_tags ct ON ct.card_id = c.id
        LEFT JOIN tags t ON t.id = ct.tag_id
        GROUP BY c.id
        """
    )
    return {row["id"]: _row_to_flashcard(row) for row in cursor.fetchall()}


def fetch_flashcard(conn, card_id: str) -> Optional[Flashcard]:
    cursor = conn.cursor()
    cursor.execute(
        """
        SELECT
            c.id,
            c.front,
            c.back,
            c.created_by,
            GROUP_CONCAT(t.name, ',') AS tags
        FROM cards c
        LEFT JOIN card_tags ct ON ct.card_id = c.id
        LEFT JOIN tags t ON t.id = ct.tag_id
        WHERE c.id = ?
        GROUP BY c.id
        """,
        (card_id,),
    )
    row = cursor.fetchone()
    if not row:
        return None
    return _row_to_flashcard(row)


def lexical_card_id_key(card_id: str) -> Tuple[Tuple[int, str], ...]:
    """Sort key placing letters before non-letters at the first differing character."""
    return tuple((0 if ch.isalpha() else 1, ch) for ch in card_id)


def fetch_student_cards(conn, user_id: str) -> List[StudentCard]:
    cursor = conn.cursor()
    cursor.execute(
        "SELECT card_id, status, due FROM student_cards WHERE user_id = ?",
        (user_id,),
    )
    cards = [
        StudentCard(card_id=row["card_id"], status=row["status"], due=row["due"])
        for row in cursor.fetchall()
    ]
    cards.sort(key=lambda card: lexical_card_id_key(card.card_id))
    return cards


def fetch_card_status(conn, user_id: str, card_id: str) -> Optional[int]:
    cursor = conn.cursor()
    cursor.execute(
        "SELECT status FROM student_cards WHERE user_id = ? AND card_id = ?",
        (user_id, card_id),
    )
    row = cursor.fetchone()
    if not row:
        return None
    return int(row["status"])


def update_card_status(conn, user_id: str, card_id: str, status: int, due: int) -> None:
    cursor = conn.cursor()
    cursor.execute(
        "UPDATE student_cards SET status = ?, due = ? WHERE user_id = ? AND card_id = ?",
        (status, due, user_id, card_id),
    )


def generate_card_id(conn, user_id: str) -> str:
    """Next sequential id for a user's own card, e.g. card_harvey_000007."""
    prefix = f"{CARD_ID_PREFIX}{user_id}_"
    cursor = conn.cursor()
    cursor.execute("SELECT id FROM cards WHERE created_by = ?", (user_id,))
    max_num = 0
    for row in cursor.fetchall():
        card_id = row["id"]
        if not card_id.startswith(prefix):
            continue
        suffix = card_id[len(prefix):]
        if re.fullmatch(r"\d+", suffix):
            max_num = max(max_num, int(suffix))
    return f"{prefix}{max_num + 1:06d}"


def insert_flashcard(conn, card_id: str, front: str, back: str, created_by: Optional[str]) -> None:
    cursor = conn.cursor()
    cursor.execute(
        "INSERT INTO cards (id, front, back, created_by) VALUES (?, ?, ?, ?)",
        (card_id, front, back, created_by),
    )


def update_flashcard(conn, card_id: str, front: str, back: str) -> None:
    cursor = conn.cursor()
    cursor.execute(
        "UPDATE cards SET front = ?, back = ? WHERE id = ?",
        (front, back, card_id),
    )


def assign_card_to_student(conn, user_id: str, card_id: str, due: int = 0) -> None:
    cursor = conn.cursor()
    cursor.execute(
        """
        INSERT OR IGNORE INTO student_cards (user_id, card_id, status, due)
        VALUES (?, ?, 0, ?)
        """,
        (user_id, card_id, due),
    )


def unlink_card(conn, user_id: str, card_id: str) -> bool:
    cursor = conn.cursor()
    cursor.execute(
        "DELETE FROM student_cards WHERE user_id = ? AND card_id = ?",
        (user_id, card_id),
    )
    return cursor.rowcount > 0


def user_tags(
    student_cards: List[StudentCard],
    all_cards: Dict[str, Flashcard],
    user_id: str,
) -> List[str]:
    """Tags on the cards the user authored, for the settings tag picker."""
    tag_set = set()
    for student_card in student_cards:
        card = all_cards.get(student_card.card_id)
        if card is None or card.created_by != user_id:
            continue
        tag_set.update(card.tags)
    return sorted(tag_set)
