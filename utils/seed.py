from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List

from pydantic import TypeAdapter

from models.card import SeedCard
from utils.cards import assign_card_to_student
from utils.students import list_user_ids
from utils.tags import parse_tag_names, set_card_tags

logger = logging.getLogger(__name__)

_SEED_ADAPTER = TypeAdapter(List[SeedCard])


def load_seed_cards(path: Path) -> List[SeedCard]:
    """Parse an official cards JSON file (a list of cards with front/back content)."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return _SEED_ADAPTER.validate_python(data)


def sync_official_cards(conn, cards: List[SeedCard], now: int) -> Dict[str, int]:
    """Upsert official cards, reconcile their tags, and give default cards to every user.

    Existing study progress is kept; assignments that already exist are left alone.
    """
    cursor = conn.cursor()
    for card in cards:
        cursor.execute(
            """
            INSERT INTO cards (id, front, back, created_by, is_default)
            VALUES (?, ?, ?, NULL, ?)
            ON CONFLICT(id) DO UPDATE SET
                front = excluded.front,
                back = excluded.back,
                is_default = excluded.is_default
            """,
            (card.id, card.front.content, card.back.content, int(card.default)),
        )
        set_card_tags(conn, card.id, parse_tag_names(",".join(card.tags)))

    default_ids = [card.id for card in cards if card.default]
    user_ids = list_user_ids(conn)
    for user_id in user_ids:
        for card_id in default_ids:
            assign_card_to_student(conn, user_id, card_id, due=now)
    conn.commit()
    logger.info(
        "Synced %d cards; assigned %d default cards to %d users",
        len(cards),
        len(default_ids),
        len(user_ids),
    )
    return {"cards": len(cards), "defaults": len(default_ids), "users": len(user_ids)}


def assign_all_cards(conn, user_id: str) -> int:
    """Give a user every card; existing assignments are left intact."""
    cursor = conn.cursor()
    cursor.execute(
        """
        INSERT OR IGNORE INTO student_cards (user_id, card_id, status, due)
        SELECT ?, id, 0, 0 FROM cards
        """,
        (user_id,),
    )
    conn.commit()
    return cursor.rowcount


def assign_default_cards(conn, user_id: str, now: int) -> int:
    cursor = conn.cursor()
    cursor.execute(
        """
        INSERT OR IGNORE INTO student_cards (user_id, card_id, status, due)
        SELECT ?, id, 0, ? FROM cards WHERE is_default = 1
        """,
        (user_id, now),
    )
    return cursor.rowcount


def reset_progress(conn, user_id: str) -> int:
    """Put every card of a user back to new and clear their counters and streak."""
    cursor = conn.cursor()
    cursor.execute(
        "UPDATE student_cards SET status = 0, due = 0 WHERE user_id = ?",
        (user_id,),
    )
    reset = cursor.rowcount
    cursor.execute(
        """
        UPDATE users
        SET num_new_cards_today = 0,
            num_new_cards_today_updated_at = 0,
            streak_start_time = 0,
            streak_end_time = 0
        WHERE id = ?
        """,
        (user_id,),
    )
    conn.commit()
    return reset
