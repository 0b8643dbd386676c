from __future__ import annotations

import logging
from typing import Optional, Tuple

from models.user import User
from utils.cards import fetch_student_cards
from utils.daily import incremented_new_cards_today, new_cards_today
from utils.due import count_due_cards
from utils.streak import StreakUpdate, decide_streak_update

logger = logging.getLogger(__name__)

_USER_COLUMNS = """
    id,
    email,
    num_new_cards_today,
    num_new_cards_today_updated_at,
    streak_start_time,
    streak_end_time
"""


def get_user(conn, user_id: str) -> Optional[User]:
    cursor = conn.cursor()
    cursor.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", (user_id,))
    row = cursor.fetchone()
    if not row:
        return None
    return User(**dict(row))


def get_password_hash(conn, email: str) -> Optional[Tuple[str, str]]:
    """Return (user id, password hash) for an e-mail address."""
    cursor = conn.cursor()
    cursor.execute(
        "SELECT id, password_hash FROM users WHERE email = ?",
        (email.strip().lower(),),
    )
    row = cursor.fetchone()
    if not row:
        return None
    return row["id"], row["password_hash"]


def create_user(conn, user_id: str, email: str, password_hash: str) -> None:
    cursor = conn.cursor()
    cursor.execute(
        "INSERT INTO users (id, email, password_hash) VALUES (?, ?, ?)",
        (user_id, email.strip().lower(), password_hash),
    )


def list_user_ids(conn) -> list:
    cursor = conn.cursor()
    cursor.execute("SELECT id FROM users ORDER BY id")
    return [row["id"] for row in cursor.fetchall()]


def get_num_new_cards_today(conn, user_id: str, now: int) -> int:
    """Today's new-card count, resetting the stored counter when the UK day has changed."""
    user = get_user(conn, user_id)
    if user is None:
        raise LookupError(f"unknown user {user_id}")
    count = new_cards_today(user.num_new_cards_today, user.num_new_cards_today_updated_at, now)
    if count != user.num_new_cards_today or user.num_new_cards_today_updated_at == 0:
        conn.execute(
            """
            UPDATE users
            SET num_new_cards_today = ?, num_new_cards_today_updated_at = ?
            WHERE id = ?
            """,
            (count, now, user_id),
        )
    return count


def increment_num_new_cards_today(conn, user_id: str, now: int) -> int:
    user = get_user(conn, user_id)
    if user is None:
        raise LookupError(f"unknown user {user_id}")
    count = incremented_new_cards_today(
        user.num_new_cards_today, user.num_new_cards_today_updated_at, now
    )
    conn.execute(
        """
        UPDATE users
        SET num_new_cards_today = ?, num_new_cards_today_updated_at = ?
        WHERE id = ?
        """,
        (count, now, user_id),
    )
    return count


def get_streak_times(conn, user_id: str) -> Tuple[int, int]:
    user = get_user(conn, user_id)
    if user is None:
        return 0, 0
    return user.streak_start_time, user.streak_end_time


def save_streak_update(conn, user_id: str, update: StreakUpdate) -> None:
    fields = update.as_fields()
    assignments = ", ".join(f"{name} = ?" for name in fields)
    conn.execute(
        f"UPDATE users SET {assignments} WHERE id = ?",
        (*fields.values(), user_id),
    )


def check_and_update_streak(conn, user_id: str, now: int) -> Optional[StreakUpdate]:
    """Extend or restart the user's streak once everything due today is done."""
    cards = fetch_student_cards(conn, user_id)
    stats = count_due_cards(cards, now)
    num_new_today = get_num_new_cards_today(conn, user_id, now)
    start, end = get_streak_times(conn, user_id)
    update = decide_streak_update(stats, num_new_today, start, end, now)
    if update is None:
        return None
    save_streak_update(conn, user_id, update)
    conn.commit()
    logger.debug("Streak updated for %s: %s", user_id, update.as_fields())
    return update
