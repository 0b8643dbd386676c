# SQL schema for the StudyCards database

SCHEMA_VERSION = 3

SCHEMA_SQL = """
-- Users (one user studies one card set)
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    email TEXT UNIQUE NOT NULL,
    password_hash TEXT NOT NULL,
    num_new_cards_today INTEGER NOT NULL DEFAULT 0,
    num_new_cards_today_updated_at INTEGER NOT NULL DEFAULT 0,
    streak_start_time INTEGER NOT NULL DEFAULT 0,
    streak_end_time INTEGER NOT NULL DEFAULT 0
);

-- Flashcards; created_by is NULL for official cards
CREATE TABLE IF NOT EXISTS cards (
    id TEXT PRIMARY KEY,
    front TEXT NOT NULL,
    back TEXT NOT NULL,
    created_by TEXT,
    is_default INTEGER NOT NULL DEFAULT 0
);

-- Tags
CREATE TABLE IF NOT EXISTS tags (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT UNIQUE NOT NULL
);

CREATE TABLE IF NOT EXISTS card_tags (
    card_id TEXT NOT NULL,
    tag_id INTEGER NOT NULL,
    PRIMARY KEY (card_id, tag_id),
    FOREIGN KEY (card_id) REFERENCES cards (id) ON DELETE CASCADE,
    FOREIGN KEY (tag_id) REFERENCES tags (id) ON DELETE CASCADE
);

-- Per-user study state of each assigned card
CREATE TABLE IF NOT EXISTS student_cards (
    user_id TEXT NOT NULL,
    card_id TEXT NOT NULL,
    status INTEGER NOT NULL DEFAULT 0 CHECK(status BETWEEN 0 AND 6),
    due INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (user_id, card_id),
    FOREIGN KEY (user_id) REFERENCES users (id) ON DELETE CASCADE,
    FOREIGN KEY (card_id) REFERENCES cards (id) ON DELETE CASCADE
);
"""

# Indexes for performance
INDEXES_SQL = """
CREATE INDEX IF NOT EXISTS idx_cards_created_by ON cards (created_by);
CREATE INDEX IF NOT EXISTS idx_tags_name ON tags (name);
CREATE INDEX IF NOT EXISTS idx_card_tags_card ON card_tags (card_id);
CREATE INDEX IF NOT EXISTS idx_card_tags_tag ON card_tags (tag_id);
CREATE INDEX IF NOT EXISTS idx_student_cards_user ON student_cards (user_id);
CREATE INDEX IF NOT EXISTS idx_student_cards_due ON student_cards (user_id, due);
"""
