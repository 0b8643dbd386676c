"""Pytest fixtures: an isolated ~/.studycards directory and a logged-in client."""

import pytest
from fastapi.testclient import TestClient

import config
from db import database
from main import app
from utils.auth import hash_password

TEST_CONFIG = """[study]
max_new_cards_per_day = "20"
review_ahead_days = 0

[session]
secret = "test-secret"
session_minutes = 60
secure_cookies = false

[server]
host = "127.0.0.1"
port = 8000
"""

ENV_OVERRIDES = (
    "MAX_NEW_CARDS_PER_DAY",
    "REVIEW_AHEAD_DAYS",
    "STUDYCARDS_SESSION_SECRET",
    "SESSION_MINUTES",
    "SECURE_COOKIES",
    "STUDYCARDS_HOST",
    "STUDYCARDS_PORT",
)


@pytest.fixture
def studycards_home(tmp_path, monkeypatch):
    config_dir = tmp_path / ".studycards"
    config_dir.mkdir()
    config_path = config_dir / "config.toml"
    config_path.write_text(TEST_CONFIG, encoding="utf-8")

    for name in ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(config, "CONFIG_PATH", config_path)
    monkeypatch.setattr(database, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(database, "DB_PATH", config_dir / "studycards.db")
    monkeypatch.setattr(database, "BACKUP_DIR", config_dir / "backups")

    database.init_db(run_backup=False)
    return config_dir


@pytest.fixture
def conn(studycards_home):
    with database.get_conn() as connection:
        yield connection


@pytest.fixture
def user(conn):
    conn.execute(
        "INSERT INTO users (id, email, password_hash) VALUES (?, ?, ?)",
        ("harvey", "harvey@example.com", hash_password("hunter22")),
    )
    conn.commit()
    return "harvey"


@pytest.fixture
def client(studycards_home, user):
    test_client = TestClient(app)
    response = test_client.post(
        "/login",
        data={"email": "harvey@example.com", "password": "hunter22"},
        follow_redirects=False,
    )
    assert response.status_code == 303
    return test_client


def add_card(conn, card_id, front="Front", back="Back", created_by=None, tags=(), user_id=None, status=0, due=0):
    conn.execute(
        "INSERT INTO cards (id, front, back, created_by) VALUES (?, ?, ?, ?)",
        (card_id, front, back, created_by),
    )
    for tag in tags:
        conn.execute("INSERT OR IGNORE INTO tags (name) VALUES (?)", (tag,))
        conn.execute(
            "INSERT INTO card_tags (card_id, tag_id) SELECT ?, id FROM tags WHERE name = ?",
            (card_id, tag),
        )
    if user_id:
        conn.execute(
            "INSERT INTO student_cards (user_id, card_id, status, due) VALUES (?, ?, ?, ?)",
            (user_id, card_id, status, due),
        )
    conn.commit()


@pytest.fixture
def make_card(conn):
    def _make(card_id, **kwargs):
        add_card(conn, card_id, **kwargs)
        return card_id

    return _make
