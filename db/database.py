import io
import json
import logging
import shutil
import sqlite3
import tempfile
import zipfile
from contextlib import contextmanager
from datetime import date, datetime, timezone
from pathlib import Path

import config
from .schema import SCHEMA_SQL, INDEXES_SQL, SCHEMA_VERSION

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".studycards"
DB_PATH = CONFIG_DIR / "studycards.db"
BACKUP_DIR = CONFIG_DIR / "backups"
BACKUP_KEEP = 7
DB_ARCNAME = "studycards.db"
CONFIG_ARCNAME = "config.toml"


def init_db(run_backup: bool = True):
    """Initialize the database by creating tables and indexes if they don't exist."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    with get_conn() as conn:
        conn.executescript(SCHEMA_SQL)
        conn.executescript(INDEXES_SQL)
        ensure_user_counter_columns(conn)
        ensure_card_default_flag(conn)
        ensure_schema_version(conn)
        conn.commit()
    if run_backup:
        run_daily_backup()


def ensure_user_counter_columns(conn: sqlite3.Connection) -> None:
    """Ensure users table has the daily counter and streak columns for existing installs."""
    cursor = conn.cursor()
    cursor.execute("PRAGMA table_info(users)")
    columns = {row[1] for row in cursor.fetchall()}
    for column in (
        "num_new_cards_today",
        "num_new_cards_today_updated_at",
        "streak_start_time",
        "streak_end_time",
    ):
        if column not in columns:
            cursor.execute(f"ALTER TABLE users ADD COLUMN {column} INTEGER NOT NULL DEFAULT 0")


def ensure_card_default_flag(conn: sqlite3.Connection) -> None:
    """Ensure cards table has is_default column."""
    cursor = conn.cursor()
    cursor.execute("PRAGMA table_info(cards)")
    columns = {row[1] for row in cursor.fetchall()}
    if "is_default" not in columns:
        cursor.execute("ALTER TABLE cards ADD COLUMN is_default INTEGER NOT NULL DEFAULT 0")


def get_schema_version(conn: sqlite3.Connection) -> int:
    """Read the SQLite schema version from PRAGMA user_version."""
    cursor = conn.cursor()
    cursor.execute("PRAGMA user_version")
    row = cursor.fetchone()
    return int(row[0]) if row else 0


def set_schema_version(conn: sqlite3.Connection, version: int) -> None:
    conn.execute(f"PRAGMA user_version = {int(version)}")


def ensure_schema_version(conn: sqlite3.Connection) -> None:
    current = get_schema_version(conn)
    if current != SCHEMA_VERSION:
        logger.info("Migrating schema version %s -> %s", current, SCHEMA_VERSION)
        set_schema_version(conn, SCHEMA_VERSION)


def get_schema_version_from_db() -> int:
    """Get the schema version from the on-disk database."""
    if not DB_PATH.exists():
        return SCHEMA_VERSION
    with get_conn() as conn:
        return get_schema_version(conn)


def build_backup_manifest(schema_version: int) -> dict:
    """Build a manifest for backups with timestamp and schema version."""
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "schema_version": schema_version,
    }


def _check_backup_sources() -> None:
    if not DB_PATH.exists():
        raise FileNotFoundError(f"{DB_ARCNAME} not found")
    if not config.CONFIG_PATH.exists():
        raise FileNotFoundError(f"{CONFIG_ARCNAME} not found")


def _write_backup(zipf: zipfile.ZipFile, schema_version: int) -> None:
    manifest = build_backup_manifest(schema_version)
    zipf.writestr("manifest.json", json.dumps(manifest, indent=2))
    zipf.write(DB_PATH, arcname=DB_ARCNAME)
    zipf.write(config.CONFIG_PATH, arcname=CONFIG_ARCNAME)


def create_backup_archive_file(destination: Path, schema_version: int) -> None:
    """Create a backup zip archive at the given destination."""
    _check_backup_sources()
    destination.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(destination, "w", compression=zipfile.ZIP_DEFLATED) as zipf:
        _write_backup(zipf, schema_version)
    logger.info("Wrote backup %s", destination)


def run_daily_backup() -> None:
    """Create a daily rolling backup of the DB/config and prune old archives."""
    if not DB_PATH.exists() or not config.CONFIG_PATH.exists():
        return
    BACKUP_DIR.mkdir(parents=True, exist_ok=True)
    today = date.today()
    existing = sorted(BACKUP_DIR.glob("backup-*.zip"), key=lambda path: path.stat().st_mtime, reverse=True)
    if existing:
        latest_date = date.fromtimestamp(existing[0].stat().st_mtime)
        if latest_date == today:
            return
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    backup_path = BACKUP_DIR / f"backup-{timestamp}.zip"
    create_backup_archive_file(backup_path, get_schema_version_from_db())
    existing = sorted(BACKUP_DIR.glob("backup-*.zip"), key=lambda path: path.stat().st_mtime, reverse=True)
    for old_backup in existing[BACKUP_KEEP:]:
        old_backup.unlink(missing_ok=True)


def restore_backup_archive(data: bytes) -> None:
    """Replace the database and config with the contents of a backup archive.

    A safety backup of the current files is written first. Raises ValueError if
    the archive is not a backup for this schema version.
    """
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as zipf:
            names = set(zipf.namelist())
            if "manifest.json" not in names:
                raise ValueError("Backup manifest is missing")
            manifest = json.loads(zipf.read("manifest.json"))
            manifest_version = manifest.get("schema_version")
            if manifest_version != SCHEMA_VERSION:
                raise ValueError(
                    f"Schema version mismatch (expected {SCHEMA_VERSION}, got {manifest_version})"
                )
            if DB_ARCNAME not in names or CONFIG_ARCNAME not in names:
                raise ValueError("Backup missing required files")
            if DB_PATH.exists() and config.CONFIG_PATH.exists():
                timestamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
                safety_path = BACKUP_DIR / f"safety-{timestamp}.zip"
                create_backup_archive_file(safety_path, get_schema_version_from_db())
            with tempfile.TemporaryDirectory() as tmpdir:
                zipf.extract(DB_ARCNAME, tmpdir)
                zipf.extract(CONFIG_ARCNAME, tmpdir)
                temp_db = Path(tmpdir) / DB_ARCNAME
                temp_config = Path(tmpdir) / CONFIG_ARCNAME
                DB_PATH.parent.mkdir(parents=True, exist_ok=True)
                config.CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
                shutil.move(str(temp_db), DB_PATH)
                shutil.move(str(temp_config), config.CONFIG_PATH)
    except zipfile.BadZipFile as exc:
        raise ValueError("Invalid zip archive") from exc
    logger.info("Restored database and config from backup")


@contextmanager
def get_conn():
    """Context manager for SQLite connection, using row_factory for dict-like rows."""
    conn = sqlite3.connect(DB_PATH, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
    finally:
        conn.close()


def get_db():
    """FastAPI dependency that yields a DB connection and closes it afterwards."""
    with get_conn() as conn:
        yield conn
