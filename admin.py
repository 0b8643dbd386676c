import argparse
import getpass
import logging
import sqlite3
import sys
import time
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from config import load_config
from db import database
from models.user import UserCreate
from utils.auth import hash_password
from utils.seed import assign_all_cards, assign_default_cards, load_seed_cards, reset_progress, sync_official_cards
from utils.students import create_user, get_user

logger = logging.getLogger("studycards.admin")


def cmd_init(args) -> int:
    load_config()
    database.init_db(run_backup=False)
    logger.info("Database ready at %s", database.DB_PATH)
    return 0


def cmd_create_user(args) -> int:
    password = args.password or getpass.getpass("Password: ")
    try:
        user = UserCreate(id=args.user_id, email=args.email, password=password)
    except ValidationError as exc:
        logger.error("Invalid user: %s", exc)
        return 1
    database.init_db(run_backup=False)
    with database.get_conn() as conn:
        try:
            create_user(conn, user.id, user.email, hash_password(user.password))
        except (sqlite3.IntegrityError, ValueError) as exc:
            logger.error("Could not create user %s: %s", user.id, exc)
            return 1
        assigned = assign_default_cards(conn, user.id, int(time.time()))
        conn.commit()
    logger.info("Created user %s with %d default cards", user.id, assigned)
    return 0


def cmd_seed_cards(args) -> int:
    try:
        cards = load_seed_cards(Path(args.path))
    except (OSError, ValueError) as exc:
        logger.error("Could not read %s: %s", args.path, exc)
        return 1
    database.init_db(run_backup=False)
    with database.get_conn() as conn:
        sync_official_cards(conn, cards, int(time.time()))
    return 0


def cmd_assign_all_cards(args) -> int:
    database.init_db(run_backup=False)
    with database.get_conn() as conn:
        if get_user(conn, args.user_id) is None:
            logger.error("Unknown user %s", args.user_id)
            return 1
        assigned = assign_all_cards(conn, args.user_id)
    logger.info("Assigned %d cards to %s (existing assignments left intact)", assigned, args.user_id)
    return 0


def cmd_reset_progress(args) -> int:
    database.init_db(run_backup=False)
    with database.get_conn() as conn:
        if get_user(conn, args.user_id) is None:
            logger.error("Unknown user %s", args.user_id)
            return 1
        reset = reset_progress(conn, args.user_id)
    logger.info("Reset %d cards for %s", reset, args.user_id)
    return 0


def cmd_backup(args) -> int:
    if args.output:
        destination = Path(args.output)
    else:
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        destination = database.BACKUP_DIR / f"manual-{timestamp}.zip"
    try:
        database.create_backup_archive_file(destination, database.get_schema_version_from_db())
    except FileNotFoundError as exc:
        logger.error("Backup failed: %s", exc)
        return 1
    return 0


def cmd_restore(args) -> int:
    try:
        data = Path(args.path).read_bytes()
        database.restore_backup_archive(data)
    except (OSError, ValueError) as exc:
        logger.error("Restore failed: %s", exc)
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="StudyCards admin")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="Create the database and config").set_defaults(func=cmd_init)

    create = sub.add_parser("create-user", help="Add a user and give them the default cards")
    create.add_argument("user_id")
    create.add_argument("email")
    create.add_argument("--password", help="Prompted for when omitted")
    create.set_defaults(func=cmd_create_user)

    seed = sub.add_parser("seed-cards", help="Upsert official cards from a JSON file")
    seed.add_argument("path")
    seed.set_defaults(func=cmd_seed_cards)

    assign = sub.add_parser("assign-all-cards", help="Give a user every card")
    assign.add_argument("user_id")
    assign.set_defaults(func=cmd_assign_all_cards)

    reset = sub.add_parser("reset-progress", help="Mark all of a user's cards new again")
    reset.add_argument("user_id")
    reset.set_defaults(func=cmd_reset_progress)

    backup = sub.add_parser("backup", help="Write a zip of the database and config")
    backup.add_argument("--output", help="Destination zip path")
    backup.set_defaults(func=cmd_backup)

    restore = sub.add_parser("restore", help="Restore the database and config from a zip")
    restore.add_argument("path")
    restore.set_defaults(func=cmd_restore)
    return parser


def main(argv=None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
