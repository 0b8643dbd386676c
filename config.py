import tomllib
import shutil
import re
from pathlib import Path
from typing import Any, Dict, Optional
from dotenv import load_dotenv
import os

CONFIG_DIR = Path.home() / ".studycards"
CONFIG_PATH = CONFIG_DIR / "config.toml"
PROJECT_CONFIG_EXAMPLE = Path(__file__).parent / "config.toml"

DEFAULT_MAX_NEW_CARDS_PER_DAY = "20"
DEFAULT_SESSION_MINUTES = 30 * 24 * 60


def _env_flag(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).strip().lower() in {"1", "true", "yes"}


def load_config() -> Dict[str, Any]:
    """Load config from ~/.studycards/config.toml, copy example if missing, load .env overrides."""
    load_dotenv()
    if not CONFIG_PATH.exists():
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        shutil.copy(PROJECT_CONFIG_EXAMPLE, CONFIG_PATH)
    with open(CONFIG_PATH, "rb") as f:
        config = tomllib.load(f)

    study_cfg = config.get("study", {})
    # Kept as a string: the selection policy parses it and rejects bad values
    config["study"] = {
        "max_new_cards_per_day": str(os.getenv(
            "MAX_NEW_CARDS_PER_DAY",
            study_cfg.get("max_new_cards_per_day", DEFAULT_MAX_NEW_CARDS_PER_DAY),
        )),
        "review_ahead_days": int(os.getenv(
            "REVIEW_AHEAD_DAYS", study_cfg.get("review_ahead_days", 0)
        )),
    }
    session_cfg = config.get("session", {})
    config["session"] = {
        "secret": os.getenv("STUDYCARDS_SESSION_SECRET", session_cfg.get("secret", "")),
        "session_minutes": int(os.getenv(
            "SESSION_MINUTES", session_cfg.get("session_minutes", DEFAULT_SESSION_MINUTES)
        )),
        "secure_cookies": _env_flag(
            "SECURE_COOKIES", bool(session_cfg.get("secure_cookies", False))
        ),
    }
    server_cfg = config.get("server", {})
    config["server"] = {
        "host": os.getenv("STUDYCARDS_HOST", server_cfg.get("host", "127.0.0.1")),
        "port": int(os.getenv("STUDYCARDS_PORT", server_cfg.get("port", 8000))),
    }
    return config


def get_config_value(section: str, key: str, default: Optional[Any] = None) -> Any:
    """Get nested config value, e.g., get_config_value('study', 'max_new_cards_per_day')."""
    config = load_config()
    value = config.get(section, {}).get(key, default)
    return value


def set_session_secret(secret: str) -> None:
    """Persist the cookie signing secret into config.toml."""
    load_config()
    text = CONFIG_PATH.read_text()
    if not re.search(r"^\[session\]", text, flags=re.MULTILINE):
        text = text.rstrip() + f'\n\n[session]\nsecret = "{secret}"\n'
        CONFIG_PATH.write_text(text)
        return

    def update_section(match: re.Match) -> str:
        section = match.group(1)
        rest = match.group(2)
        if re.search(r"^secret\s*=", section, flags=re.MULTILINE):
            section = re.sub(
                r"^secret\s*=.*$",
                f'secret = "{secret}"',
                section,
                flags=re.MULTILINE,
            )
        else:
            lines = section.rstrip().splitlines()
            insert_at = 1 if lines else 0
            lines.insert(insert_at, f'secret = "{secret}"')
            section = "\n".join(lines) + "\n"
        return section + rest

    text = re.sub(r"(?ms)(^\[session\].*?)(^\[|\Z)", update_section, text, count=1)
    CONFIG_PATH.write_text(text)
