from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import secrets
import time
from typing import Optional

from fastapi import HTTPException, Request, Response, status

from config import load_config, set_session_secret

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "session"
PASSWORD_HASH_ALGO = "pbkdf2_sha256"
PASSWORD_HASH_ITERATIONS = 200_000


def _get_session_config() -> dict:
    config = load_config()
    return config.get("session", {})


def get_session_minutes() -> int:
    return int(_get_session_config()["session_minutes"])


def secure_cookies_enabled() -> bool:
    return bool(_get_session_config()["secure_cookies"])


def get_session_secret() -> str:
    """Cookie signing secret; generated and written to config.toml on first use."""
    secret = _get_session_config().get("secret")
    if secret:
        return secret
    secret = secrets.token_hex(32)
    set_session_secret(secret)
    logger.info("Generated a new session secret")
    return secret


def hash_password(password: str) -> str:
    if not password:
        raise ValueError("Password cannot be empty")
    salt = secrets.token_hex(16)
    dk = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt.encode("utf-8"),
        PASSWORD_HASH_ITERATIONS,
    )
    digest = base64.urlsafe_b64encode(dk).decode("utf-8")
    return f"{PASSWORD_HASH_ALGO}${PASSWORD_HASH_ITERATIONS}${salt}${digest}"


def verify_password(password: str, stored_hash: str) -> bool:
    if not stored_hash:
        return False
    try:
        algo, iterations_str, salt, digest = stored_hash.split("$", 3)
    except ValueError:
        return False
    if algo != PASSWORD_HASH_ALGO:
        return False
    try:
        iterations = int(iterations_str)
    except ValueError:
        return False
    dk = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt.encode("utf-8"),
        iterations,
    )
    computed = base64.urlsafe_b64encode(dk).decode("utf-8")
    return hmac.compare_digest(computed, digest)


def _sign(payload: str, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).hexdigest()


def create_session_cookie(user_id: str, duration_minutes: int, secret: str) -> str:
    expires_at = int(time.time()) + int(duration_minutes) * 60
    payload = f"{user_id}:{expires_at}"
    return f"{payload}:{_sign(payload, secret)}"


def read_session_cookie(cookie_value: Optional[str], secret: str) -> Optional[str]:
    """Return the user id from a valid, unexpired session cookie."""
    if not cookie_value or not secret:
        return None
    try:
        user_id, expires_str, signature = cookie_value.rsplit(":", 2)
    except ValueError:
        return None
    expected = _sign(f"{user_id}:{expires_str}", secret)
    if not hmac.compare_digest(signature, expected):
        return None
    try:
        expires_at = int(expires_str)
    except ValueError:
        return None
    if expires_at < int(time.time()):
        return None
    return user_id or None


def set_cookie(response: Response, key: str, value: str, max_age: Optional[int] = None) -> None:
    response.set_cookie(
        key,
        value,
        max_age=max_age,
        httponly=True,
        samesite="lax",
        secure=secure_cookies_enabled(),
    )


def start_session(response: Response, user_id: str) -> None:
    minutes = get_session_minutes()
    cookie = create_session_cookie(user_id, minutes, get_session_secret())
    set_cookie(response, SESSION_COOKIE_NAME, cookie, max_age=minutes * 60)


def get_current_user_id(request: Request) -> Optional[str]:
    cookie_value = request.cookies.get(SESSION_COOKIE_NAME)
    if not cookie_value:
        return None
    return read_session_cookie(cookie_value, get_session_secret())


def require_user(request: Request) -> str:
    user_id = get_current_user_id(request)
    if user_id:
        return user_id
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Login required")
