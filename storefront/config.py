from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Load .env before reading any environment variables
load_dotenv()

DEFAULT_ADMIN_EMAIL = "admin@bloomyourstyle.com"
DEFAULT_ADMIN_PASSWORD = "admin123"


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}")


@dataclass
class Config:
    database_url: Optional[str] = None
    admin_key: Optional[str] = None
    admin_email: str = DEFAULT_ADMIN_EMAIL
    admin_password: str = DEFAULT_ADMIN_PASSWORD
    session_ttl_secs: int = 86400
    chat_history_limit: int = 50
    fallback_response: Optional[str] = None
    currency: str = "PKR"


def load_config() -> Config:
    return Config(
        database_url=os.getenv("DATABASE_URL") or os.getenv("DB_URL") or None,
        admin_key=os.getenv("ADMIN_KEY") or os.getenv("BOT_ADMIN_KEY") or None,
        admin_email=os.getenv("ADMIN_EMAIL", DEFAULT_ADMIN_EMAIL),
        admin_password=os.getenv("ADMIN_PASSWORD", DEFAULT_ADMIN_PASSWORD),
        session_ttl_secs=_env_int("ADMIN_SESSION_TTL_SECS", 86400),
        chat_history_limit=_env_int("CHAT_HISTORY_LIMIT", 50),
        fallback_response=os.getenv("FALLBACK_RESPONSE") or None,
        currency=os.getenv("CURRENCY", "PKR"),
    )
