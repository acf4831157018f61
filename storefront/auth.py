from __future__ import annotations

import logging
import secrets
import threading
import time
from datetime import datetime
from typing import Dict, Optional, Tuple

from werkzeug.security import check_password_hash, generate_password_hash

from .models import AdminAccount
from .repository import Repository

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
DEFAULT_PERMISSIONS = ["products", "orders", "customers", "settings", "reports", "shipping", "chatbot"]


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def new_admin(email: str, password: str, name: str = "Admin User") -> AdminAccount:
    return AdminAccount(
        email=email.strip().lower(),
        name=name,
        role="Super Admin",
        permissions=list(DEFAULT_PERMISSIONS),
        passwordHash=hash_password(password),
    )


def find_admin(admins: Repository[AdminAccount], email: str) -> Optional[AdminAccount]:
    key = (email or "").strip().lower()
    return admins.find(lambda a: a.email == key)


def authenticate(admins: Repository[AdminAccount], email: str, password: str) -> Optional[AdminAccount]:
    account = find_admin(admins, email)
    if account is None or not password:
        return None
    if not check_password_hash(account.passwordHash, password):
        return None
    return admins.update(account.id, {"lastLogin": datetime.now()})


def change_password(
    admins: Repository[AdminAccount],
    account: AdminAccount,
    current: str,
    new: str,
    confirm: str,
) -> Tuple[bool, Optional[str]]:
    if not (current and new and confirm):
        return False, "All fields are required"
    if new != confirm:
        return False, "New passwords do not match"
    if len(new) < MIN_PASSWORD_LENGTH:
        return False, f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
    if not check_password_hash(account.passwordHash, current):
        return False, "Current password is incorrect"
    admins.update(account.id, {"passwordHash": hash_password(new)})
    return True, None


class SessionStore:
    """In-memory admin session tokens (per process)."""

    def __init__(self, ttl_secs: int = 86400) -> None:
        self.ttl_secs = ttl_secs
        self._sessions: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()

    def issue(self, account_id: str) -> str:
        token = secrets.token_urlsafe(32)
        with self._lock:
            self._sessions[token] = (account_id, time.time() + self.ttl_secs)
        return token

    def resolve(self, token: Optional[str]) -> Optional[str]:
        if not token:
            return None
        with self._lock:
            entry = self._sessions.get(token)
            if not entry:
                return None
            account_id, expires = entry
            if time.time() > expires:
                self._sessions.pop(token, None)
                return None
        return account_id

    def revoke(self, token: Optional[str]) -> None:
        if not token:
            return
        with self._lock:
            self._sessions.pop(token, None)

    def revoke_account(self, account_id: str) -> None:
        with self._lock:
            for token in [t for t, (aid, _) in self._sessions.items() if aid == account_id]:
                del self._sessions[token]
