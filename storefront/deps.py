from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, Request

from .auth import SessionStore
from .config import Config
from .models import AdminAccount
from .repository import Stores

SESSION_COOKIE = "admin_session"


def get_stores(request: Request) -> Stores:
    return request.app.state.stores


def get_config(request: Request) -> Config:
    return request.app.state.config


def get_sessions(request: Request) -> SessionStore:
    return request.app.state.sessions


def session_token(request: Request) -> Optional[str]:
    auth = request.headers.get("authorization") or ""
    if auth.lower().startswith("bearer "):
        return auth[7:].strip() or None
    return request.cookies.get(SESSION_COOKIE) or None


def current_admin(
    request: Request,
    stores: Stores = Depends(get_stores),
    config: Config = Depends(get_config),
    sessions: SessionStore = Depends(get_sessions),
) -> Optional[AdminAccount]:
    """Resolve the calling admin from a session token or the static admin key.

    The static key maps to the first admin account.
    """
    account_id = sessions.resolve(session_token(request))
    if account_id:
        return stores.admins.get(account_id)
    hdr = request.headers.get("x-admin-key")
    if config.admin_key and hdr and hdr == config.admin_key:
        admins = stores.admins.list()
        return admins[0] if admins else None
    return None


def require_admin(admin: Optional[AdminAccount] = Depends(current_admin)) -> AdminAccount:
    if admin is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return admin


def changes_from(payload, exclude: tuple = ("id",)) -> dict:
    """Fields the client actually sent, minus ``exclude``."""
    sent = payload.__fields_set__
    return {k: getattr(payload, k) for k in sent if k not in exclude}
