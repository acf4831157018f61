from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from pydantic import BaseModel

from ..auth import SessionStore, authenticate, change_password
from ..config import Config
from ..deps import SESSION_COOKIE, changes_from, get_config, get_sessions, get_stores, require_admin, session_token
from ..models import AdminAccount, Notification, StoreSettings
from ..reports import build_report, customers_from_orders
from ..repository import Stores
from ..seed import seed_stores

router = APIRouter(tags=["admin"])
logger = logging.getLogger(__name__)


class LoginPayload(BaseModel):
    email: str = ""
    password: str = ""


class ProfilePayload(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    avatar: Optional[str] = None


class PasswordPayload(BaseModel):
    currentPassword: str = ""
    newPassword: str = ""
    confirmPassword: str = ""


class ConversationPayload(BaseModel):
    conversationId: Optional[str] = None


class NotificationPayload(BaseModel):
    id: Optional[str] = None
    title: Optional[str] = None
    message: Optional[str] = None
    type: Optional[str] = None
    priority: Optional[str] = None
    target: Optional[str] = None
    isActive: Optional[bool] = None
    scheduledAt: Optional[datetime] = None


# ---------------------------
# Auth
# ---------------------------
@router.post("/api/auth/login")
def login(payload: LoginPayload, response: Response,
          stores: Stores = Depends(get_stores), config: Config = Depends(get_config),
          sessions: SessionStore = Depends(get_sessions)):
    account = authenticate(stores.admins, payload.email, payload.password)
    if account is None:
        logger.warning(f"Failed admin login for {payload.email!r}")
        raise HTTPException(status_code=401, detail="Invalid email or password")
    token = sessions.issue(account.id)
    response.set_cookie(SESSION_COOKIE, token, max_age=config.session_ttl_secs, httponly=True, samesite="Lax")
    logger.info(f"Admin login: {account.email}")
    return {"success": True, "user": account.public(), "token": token, "message": "Login successful"}


@router.post("/api/auth/logout")
def logout(request: Request, response: Response, sessions: SessionStore = Depends(get_sessions)):
    sessions.revoke(session_token(request))
    response.delete_cookie(SESSION_COOKIE)
    return {"success": True, "message": "Logged out"}


@router.get("/api/admin/profile")
def get_profile(admin: AdminAccount = Depends(require_admin)):
    return {"success": True, "data": admin.public()}


@router.put("/api/admin/profile")
def update_profile(payload: ProfilePayload, stores: Stores = Depends(get_stores),
                   admin: AdminAccount = Depends(require_admin)):
    # empty values keep the current field
    changes: Dict[str, Any] = {k: v for k, v in (
        ("name", payload.name), ("email", payload.email), ("phone", payload.phone), ("avatar", payload.avatar),
    ) if v}
    if "email" in changes:
        changes["email"] = changes["email"].strip().lower()
    updated = stores.admins.update(admin.id, changes)
    if updated is None:
        raise HTTPException(status_code=404, detail="Admin not found")
    return {"success": True, "data": updated.public(), "message": "Profile updated successfully"}


@router.post("/api/admin/change-password")
def api_change_password(payload: PasswordPayload, stores: Stores = Depends(get_stores),
                        sessions: SessionStore = Depends(get_sessions),
                        admin: AdminAccount = Depends(require_admin)):
    ok, reason = change_password(
        stores.admins, admin, payload.currentPassword, payload.newPassword, payload.confirmPassword,
    )
    if not ok:
        raise HTTPException(status_code=400, detail=reason)
    sessions.revoke_account(admin.id)
    logger.info(f"Password changed for {admin.email}")
    return {"success": True, "message": "Password changed successfully"}


# ---------------------------
# Chats
# ---------------------------
@router.get("/api/admin/chats")
def admin_chats(conversationId: Optional[str] = Query(None),
                stores: Stores = Depends(get_stores), _=Depends(require_admin)):
    messages = sorted(stores.messages.list(), key=lambda m: m.timestamp)
    if conversationId:
        data = [m for m in messages if m.conversationId == conversationId]
        return {"success": True, "data": data, "count": len(data)}

    groups: Dict[str, Dict[str, Any]] = {}
    for m in messages:
        g = groups.setdefault(m.conversationId, {
            "conversationId": m.conversationId, "messageCount": 0, "unreadCount": 0, "lastMessage": None,
        })
        g["messageCount"] += 1
        if m.sender == "user" and not m.isRead:
            g["unreadCount"] += 1
        g["lastMessage"] = m
    conversations = sorted(groups.values(), key=lambda g: g["lastMessage"].timestamp, reverse=True)
    return {"success": True, "data": conversations, "count": len(conversations)}


@router.put("/api/admin/chats")
def mark_chat_read(payload: ConversationPayload, stores: Stores = Depends(get_stores), _=Depends(require_admin)):
    if not payload.conversationId:
        raise HTTPException(status_code=400, detail="Conversation ID is required")
    marked = 0
    for m in stores.messages.list():
        if m.conversationId == payload.conversationId and m.sender == "user" and not m.isRead:
            stores.messages.update(m.id, {"isRead": True})
            marked += 1
    return {"success": True, "message": "Messages marked as read", "count": marked}


@router.delete("/api/admin/chats")
def delete_chat_message(messageId: Optional[str] = Query(None),
                        stores: Stores = Depends(get_stores), _=Depends(require_admin)):
    if not messageId:
        raise HTTPException(status_code=400, detail="Message ID is required")
    if not stores.messages.delete(messageId):
        raise HTTPException(status_code=404, detail="Message not found")
    return {"success": True, "message": "Message deleted successfully"}


# ---------------------------
# Notifications
# ---------------------------
@router.get("/api/notifications")
def list_notifications(type: Optional[str] = Query(None), priority: Optional[str] = Query(None),
                       search: Optional[str] = Query(None), stores: Stores = Depends(get_stores),
                       _=Depends(require_admin)):
    items = sorted(stores.notifications.list(), key=lambda n: n.createdAt, reverse=True)
    if type and type != "all":
        items = [n for n in items if n.type == type]
    if priority and priority != "all":
        items = [n for n in items if n.priority == priority]
    if search:
        items = [n for n in items if n.matches_search(search)]
    return {"success": True, "data": items, "count": len(items)}


@router.post("/api/notifications", status_code=201)
def create_notification(payload: NotificationPayload, stores: Stores = Depends(get_stores),
                        _=Depends(require_admin)):
    if not (payload.title and payload.message and payload.type and payload.priority and payload.target):
        raise HTTPException(status_code=400, detail="Missing required fields: title, message, type, priority, target")
    try:
        notification = Notification.parse_obj(changes_from(payload))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    stores.notifications.create(notification)
    logger.info(f"Notification created: {notification.title!r} ({notification.id})")
    return {"success": True, "data": notification}


@router.put("/api/notifications")
def update_notification(payload: NotificationPayload, stores: Stores = Depends(get_stores),
                        _=Depends(require_admin)):
    if not payload.id:
        raise HTTPException(status_code=400, detail="Missing required field: id")
    try:
        notification = stores.notifications.update(payload.id, changes_from(payload))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if notification is None:
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"success": True, "data": notification}


@router.delete("/api/notifications")
def delete_notification(id: Optional[str] = Query(None), stores: Stores = Depends(get_stores),
                        _=Depends(require_admin)):
    if not id:
        raise HTTPException(status_code=400, detail="Missing required parameter: id")
    if not stores.notifications.delete(id):
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"success": True, "message": "Notification deleted successfully"}


# ---------------------------
# Settings, reports, customers
# ---------------------------
@router.get("/api/settings")
def get_settings(stores: Stores = Depends(get_stores)):
    return {"success": True, "data": stores.store_settings()}


@router.put("/api/settings")
def update_settings(body: Dict[str, Any], stores: Stores = Depends(get_stores), _=Depends(require_admin)):
    try:
        if stores.settings.get("store") is None:
            stores.settings.create(StoreSettings())
        settings = stores.settings.update("store", body)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "data": settings, "message": "Settings updated successfully"}


@router.get("/api/reports")
def get_reports(range: int = Query(30, ge=1, le=3650), stores: Stores = Depends(get_stores),
                _=Depends(require_admin)):
    data = build_report(stores.orders.list(), stores.products.list(), days=range)
    return {"success": True, "data": data}


@router.get("/api/customers")
def list_customers(search: Optional[str] = Query(None), stores: Stores = Depends(get_stores),
                   _=Depends(require_admin)):
    customers = customers_from_orders(stores.orders.list())
    if search:
        s = search.lower()
        customers = [
            c for c in customers
            if s in c["name"].lower() or s in c["email"].lower() or (c["phone"] and search in c["phone"])
        ]
    return {"success": True, "data": customers, "count": len(customers)}


@router.post("/api/seed")
def api_seed(stores: Stores = Depends(get_stores), config: Config = Depends(get_config),
             _=Depends(require_admin)):
    seed_stores(stores, config, force=True)
    return {"success": True, "message": "Database seeded successfully", "counts": stores.counts()}
