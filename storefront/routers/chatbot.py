from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from pydantic import BaseModel

from ..config import Config
from ..deps import changes_from, get_config, get_stores, require_admin
from ..keyword_responder import DEFAULT_FALLBACK, find_match
from ..models import ChatMessage, KeywordRecord
from ..order_lookup import ASK_FOR_NUMBER, extract_order_id, is_status_inquiry, status_reply
from ..repository import Stores

router = APIRouter(tags=["chatbot"])
logger = logging.getLogger(__name__)

CHAT_COOKIE = "chat_session"


class ChatRequest(BaseModel):
    message: Optional[str] = None
    conversationId: Optional[str] = None


class KeywordPayload(BaseModel):
    keyword: str
    response: str
    category: str
    variations: List[str] = []
    isActive: bool = True
    priority: int = 5


class KeywordUpdate(BaseModel):
    id: str
    keyword: Optional[str] = None
    variations: Optional[List[str]] = None
    response: Optional[str] = None
    category: Optional[str] = None
    isActive: Optional[bool] = None
    priority: Optional[int] = None


def answer(message: str, stores: Stores, config: Config) -> tuple[str, str]:
    """Produce the bot reply for one chat turn. Returns (reply, source)."""
    order_id = extract_order_id(message)
    if order_id:
        return status_reply(stores.orders, order_id, stores.store_settings().currency), "Order"
    if is_status_inquiry(message):
        return ASK_FOR_NUMBER, "Order"
    match = find_match(message, stores.keywords.list())
    if match:
        return match.response, "Keyword"
    return (config.fallback_response or DEFAULT_FALLBACK), "Fallback"


@router.post("/api/chatbot")
def chat(req: ChatRequest, request: Request, response: Response,
         stores: Stores = Depends(get_stores), config: Config = Depends(get_config)):
    user_msg = (req.message or "").strip()
    if not user_msg:
        raise HTTPException(status_code=400, detail="Message is required")

    # Prefer payload conversationId; else cookie; else create
    conversation_id = (req.conversationId or request.cookies.get(CHAT_COOKIE) or "").strip()
    if not conversation_id:
        conversation_id = uuid.uuid4().hex
        response.set_cookie(CHAT_COOKIE, conversation_id, max_age=60*60*24*30, httponly=False, samesite="Lax")

    reply, source = answer(user_msg, stores, config)
    stores.messages.create(ChatMessage(conversationId=conversation_id, sender="user", message=user_msg))
    bot_msg = stores.messages.create(
        ChatMessage(conversationId=conversation_id, sender="bot", message=reply, isRead=True)
    )
    logger.info(f"chat {conversation_id}: source={source}")
    return {
        "success": True,
        "response": reply,
        "source": source,
        "conversationId": conversation_id,
        "messageId": bot_msg.id,
    }


@router.get("/api/chatbot")
def chat_history(request: Request, conversationId: Optional[str] = Query(None),
                 stores: Stores = Depends(get_stores), config: Config = Depends(get_config)):
    conversation_id = (conversationId or request.cookies.get(CHAT_COOKIE) or "default").strip()
    messages = [m for m in stores.messages.list() if m.conversationId == conversation_id]
    messages.sort(key=lambda m: m.timestamp)
    if config.chat_history_limit > 0:
        messages = messages[-config.chat_history_limit:]
    conversation = [
        {
            "id": m.id,
            "text": m.message,
            "sender": m.sender,
            "timestamp": m.timestamp,
            "conversationId": m.conversationId,
        }
        for m in messages
    ]
    return {"success": True, "conversation": conversation, "conversationId": conversation_id}


# ---------------------------
# Keyword admin
# ---------------------------
@router.get("/api/chatbot/keywords")
def list_keywords(stores: Stores = Depends(get_stores)):
    items = stores.keywords.list()
    return {"success": True, "data": items, "count": len(items)}


@router.post("/api/chatbot/keywords", status_code=201)
def create_keyword(payload: KeywordPayload, stores: Stores = Depends(get_stores), _=Depends(require_admin)):
    if not (payload.keyword.strip() and payload.response.strip() and payload.category.strip()):
        raise HTTPException(status_code=400, detail="Missing required fields: keyword, response, category")
    try:
        record = KeywordRecord(
            keyword=payload.keyword.strip().lower(),
            variations=payload.variations,
            response=payload.response,
            category=payload.category.strip(),
            isActive=payload.isActive,
            priority=payload.priority,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    stores.keywords.create(record)
    logger.info(f"Keyword created: {record.keyword!r} ({record.id})")
    return {"success": True, "data": record}


@router.put("/api/chatbot/keywords")
def update_keyword(payload: KeywordUpdate, stores: Stores = Depends(get_stores), _=Depends(require_admin)):
    changes = changes_from(payload)
    if changes.get("keyword"):
        changes["keyword"] = changes["keyword"].strip().lower()
    try:
        record = stores.keywords.update(payload.id, changes)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if record is None:
        raise HTTPException(status_code=404, detail="Keyword not found")
    return {"success": True, "data": record}


@router.delete("/api/chatbot/keywords")
def delete_keyword(id: Optional[str] = Query(None), stores: Stores = Depends(get_stores), _=Depends(require_admin)):
    if not id:
        raise HTTPException(status_code=400, detail="Keyword ID required")
    if not stores.keywords.delete(id):
        raise HTTPException(status_code=404, detail="Keyword not found")
    return {"success": True, "message": "Keyword deleted successfully"}
