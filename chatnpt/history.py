"""Saved ChatNPT conversations, always scoped to their owner."""
from __future__ import annotations

import re
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from app import db
from app.models import ChatHistory

_QUESTION_START = re.compile(r"^(who|what|where|when|why|how)", re.IGNORECASE)


def summarize_title(text: Optional[str]) -> str:
    if not text:
        return "New Chat"
    cleaned = re.sub(r"\?+$", "", text).strip()
    limit = 60 if _QUESTION_START.match(cleaned) else 50
    summary = cleaned[:limit]
    return summary[:1].upper() + summary[1:] + ("..." if len(cleaned) > limit else "")


def _first_message_text(messages: List[Any]) -> str:
    if not messages:
        return ""
    first = messages[0]
    if isinstance(first, dict):
        return str(first.get("content") or first.get("text") or "")
    return str(first)


def list_chats(user) -> List[ChatHistory]:
    return (
        ChatHistory.query.filter_by(user_id=user.id)
        .order_by(ChatHistory.updated_at.desc(), ChatHistory.id.desc())
        .all()
    )


def get_chat(user, chat_id: str) -> Optional[ChatHistory]:
    if not chat_id:
        return None
    return ChatHistory.query.filter_by(user_id=user.id, chat_id=chat_id).first()


def create_chat(user, title: Optional[str] = None, messages: Optional[List[Any]] = None) -> ChatHistory:
    messages = list(messages or [])
    now = datetime.now(timezone.utc)
    chat = ChatHistory(
        organization_id=user.organization_id,
        user_id=user.id,
        chat_id=str(uuid.uuid4()),
        title=(title or "").strip() or summarize_title(_first_message_text(messages)),
        messages=messages,
        created_at=now,
        updated_at=now,
    )
    db.session.add(chat)
    db.session.commit()
    return chat


def update_chat(user, chat_id: str, messages: Optional[List[Any]] = None, title: Optional[str] = None) -> Optional[ChatHistory]:
    chat = get_chat(user, chat_id)
    if chat is None:
        return None
    if messages is not None:
        chat.messages = list(messages)
    title = str(title or "").strip()
    if title:
        chat.title = title
    chat.updated_at = datetime.now(timezone.utc)
    db.session.commit()
    return chat


def delete_chat(user, chat_id: str) -> bool:
    chat = get_chat(user, chat_id)
    if chat is None:
        return False
    db.session.delete(chat)
    db.session.commit()
    return True


def serialize(chats: List[ChatHistory]) -> List[Dict[str, Any]]:
    return [c.to_dict() for c in chats]
