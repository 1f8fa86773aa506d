"""Request records and response parsing for the Telegram Bot API calls we use."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Optional

from telegram import InlineKeyboardMarkup
from telegram.constants import ParseMode

# Telegram's "General" topic; messages there are sent without a thread id.
DEFAULT_THREAD_ID = "1"


def thread_param(thread_id: Optional[str]) -> Optional[str]:
    """Return the thread id to send, or ``None`` when it must be omitted."""
    if not thread_id or thread_id == DEFAULT_THREAD_ID:
        return None
    return thread_id


def _with_thread(payload: Dict[str, Any], thread_id: Optional[str]) -> Dict[str, Any]:
    tid = thread_param(thread_id)
    if tid is not None:
        payload["message_thread_id"] = tid
    return payload


@dataclass(frozen=True)
class SendMessage:
    method: ClassVar[str] = "sendMessage"

    chat_id: str
    text: str
    thread_id: Optional[str] = None
    reply_markup: Optional[InlineKeyboardMarkup] = None
    parse_mode: str = ParseMode.HTML
    disable_web_page_preview: bool = True

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "chat_id": self.chat_id,
            "text": self.text,
            "parse_mode": str(self.parse_mode),
            "disable_web_page_preview": self.disable_web_page_preview,
        }
        _with_thread(payload, self.thread_id)
        if self.reply_markup is not None:
            payload["reply_markup"] = self.reply_markup.to_dict()
        return payload


@dataclass(frozen=True)
class EditMessageText:
    method: ClassVar[str] = "editMessageText"

    chat_id: str
    message_id: str
    text: str
    thread_id: Optional[str] = None
    parse_mode: str = ParseMode.HTML
    disable_web_page_preview: bool = True

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "chat_id": self.chat_id,
            "message_id": self.message_id,
            "text": self.text,
            "parse_mode": str(self.parse_mode),
            "disable_web_page_preview": self.disable_web_page_preview,
        }
        return _with_thread(payload, self.thread_id)


@dataclass(frozen=True)
class GetChatHistory:
    method: ClassVar[str] = "getChatHistory"

    chat_id: str
    limit: int = 100
    thread_id: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return _with_thread({"chat_id": self.chat_id, "limit": self.limit}, self.thread_id)


@dataclass(frozen=True)
class GetMessage:
    method: ClassVar[str] = "getMessage"

    chat_id: str
    message_id: str

    def to_payload(self) -> Dict[str, Any]:
        return {"chat_id": self.chat_id, "message_id": self.message_id}


# ──────────────────────────────────────────────────────────
# Response parsing. Each parser takes the decoded JSON body.
# ──────────────────────────────────────────────────────────


def parse_message_id(body: Any) -> Optional[str]:
    result = body.get("result") if isinstance(body, dict) else None
    if not isinstance(result, dict):
        return None
    message_id = result.get("message_id")
    if isinstance(message_id, bool) or not isinstance(message_id, (int, str)):
        return None
    return str(message_id)


def parse_history(body: Any) -> List[str]:
    result = body.get("result") if isinstance(body, dict) else None
    if not isinstance(result, list):
        return []
    ids: List[str] = []
    for message in result:
        if isinstance(message, dict) and message.get("message_id") is not None:
            ids.append(str(message["message_id"]))
    return ids


def parse_message_text(body: Any) -> Optional[str]:
    result = body.get("result") if isinstance(body, dict) else None
    if not isinstance(result, dict):
        return None
    text = result.get("text")
    return text if isinstance(text, str) else None


def parse_retry_after(body: Any) -> Optional[float]:
    """Extract ``parameters.retry_after`` (seconds) from a 429 body."""
    if not isinstance(body, dict):
        return None
    params = body.get("parameters")
    if not isinstance(params, dict):
        return None
    value = params.get("retry_after")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if value >= 0 else None


__all__ = [
    "DEFAULT_THREAD_ID",
    "EditMessageText",
    "GetChatHistory",
    "GetMessage",
    "SendMessage",
    "parse_history",
    "parse_message_id",
    "parse_message_text",
    "parse_retry_after",
    "thread_param",
]
