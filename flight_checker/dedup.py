from __future__ import annotations

import logging
from typing import Optional

from .notifier import TelegramChannel, TelegramChannelError

logger = logging.getLogger(__name__)


class DeduplicationGuard:
    """Suppress alerts whose text is already present in recent thread history.

    History on the backend is the only state, so the guard survives restarts.
    Matching is a plain substring test of the candidate against each message
    text; short candidates can therefore match unrelated messages.
    """

    def __init__(self, channel: TelegramChannel, history_limit: int = 100) -> None:
        self.channel = channel
        self.history_limit = history_limit

    def was_recently_sent(
        self, chat_id: str, thread_id: Optional[str], candidate: str
    ) -> bool:
        if not candidate:
            return False

        try:
            message_ids = self.channel.recent_message_ids(
                chat_id, thread_id, limit=self.history_limit
            )
        except TelegramChannelError as exc:
            logger.warning(
                "Could not read history of topic %s, assuming not sent: %s",
                thread_id,
                exc,
            )
            return False

        for message_id in message_ids[: self.history_limit]:
            try:
                text = self.channel.message_text(chat_id, message_id)
            except TelegramChannelError as exc:
                logger.debug("Skipping message %s: %s", message_id, exc)
                continue
            if text and candidate in text:
                logger.info(
                    "Duplicate of message %s in topic %s, skipping: %r",
                    message_id,
                    thread_id,
                    candidate,
                )
                return True
        return False


__all__ = ["DeduplicationGuard"]
