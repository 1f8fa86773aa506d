from __future__ import annotations

import logging
from typing import Optional

from .models import NotificationRequest, StatusMessage
from .notifier import TelegramChannel

logger = logging.getLogger(__name__)


class StatusReporter:
    """Owns the one live-edited status message of the process.

    The message is created once by :meth:`start`.  If that fails the
    reporter stays inert for good and every later update is a no-op.
    """

    def __init__(
        self, channel: TelegramChannel, chat_id: str, thread_id: Optional[str] = None
    ) -> None:
        self.channel = channel
        self.chat_id = chat_id
        self.thread_id = thread_id
        self.message: Optional[StatusMessage] = None
        self._started = False

    @property
    def active(self) -> bool:
        return self.message is not None

    def start(self, text: str) -> bool:
        if self._started:
            return self.active
        self._started = True

        outcome = self.channel.deliver_and_capture_id(
            NotificationRequest(chat_id=self.chat_id, text=text, thread_id=self.thread_id)
        )
        if not outcome.ok or outcome.message_id is None:
            logger.error(
                "Failed to send initial status message, live status disabled: %s",
                outcome.error,
            )
            return False

        self.message = StatusMessage(message_id=outcome.message_id, text=text)
        logger.info("Status message created with ID: %s", outcome.message_id)
        return True

    def update(self, text: str) -> bool:
        if self.message is None:
            return False
        if text == self.message.text:
            return True

        outcome = self.channel.revise(
            self.chat_id, self.message.message_id, text, self.thread_id
        )
        if not outcome.ok:
            logger.error("Failed to update status message: %s", outcome.error)
            return False
        self.message.text = text
        return True


__all__ = ["StatusReporter"]
