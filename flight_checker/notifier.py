"""Reliable delivery to the Telegram Bot API.

Every call goes through one retry protocol: a 429 is retried after the
backend-suggested ``retry_after`` (or an exponential fallback) up to
``max_attempts`` times, any other failure is returned at once.  Successful
sends and edits are followed by a short cooldown to stay under Telegram's
own throughput ceiling.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Iterable, List, Optional

import requests

from .models import DeliveryOutcome, NotificationRequest, RetryState
from .pacing import pause
from .telegram_api import (
    EditMessageText,
    GetChatHistory,
    GetMessage,
    SendMessage,
    parse_history,
    parse_message_id,
    parse_message_text,
    parse_retry_after,
)

logger = logging.getLogger(__name__)


class TelegramChannelError(RuntimeError):
    """A call to the Telegram Bot API failed for good."""

    def __init__(
        self, reason: str, status_code: Optional[int] = None, *, exhausted: bool = False
    ) -> None:
        super().__init__(reason)
        self.reason = reason
        self.status_code = status_code
        self.exhausted = exhausted

    def to_outcome(self) -> DeliveryOutcome:
        return DeliveryOutcome.failed(
            self.reason, self.status_code, exhausted=self.exhausted
        )


class TelegramChannel:
    """Client for the four Bot API calls the checker needs."""

    def __init__(
        self,
        token: str,
        *,
        base_url: str = "https://api.telegram.org",
        session: Optional[requests.Session] = None,
        timeout: float = 15,
        max_attempts: int = 5,
        base_delay: float = 1.0,
        cooldown: float = 1.0,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.cooldown = cooldown
        self.cancel_event = cancel_event or threading.Event()

    # ──────────────────────────────────────────────────────────
    # Sending
    # ──────────────────────────────────────────────────────────

    def deliver(self, request: NotificationRequest) -> DeliveryOutcome:
        """Send *request*; the backend message id is not captured."""
        try:
            self._call(self._send_record(request), cooldown=self.cooldown)
        except TelegramChannelError as exc:
            return exc.to_outcome()
        return DeliveryOutcome.delivered()

    def deliver_and_capture_id(self, request: NotificationRequest) -> DeliveryOutcome:
        """Send *request* and return the message id assigned by Telegram."""
        try:
            response = self._call(self._send_record(request), cooldown=0)
            message_id = parse_message_id(self._decode(response))
            if message_id is None:
                raise TelegramChannelError(
                    "Failed to get message ID from Telegram response",
                    response.status_code,
                )
        except TelegramChannelError as exc:
            return exc.to_outcome()
        # cooldown once the id is known
        pause(self.cooldown, self.cancel_event)
        return DeliveryOutcome.delivered(message_id)

    def revise(
        self,
        chat_id: str,
        message_id: str,
        text: str,
        thread_id: Optional[str] = None,
    ) -> DeliveryOutcome:
        """Replace the text of an already delivered message."""
        record = EditMessageText(
            chat_id=chat_id, message_id=message_id, text=text, thread_id=thread_id
        )
        try:
            self._call(record, cooldown=self.cooldown)
        except TelegramChannelError as exc:
            return exc.to_outcome()
        return DeliveryOutcome.delivered(message_id)

    def deliver_to_threads(
        self, request: NotificationRequest, thread_ids: Iterable[Optional[str]]
    ) -> List[DeliveryOutcome]:
        """Best-effort fan-out: one independent delivery per thread."""
        outcomes: List[DeliveryOutcome] = []
        for thread_id in thread_ids:
            outcome = self.deliver_and_capture_id(request.for_thread(thread_id))
            if not outcome.ok:
                logger.error("Error sending to topic %s: %s", thread_id, outcome.error)
            outcomes.append(outcome)
        return outcomes

    # ──────────────────────────────────────────────────────────
    # Reading history
    # ──────────────────────────────────────────────────────────

    def recent_message_ids(
        self, chat_id: str, thread_id: Optional[str] = None, limit: int = 100
    ) -> List[str]:
        """Return up to *limit* recent message ids on the thread.

        Raises :class:`TelegramChannelError` on failure.
        """
        record = GetChatHistory(chat_id=chat_id, limit=limit, thread_id=thread_id)
        return parse_history(self._decode(self._call(record, cooldown=0)))

    def message_text(self, chat_id: str, message_id: str) -> Optional[str]:
        """Return the current text of a message, ``None`` if it has none."""
        record = GetMessage(chat_id=chat_id, message_id=message_id)
        return parse_message_text(self._decode(self._call(record, cooldown=0)))

    # ──────────────────────────────────────────────────────────
    # Internals
    # ──────────────────────────────────────────────────────────

    @staticmethod
    def _send_record(request: NotificationRequest) -> SendMessage:
        return SendMessage(
            chat_id=request.chat_id,
            text=request.text,
            thread_id=request.thread_id,
            reply_markup=request.reply_markup,
        )

    def _url(self, method: str) -> str:
        return f"{self.base_url}/bot{self.token}/{method}"

    @staticmethod
    def _decode(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise TelegramChannelError(
                f"Malformed JSON from Telegram: {exc}", response.status_code
            ) from exc

    def _call(self, record: Any, *, cooldown: float) -> requests.Response:
        """POST *record* with the rate-limit retry protocol."""
        state = RetryState(max_attempts=self.max_attempts, base_delay=self.base_delay)
        payload = record.to_payload()
        url = self._url(record.method)

        while True:
            try:
                response = self.session.post(url, json=payload, timeout=self.timeout)
            except requests.RequestException as exc:
                logger.error("Telegram %s transport error: %s", record.method, exc)
                raise TelegramChannelError(f"Transport error: {exc}") from exc

            if 200 <= response.status_code < 300:
                pause(cooldown, self.cancel_event)
                return response

            text = response.text
            if response.status_code != 429:
                logger.error(
                    "Telegram API request failed with status %s: %s",
                    response.status_code,
                    text,
                )
                raise TelegramChannelError(
                    f"Telegram API request failed: {text}", response.status_code
                )

            state.record_rate_limit()
            if state.exhausted:
                raise TelegramChannelError(
                    f"Exceeded maximum retries for Telegram API. Last error: {text}",
                    response.status_code,
                    exhausted=True,
                )

            try:
                retry_after = parse_retry_after(response.json())
            except ValueError:
                retry_after = None
            delay = retry_after if retry_after is not None else state.backoff_delay()
            logger.warning(
                "Telegram API rate limited (429). Waiting %.1f seconds before retry %d/%d...",
                delay,
                state.attempt,
                state.max_attempts - 1,
            )
            pause(delay, self.cancel_event)


__all__ = ["TelegramChannel", "TelegramChannelError"]
