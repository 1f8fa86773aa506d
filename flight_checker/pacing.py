from __future__ import annotations

import logging
import threading
from typing import Optional

logger = logging.getLogger(__name__)


class OperationCancelled(RuntimeError):
    """Raised when a wait is interrupted by the cancel event."""


def pause(seconds: float, cancel_event: Optional[threading.Event] = None) -> None:
    """Wait *seconds*, aborting early if *cancel_event* gets set."""
    if seconds <= 0:
        return
    event = cancel_event if cancel_event is not None else threading.Event()
    if event.wait(seconds):
        logger.info("Wait of %.1fs cancelled", seconds)
        raise OperationCancelled(f"cancelled during {seconds:.1f}s wait")


__all__ = ["OperationCancelled", "pause"]
