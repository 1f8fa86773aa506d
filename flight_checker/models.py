"""Data models used throughout the project."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, List, Optional, Tuple


@dataclass(slots=True, frozen=True)
class FlightRecord:
    origin: str
    destination: str
    origin_airport: str
    destination_airport: str
    airline: str
    flight_number: str
    departure_at: datetime
    price: Decimal
    transfers: int
    link: str
    seats: Optional[int] = None
    duration_min: Optional[int] = None


@dataclass(slots=True, frozen=True)
class FlightSearchResult:
    currency: str
    records: Tuple[FlightRecord, ...] = ()


@dataclass(slots=True, frozen=True)
class EnrichmentInfo:
    status: Optional[str] = None
    aircraft_icao: Optional[str] = None
    seats_economy: Optional[int] = None
    seats_business: Optional[int] = None
    seats_first: Optional[int] = None

    @property
    def has_seat_info(self) -> bool:
        return any(
            v is not None
            for v in (self.seats_economy, self.seats_business, self.seats_first)
        )

    @property
    def is_empty(self) -> bool:
        return not (self.status or self.aircraft_icao or self.has_seat_info)


@dataclass(slots=True, frozen=True)
class NotificationRequest:
    chat_id: str
    text: str
    thread_id: Optional[str] = None
    reply_markup: Optional[Any] = None

    def for_thread(self, thread_id: Optional[str]) -> "NotificationRequest":
        return NotificationRequest(
            chat_id=self.chat_id,
            text=self.text,
            thread_id=thread_id,
            reply_markup=self.reply_markup,
        )


@dataclass(slots=True, frozen=True)
class DeliveryOutcome:
    """Result of one call to the messaging backend.

    ``error`` is ``None`` on success.  ``message_id`` is only filled by calls
    that capture the identifier assigned by the backend.
    """

    message_id: Optional[str] = None
    error: Optional[str] = None
    status_code: Optional[int] = None
    exhausted: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def delivered(cls, message_id: Optional[str] = None) -> "DeliveryOutcome":
        return cls(message_id=message_id)

    @classmethod
    def failed(
        cls,
        reason: str,
        status_code: Optional[int] = None,
        *,
        exhausted: bool = False,
    ) -> "DeliveryOutcome":
        return cls(error=reason, status_code=status_code, exhausted=exhausted)


@dataclass(slots=True)
class RetryState:
    """Backoff bookkeeping for a single in-flight call."""

    max_attempts: int = 5
    base_delay: float = 1.0
    attempt: int = 0

    def record_rate_limit(self) -> None:
        self.attempt += 1

    @property
    def exhausted(self) -> bool:
        return self.attempt >= self.max_attempts

    def backoff_delay(self) -> float:
        """``base_delay * 2**k`` for the k-th backoff, k counted from zero."""
        return self.base_delay * 2 ** max(self.attempt - 1, 0)


def date_range(start: date, end: date) -> List[date]:
    """Return every calendar day from *start* to *end*, both inclusive."""
    days = (end - start).days
    return [start + timedelta(days=i) for i in range(days + 1)]


@dataclass(slots=True)
class SearchCycle:
    started_at: datetime
    dates: Tuple[date, ...]
    finished_at: Optional[datetime] = None

    @classmethod
    def for_range(cls, start: date, end: date, now: datetime) -> "SearchCycle":
        return cls(started_at=now, dates=tuple(date_range(start, end)))

    def finish(self, now: datetime) -> None:
        self.finished_at = now

    @property
    def duration(self) -> timedelta:
        if self.finished_at is None:
            return timedelta(0)
        return self.finished_at - self.started_at


@dataclass(slots=True)
class CycleStatistics:
    """Per-cycle counters.

    Every ``record_*`` call bumps ``dates_checked`` together with exactly one
    classification counter so the totals always add up.
    """

    dates_checked: int = 0
    dates_with_results: int = 0
    dates_without_results: int = 0
    total_results: int = 0
    errors: int = 0
    result_dates: List[Tuple[date, Optional[str]]] = field(default_factory=list)

    def record_with_results(self, count: int) -> None:
        self.dates_checked += 1
        self.dates_with_results += 1
        self.total_results += count

    def record_without_results(self) -> None:
        self.dates_checked += 1
        self.dates_without_results += 1

    def record_error(self) -> None:
        self.dates_checked += 1
        self.errors += 1

    def link_date(self, day: date, message_id: Optional[str]) -> None:
        self.result_dates.append((day, message_id))

    @property
    def is_consistent(self) -> bool:
        return self.dates_checked == (
            self.dates_with_results + self.dates_without_results + self.errors
        )


@dataclass(slots=True)
class StatusMessage:
    message_id: str
    text: str


__all__ = [
    "CycleStatistics",
    "DeliveryOutcome",
    "EnrichmentInfo",
    "FlightRecord",
    "FlightSearchResult",
    "NotificationRequest",
    "RetryState",
    "SearchCycle",
    "StatusMessage",
    "date_range",
]
