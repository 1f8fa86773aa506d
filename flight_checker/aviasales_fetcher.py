from __future__ import annotations

import datetime as dt
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import requests

from .models import FlightRecord, FlightSearchResult

logger = logging.getLogger(__name__)


class AviasalesFetcherError(RuntimeError):
    """Failure talking to the Travelpayouts API for one search."""


class AviasalesFetcher:
    """
    Client for Flight Data API v3 (*/aviasales/v3* path).
    """

    def __init__(
        self,
        token: str,
        marker: str | int | None = None,
        base_url: str = "https://api.travelpayouts.com/aviasales/v3",
        domain: str = "https://www.aviasales.ru",
        *,
        currency: str = "rub",
        direct_only: bool = True,
        limit: int = 30,
        timeout: float = 15,
    ) -> None:
        self.token = token
        self.marker = marker or ""
        self.base_url = base_url.rstrip("/")
        self.domain = domain.rstrip("/")
        self.currency = currency
        self.direct_only = direct_only
        self.limit = limit
        self.timeout = timeout

    # ──────────────────────────────────────────────────────────

    def search_one_way(
        self, origin: str, destination: str, departure_date: dt.date | str
    ) -> FlightSearchResult:
        """Return one-way offers for *origin* -> *destination* on one day."""

        if isinstance(departure_date, dt.date):
            departure_date = departure_date.isoformat()
        params = {
            "origin": origin,
            "destination": destination,
            "departure_at": departure_date,
            "return_at": "",
            "currency": self.currency,
            "limit": self.limit,
            "page": 1,
            "one_way": "true",
            "direct": "true" if self.direct_only else "false",
            "token": self.token,
        }
        if self.marker:
            params["marker"] = self.marker

        logger.info(
            "Searching flights from %s to %s on %s", origin, destination, departure_date
        )
        try:
            resp = requests.get(
                f"{self.base_url}/prices_for_dates",
                params=params,
                timeout=self.timeout,
                headers={"Accept-Encoding": "gzip"},
            )
        except requests.RequestException as exc:
            raise AviasalesFetcherError(f"Transport error: {exc}") from exc

        if resp.status_code != 200:
            raise AviasalesFetcherError(
                f"HTTP {resp.status_code} – {resp.text[:120]}"
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise AviasalesFetcherError(f"Malformed JSON: {exc}") from exc
        logger.debug("Raw API response: %s", data)

        if not isinstance(data, dict) or not data.get("success"):
            error = data.get("error") if isinstance(data, dict) else None
            raise AviasalesFetcherError(f"API error: {error}")

        rows = data.get("data") or []
        if not isinstance(rows, list):
            raise AviasalesFetcherError(
                f"Malformed data: expected a list, got {type(rows).__name__}"
            )
        records = [self._to_record(item) for item in rows]
        return FlightSearchResult(
            currency=data.get("currency") or self.currency,
            records=tuple(rec for rec in records if rec),
        )

    def _to_record(self, item: Any) -> Optional[FlightRecord]:
        """Map one JSON row onto a FlightRecord, ``None`` if unusable."""
        if not isinstance(item, dict):
            return None

        dep_raw = item.get("departure_at") or ""
        try:
            departure_at = dt.datetime.fromisoformat(dep_raw)
        except (TypeError, ValueError):
            logger.warning("Skipping offer with bad departure_at: %r", dep_raw)
            return None
        if departure_at.tzinfo is None:
            departure_at = departure_at.replace(tzinfo=dt.timezone.utc)

        try:
            price = Decimal(str(item.get("price", 0)))
        except InvalidOperation:
            logger.warning("Skipping offer with bad price: %r", item.get("price"))
            return None

        try:
            transfers = int(item.get("transfers") or 0)
        except (TypeError, ValueError, OverflowError):
            logger.warning("Skipping offer with bad transfers: %r", item.get("transfers"))
            return None

        link = item.get("link") or ""
        duration = _optional_int(item.get("duration_to", item.get("duration")))

        return FlightRecord(
            origin=item.get("origin", ""),
            destination=item.get("destination", ""),
            origin_airport=item.get("origin_airport", ""),
            destination_airport=item.get("destination_airport", ""),
            airline=item.get("airline", ""),
            flight_number=str(item.get("flight_number", "")),
            departure_at=departure_at,
            price=price,
            transfers=transfers,
            link=f"{self.domain}{link}" if link else "",
            seats=_optional_int(item.get("seats")),
            duration_min=duration,
        )


def _optional_int(value: Any) -> Optional[int]:
    """Coerce a numeric field, dropping anything that is not a whole number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        logger.warning("Ignoring non-numeric value: %r", value)
        return None


__all__ = ["AviasalesFetcher", "AviasalesFetcherError"]
