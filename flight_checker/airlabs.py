from __future__ import annotations

import logging
from typing import Optional

import requests

from .models import EnrichmentInfo

logger = logging.getLogger(__name__)


class AirLabsError(RuntimeError):
    """Failure talking to the AirLabs API."""


class AirLabsClient:
    """Per-flight status, aircraft and seat lookup from AirLabs."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://airlabs.co/api/v9",
        timeout: float = 15,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def flight_info(self, airline: str, flight_number: str) -> Optional[EnrichmentInfo]:
        """Return info for the flight *airline* + *flight_number*, if AirLabs knows it."""
        flight_iata = f"{airline}{flight_number}"
        logger.info("Querying AirLabs API for flight: %s", flight_iata)
        try:
            resp = requests.get(
                f"{self.base_url}/flight",
                params={"api_key": self.api_key, "flight_iata": flight_iata},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise AirLabsError(f"Transport error: {exc}") from exc

        if resp.status_code != 200:
            raise AirLabsError(f"HTTP {resp.status_code} – {resp.text[:120]}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise AirLabsError(f"Malformed JSON: {exc}") from exc

        error = data.get("error") if isinstance(data, dict) else None
        if isinstance(error, dict) and error.get("message"):
            raise AirLabsError(f"AirLabs API error: {error['message']}")

        flights = data.get("response") if isinstance(data, dict) else None
        # /flight answers with a single object, older versions with a list
        if isinstance(flights, list):
            flights = flights[0] if flights else None
        if not isinstance(flights, dict):
            return None

        return EnrichmentInfo(
            status=flights.get("status"),
            aircraft_icao=flights.get("aircraft_icao"),
            seats_economy=flights.get("seats_economy"),
            seats_business=flights.get("seats_business"),
            seats_first=flights.get("seats_first"),
        )


__all__ = ["AirLabsClient", "AirLabsError"]
