from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import patch, Mock

import pytest
import requests

from flight_checker.aviasales_fetcher import AviasalesFetcher, AviasalesFetcherError
from flight_checker.models import FlightSearchResult


def make_payload():
    return {
        "success": True,
        "currency": "rub",
        "data": [
            {
                "origin": "MOW",
                "destination": "UFA",
                "origin_airport": "SVO",
                "destination_airport": "UFA",
                "price": 5400,
                "airline": "SU",
                "flight_number": "1234",
                "departure_at": "2025-09-15T10:05:00+03:00",
                "transfers": 0,
                "duration": 125,
                "duration_to": 125,
                "link": "/search/MOW1509UFA1?t=SU1",
                "seats": 3,
            },
            {
                "origin": "MOW",
                "destination": "UFA",
                "origin_airport": "VKO",
                "destination_airport": "UFA",
                "price": 6100,
                "airline": "DP",
                "flight_number": 433,
                "departure_at": "2025-09-15T18:40:00+03:00",
                "transfers": 0,
                "link": "/search/MOW1509UFA1?t=DP1",
            },
        ],
    }


@patch("requests.get")
def test_search_one_way_normalizes_records(mock_get):
    mock_resp = Mock(status_code=200)
    mock_resp.json.return_value = make_payload()
    mock_get.return_value = mock_resp

    fetcher = AviasalesFetcher("x")
    result = fetcher.search_one_way("MOW", "UFA", date(2025, 9, 15))

    assert isinstance(result, FlightSearchResult)
    assert result.currency == "rub"
    assert len(result.records) == 2

    first, second = result.records
    assert first.flight_number == "1234"
    assert first.price == Decimal("5400")
    assert first.seats == 3
    assert first.duration_min == 125
    assert first.departure_at.utcoffset().total_seconds() == 3 * 3600
    assert first.link == "https://www.aviasales.ru/search/MOW1509UFA1?t=SU1"
    assert second.flight_number == "433"
    assert second.seats is None
    assert second.duration_min is None


@patch("requests.get")
def test_search_one_way_request_params(mock_get):
    mock_resp = Mock(status_code=200)
    mock_resp.json.return_value = {"success": True, "data": []}
    mock_get.return_value = mock_resp

    fetcher = AviasalesFetcher("tok", marker="123", direct_only=False)
    result = fetcher.search_one_way("MOW", "UFA", "2025-09-15")

    assert result.records == ()
    url = mock_get.call_args.args[0]
    params = mock_get.call_args.kwargs["params"]
    assert url == "https://api.travelpayouts.com/aviasales/v3/prices_for_dates"
    assert params["departure_at"] == "2025-09-15"
    assert params["one_way"] == "true"
    assert params["direct"] == "false"
    assert params["token"] == "tok"
    assert params["marker"] == "123"
    assert params["limit"] == 30


@patch("requests.get")
def test_success_false_is_an_error(mock_get):
    mock_resp = Mock(status_code=200)
    mock_resp.json.return_value = {"success": False, "error": "invalid token"}
    mock_get.return_value = mock_resp

    with pytest.raises(AviasalesFetcherError, match="invalid token"):
        AviasalesFetcher("x").search_one_way("MOW", "UFA", date(2025, 9, 15))


@patch("requests.get")
def test_http_error_is_an_error(mock_get):
    mock_get.return_value = Mock(status_code=502, text="Bad gateway")

    with pytest.raises(AviasalesFetcherError, match="HTTP 502"):
        AviasalesFetcher("x").search_one_way("MOW", "UFA", date(2025, 9, 15))


@patch("requests.get")
def test_transport_and_decode_errors(mock_get):
    mock_get.side_effect = requests.ConnectionError("connection reset")
    with pytest.raises(AviasalesFetcherError, match="Transport error"):
        AviasalesFetcher("x").search_one_way("MOW", "UFA", date(2025, 9, 15))

    mock_resp = Mock(status_code=200)
    mock_resp.json.side_effect = ValueError("Expecting value")
    mock_get.side_effect = None
    mock_get.return_value = mock_resp
    with pytest.raises(AviasalesFetcherError, match="Malformed JSON"):
        AviasalesFetcher("x").search_one_way("MOW", "UFA", date(2025, 9, 15))


@patch("requests.get")
def test_skip_rows_without_departure(mock_get):
    payload = make_payload()
    payload["data"][1]["departure_at"] = "bad-date"
    mock_resp = Mock(status_code=200)
    mock_resp.json.return_value = payload
    mock_get.return_value = mock_resp

    result = AviasalesFetcher("x").search_one_way("MOW", "UFA", date(2025, 9, 15))
    assert len(result.records) == 1
    assert isinstance(result.records[0].departure_at, datetime)
    assert result.records[0].departure_at.tzinfo is not None



@patch("requests.get")
def test_non_numeric_fields_do_not_break_search(mock_get, caplog):
    payload = make_payload()
    payload["data"][0]["transfers"] = "n/a"
    payload["data"][1]["seats"] = "many"
    payload["data"][1]["duration"] = "2h"
    mock_resp = Mock(status_code=200)
    mock_resp.json.return_value = payload
    mock_get.return_value = mock_resp

    result = AviasalesFetcher("x").search_one_way("MOW", "UFA", date(2025, 9, 15))

    assert len(result.records) == 1
    record = result.records[0]
    assert record.flight_number == "433"
    assert record.seats is None
    assert record.duration_min is None
    assert any("bad transfers" in r.getMessage() for r in caplog.records)


@patch("requests.get")
def test_data_that_is_not_a_list_is_an_error(mock_get):
    mock_resp = Mock(status_code=200)
    mock_resp.json.return_value = {"success": True, "data": "oops"}
    mock_get.return_value = mock_resp

    with pytest.raises(AviasalesFetcherError, match="Malformed data"):
        AviasalesFetcher("x").search_one_way("MOW", "UFA", date(2025, 9, 15))
