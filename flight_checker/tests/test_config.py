from datetime import date

import pytest
from pydantic import ValidationError

from flight_checker.config import get_settings, Settings


def set_required(monkeypatch):
    monkeypatch.setenv("TRAVELPAYOUTS_API_KEY", "tp-token")
    monkeypatch.setenv("ORIGIN", "mow")
    monkeypatch.setenv("DESTINATION", "UFA")
    monkeypatch.setenv("START_DATE", "2025-09-15")
    monkeypatch.setenv("END_DATE", "2025-09-30")


def test_settings_from_env(monkeypatch):
    set_required(monkeypatch)
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "abc")
    monkeypatch.setenv("TELEGRAM_CHAT_ID", "-1001234")
    monkeypatch.setenv("TELEGRAM_FOUND_TOPIC_ID", "7")
    monkeypatch.setenv("TELEGRAM_EXTRA_FOUND_TOPIC_IDS", "9, 7 ,11")
    monkeypatch.setenv("POLL_INTERVAL_H", "3")

    get_settings.cache_clear()
    cfg = get_settings()
    get_settings.cache_clear()

    assert isinstance(cfg, Settings)
    assert cfg.travelpayouts_token == "tp-token"
    assert cfg.origin == "MOW"
    assert cfg.start_date == date(2025, 9, 15)
    assert cfg.end_date == date(2025, 9, 30)
    assert cfg.poll_interval_h == 3
    assert cfg.telegram_enabled
    assert not cfg.airlabs_enabled
    assert cfg.extra_found_topic_ids == ["9", "7", "11"]
    assert cfg.found_topic_ids == ["7", "9", "11"]


def test_settings_defaults(monkeypatch):
    set_required(monkeypatch)
    for var in ("TELEGRAM_BOT_TOKEN", "TELEGRAM_CHAT_ID", "AIRLABS_API_KEY", "POLL_INTERVAL_H"):
        monkeypatch.delenv(var, raising=False)

    cfg = Settings()

    assert cfg.poll_interval_h == 6
    assert cfg.enable_statistics
    assert cfg.enable_deduplication
    assert cfg.history_limit == 100
    assert cfg.max_verbose_results == 5
    assert not cfg.telegram_enabled


def test_settings_are_frozen(monkeypatch):
    set_required(monkeypatch)
    cfg = Settings()
    with pytest.raises(ValidationError):
        cfg.origin = "LED"


def test_rejects_blank_token_and_bad_interval(monkeypatch):
    set_required(monkeypatch)
    monkeypatch.setenv("TRAVELPAYOUTS_API_KEY", "  ")
    with pytest.raises(ValidationError):
        Settings()

    monkeypatch.setenv("TRAVELPAYOUTS_API_KEY", "tp-token")
    monkeypatch.setenv("POLL_INTERVAL_H", "0")
    with pytest.raises(ValidationError):
        Settings()


def test_end_before_start_is_allowed(monkeypatch):
    set_required(monkeypatch)
    monkeypatch.setenv("END_DATE", "2025-09-01")
    cfg = Settings()
    assert cfg.end_date < cfg.start_date
