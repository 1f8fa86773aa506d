from __future__ import annotations

from datetime import date
from functools import lru_cache
from typing import List

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from typing_extensions import Annotated

load_dotenv()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    travelpayouts_token: str = Field(..., alias="TRAVELPAYOUTS_API_KEY")
    tp_marker: str = Field("", alias="TP_MARKER")

    telegram_token: str = Field("", alias="TELEGRAM_BOT_TOKEN")
    telegram_chat_id: str = Field("", alias="TELEGRAM_CHAT_ID")
    devlogs_topic_id: str = Field("", alias="TELEGRAM_DEVLOGS_TOPIC_ID")
    found_topic_id: str = Field("", alias="TELEGRAM_FOUND_TOPIC_ID")
    extra_found_topic_ids: Annotated[List[str], NoDecode] = Field(
        default_factory=list, alias="TELEGRAM_EXTRA_FOUND_TOPIC_IDS"
    )

    airlabs_token: str = Field("", alias="AIRLABS_API_KEY")

    origin: str = Field(..., alias="ORIGIN")
    destination: str = Field(..., alias="DESTINATION")
    start_date: date = Field(..., alias="START_DATE")
    end_date: date = Field(..., alias="END_DATE")
    poll_interval_h: float = Field(6, alias="POLL_INTERVAL_H")
    currency: str = Field("rub", alias="CURRENCY")
    direct_only: bool = Field(True, alias="DIRECT_ONLY")

    enable_statistics: bool = Field(True, alias="ENABLE_STATISTICS")
    enable_deduplication: bool = Field(True, alias="ENABLE_DEDUPLICATION")
    history_limit: int = Field(100, alias="DEDUP_HISTORY_LIMIT")
    max_verbose_results: int = Field(5, alias="MAX_VERBOSE_RESULTS")

    display_utc_offset_h: int = Field(5, alias="DISPLAY_UTC_OFFSET_H")
    http_timeout_s: float = Field(15, alias="HTTP_TIMEOUT_S")
    log_file: str = Field("flight_checker.log", alias="LOG_FILE")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    @field_validator("travelpayouts_token")
    @classmethod
    def _token_non_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("TRAVELPAYOUTS_API_KEY must be a non-empty string")
        return v.strip()

    @field_validator("origin", "destination")
    @classmethod
    def _iata_code(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("ORIGIN and DESTINATION must be IATA codes")
        return v

    @field_validator("poll_interval_h")
    @classmethod
    def _poll_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("POLL_INTERVAL_H must be greater than 0")
        return v

    @field_validator("history_limit", "max_verbose_results")
    @classmethod
    def _positive_int(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("limits must be greater than 0")
        return v

    @field_validator("extra_found_topic_ids", mode="before")
    @classmethod
    def _split_topics(cls, v):
        if isinstance(v, str):
            return [t.strip() for t in v.split(",") if t.strip()]
        return v

    @property
    def telegram_enabled(self) -> bool:
        return bool(self.telegram_token and self.telegram_chat_id)

    @property
    def airlabs_enabled(self) -> bool:
        return bool(self.airlabs_token)

    @property
    def found_topic_ids(self) -> List[str]:
        """Result threads: the found thread first, then the extra ones."""
        topics: List[str] = []
        for topic in [self.found_topic_id, *self.extra_found_topic_ids]:
            if topic not in topics:
                topics.append(topic)
        return topics


@lru_cache()
def get_settings() -> Settings:
    """Return application settings loaded from the environment."""
    return Settings()  # type: ignore[call-arg]


__all__ = ["Settings", "get_settings"]
