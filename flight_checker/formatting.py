"""Human readable dates and the HTML bodies of every message we send.

Messages that go to the results thread are returned as :class:`Rendered`,
carrying next to the HTML body the plain-text key used for deduplication.
Telegram hands message text back with the markup stripped, so keys are
built from the same lines with tags removed.
"""

from __future__ import annotations

import calendar
import html
import re
from datetime import date, datetime, timedelta, timezone
from typing import NamedTuple, Optional

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from .lookups import airline_name, city_name
from .models import CycleStatistics, EnrichmentInfo, FlightRecord, SearchCycle

_TAG_RE = re.compile(r"<[^>]+>")


class Rendered(NamedTuple):
    text: str
    dedup_key: str


def plain_text(markup: str) -> str:
    """Drop HTML tags and unescape entities, the way Telegram reports text."""
    return html.unescape(_TAG_RE.sub("", markup))


def _e(value: object) -> str:
    return html.escape(str(value), quote=False)


# ──────────────────────────────────────────────────────────
# Dates and durations
# ──────────────────────────────────────────────────────────


def to_display_tz(moment: datetime, utc_offset_h: int) -> datetime:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone(timedelta(hours=utc_offset_h)))


def format_date(day: date) -> str:
    return f"{day.day} {calendar.month_name[day.month]} {day.year}"


def format_datetime(moment: datetime, utc_offset_h: int = 5) -> str:
    local = to_display_tz(moment, utc_offset_h)
    return f"{format_date(local.date())} at {local:%H:%M}"


def format_date_range(start: date, end: date) -> str:
    if start.year == end.year and start.month == end.month:
        return f"{start.day}–{end.day} {calendar.month_name[end.month]} {end.year}"
    if start.year == end.year:
        return (
            f"{start.day} {calendar.month_name[start.month]} – "
            f"{end.day} {calendar.month_name[end.month]} {end.year}"
        )
    return f"{format_date(start)} – {format_date(end)}"


def format_duration(minutes: int) -> str:
    hours, rest = divmod(minutes, 60)
    if hours > 0:
        return f"{hours} h {rest} min"
    return f"{rest} min"


def format_elapsed(elapsed: timedelta) -> str:
    total = max(int(elapsed.total_seconds()), 0)
    minutes, seconds = divmod(total, 60)
    return f"{minutes} min {seconds} s"


def message_link(chat_id: str, message_id: str) -> str:
    """Deep link to a message in a private supergroup."""
    internal = chat_id[4:] if chat_id.startswith("-100") else chat_id.lstrip("-")
    return f"https://t.me/c/{internal}/{message_id}"


# ──────────────────────────────────────────────────────────
# Status message
# ──────────────────────────────────────────────────────────

TITLE = "🛫 <b>Flight search</b>"


def render_startup(
    origin: str, destination: str, start: date, end: date, interval_h: float
) -> str:
    return (
        "🛫 <b>Flight search started!</b>\n\n"
        f"Checking direct flights from <b>{_e(city_name(origin))}</b> "
        f"to <b>{_e(city_name(destination))}</b> {format_date_range(start, end)}.\n"
        f"A search runs every {interval_h:g} hours.\n\n"
        "<i>This status will be updated with the search results.</i>"
    )


def render_cycle_started(cycle: SearchCycle, date_range: str, utc_offset_h: int) -> str:
    return (
        f"{TITLE}\n\n"
        f"🔍 Search cycle started: {format_datetime(cycle.started_at, utc_offset_h)}\n"
        f"🗓 Dates checked: {date_range}\n\n"
        "<i>Status will be updated...</i>"
    )


def render_statistics(stats: CycleStatistics, chat_id: str = "") -> str:
    lines = [
        "📊 <b>Search statistics:</b>",
        f"✓ Dates checked: {stats.dates_checked}",
        f"✈️ Dates with flights: {stats.dates_with_results}",
        f"❌ Dates without flights: {stats.dates_without_results}",
        f"🎫 Flights found: {stats.total_results}",
        f"⚠️ Errors: {stats.errors}",
    ]
    if stats.result_dates:
        lines.append("")
        lines.append("<b>Dates with flights:</b>")
        for day, message_id in stats.result_dates:
            if message_id and chat_id:
                link = html.escape(message_link(chat_id, message_id))
                lines.append(f'• <a href="{link}">{format_date(day)}</a>')
            else:
                lines.append(f"• {format_date(day)}")
    return "\n".join(lines)


def render_progress(
    cycle: SearchCycle,
    date_range: str,
    stats: CycleStatistics,
    failed_day: date,
    utc_offset_h: int,
    chat_id: str = "",
) -> str:
    return (
        f"{TITLE}\n\n"
        f"🔍 Search started: {format_datetime(cycle.started_at, utc_offset_h)}\n"
        f"🗓 Dates checked: {date_range}\n\n"
        f"{render_statistics(stats, chat_id)}\n\n"
        f"⚠️ Last error on {format_date(failed_day)}\n"
        f"<i>Search in progress ({stats.dates_checked}/{len(cycle.dates)} dates checked)...</i>"
    )


def render_summary(
    cycle: SearchCycle,
    date_range: str,
    stats: CycleStatistics,
    interval_h: float,
    utc_offset_h: int,
    chat_id: str = "",
) -> str:
    finished = cycle.finished_at or cycle.started_at
    return (
        f"{TITLE}\n\n"
        "✅ <b>Search cycle finished!</b>\n"
        f"🕒 Start: {format_datetime(cycle.started_at, utc_offset_h)}\n"
        f"🕕 End: {format_datetime(finished, utc_offset_h)}\n"
        f"⏱ Duration: {format_elapsed(cycle.duration)}\n"
        f"🗓 Dates: {date_range} ({len(cycle.dates)})\n\n"
        f"{render_statistics(stats, chat_id)}\n\n"
        f"🔄 Next cycle in <b>{interval_h:g} hours</b>"
    )


# ──────────────────────────────────────────────────────────
# Results thread
# ──────────────────────────────────────────────────────────


def render_found_header(
    count: int, day: date, origin: str, destination: str
) -> Rendered:
    head = f"✅ Found <b>{count} flights</b> on <b>{format_date(day)}</b>"
    text = f"{head} from {_e(city_name(origin))} to {_e(city_name(destination))}:"
    return Rendered(text, plain_text(head))


def render_flight(
    record: FlightRecord, currency: str = "rub", utc_offset_h: int = 5
) -> Rendered:
    head = (
        f"🛫 <b>Flight {_e(record.airline)}{_e(record.flight_number)}</b>: "
        f"{_e(city_name(record.origin))} ({_e(record.origin_airport)}) → "
        f"{_e(city_name(record.destination))} ({_e(record.destination_airport)})\n"
        f"🕒 Departure: {format_datetime(record.departure_at, utc_offset_h)}"
    )
    lines = [
        head,
        f"✈️ Airline: {_e(airline_name(record.airline))}",
        f"💰 Price: <b>{record.price} {_e(currency.upper())}</b>",
        f"🔄 Transfers: {record.transfers}",
    ]
    if record.duration_min is not None:
        lines.append(f"⏱ Duration: {format_duration(record.duration_min)}")
    if record.seats is not None:
        lines.append(f"💺 Seats left: {record.seats}")
    return Rendered("\n".join(lines), plain_text(head))


def render_more(remaining: int, day: date) -> Rendered:
    text = f"... and {remaining} more flights on {format_date(day)}"
    return Rendered(text, text)


def booking_keyboard(record: FlightRecord) -> Optional[InlineKeyboardMarkup]:
    if not record.link:
        return None
    return InlineKeyboardMarkup([[InlineKeyboardButton("🎟 Book", url=record.link)]])


def render_enrichment(record: FlightRecord, info: EnrichmentInfo) -> Rendered:
    head = (
        "📊 <b>Additional information for flight "
        f"{_e(record.airline)}{_e(record.flight_number)}</b> "
        f"on {format_date(record.departure_at.date())}:"
    )
    lines = [head]
    if info.status:
        lines.append(f"🚦 <b>Flight status</b>: {_e(info.status)}")
    if info.aircraft_icao:
        lines.append(f"✈️ <b>Aircraft</b>: {_e(info.aircraft_icao)}")
    if info.seats_economy is not None:
        lines.append(f"💺 <b>Economy seats</b>: {info.seats_economy}")
    if info.seats_business is not None:
        lines.append(f"💺 <b>Business seats</b>: {info.seats_business}")
    if info.seats_first is not None:
        lines.append(f"💺 <b>First class seats</b>: {info.seats_first}")
    text = "\n".join(lines)
    return Rendered(text, plain_text(text))


def render_seat_alert(enrichment: Rendered) -> Rendered:
    head = "🚨 <b>SEAT AVAILABILITY:</b> 🚨"
    text = f"{head}\n\n{enrichment.text}"
    return Rendered(text, plain_text(text))


# ──────────────────────────────────────────────────────────
# Operational thread
# ──────────────────────────────────────────────────────────


def render_error(day: date, error: object) -> str:
    return (
        "⚠️ <b>Flight search error</b>\n\n"
        f"📅 Date: {format_date(day)}\n"
        f"❌ Error: {_e(error)}\n\n"
        "<i>Search continues...</i>"
    )


def render_delivery_failure(day: date, reason: str) -> str:
    return (
        "⚠️ <b>Could not deliver a notification</b>\n\n"
        f"📅 Date: {format_date(day)}\n"
        f"❌ Reason: {_e(reason)}"
    )


__all__ = [
    "Rendered",
    "booking_keyboard",
    "format_date",
    "format_date_range",
    "format_datetime",
    "format_duration",
    "format_elapsed",
    "message_link",
    "plain_text",
    "render_cycle_started",
    "render_delivery_failure",
    "render_enrichment",
    "render_error",
    "render_flight",
    "render_found_header",
    "render_more",
    "render_progress",
    "render_seat_alert",
    "render_startup",
    "render_statistics",
    "render_summary",
]
