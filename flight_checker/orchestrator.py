from __future__ import annotations

import logging
import threading
from datetime import date, datetime, timezone
from typing import Callable, List, Optional

from telegram import InlineKeyboardMarkup

from .airlabs import AirLabsClient, AirLabsError
from .aviasales_fetcher import AviasalesFetcher, AviasalesFetcherError
from .config import Settings
from .dedup import DeduplicationGuard
from .formatting import (
    Rendered,
    booking_keyboard,
    format_date,
    format_date_range,
    render_cycle_started,
    render_delivery_failure,
    render_enrichment,
    render_error,
    render_flight,
    render_found_header,
    render_more,
    render_progress,
    render_seat_alert,
    render_startup,
    render_summary,
)
from .models import (
    CycleStatistics,
    FlightRecord,
    FlightSearchResult,
    NotificationRequest,
    SearchCycle,
)
from .notifier import TelegramChannel
from .pacing import OperationCancelled, pause
from .status import StatusReporter

logger = logging.getLogger(__name__)

PACING_DELAY_S = 1.0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CycleOrchestrator:
    """Runs search cycles over the configured date range, one date at a time.

    Collaborators left as ``None`` switch the matching feature off: no
    *channel* means log-only operation, no *guard* disables deduplication,
    no *reporter* disables the live status message, no *enricher* skips the
    AirLabs lookup.
    """

    def __init__(
        self,
        settings: Settings,
        fetcher: AviasalesFetcher,
        channel: Optional[TelegramChannel] = None,
        guard: Optional[DeduplicationGuard] = None,
        reporter: Optional[StatusReporter] = None,
        enricher: Optional[AirLabsClient] = None,
        *,
        cancel_event: Optional[threading.Event] = None,
        clock: Callable[[], datetime] = _utcnow,
        pacing_delay: float = PACING_DELAY_S,
    ) -> None:
        self.settings = settings
        self.fetcher = fetcher
        self.channel = channel
        self.guard = guard
        self.reporter = reporter
        self.enricher = enricher
        self.cancel_event = cancel_event or threading.Event()
        self.clock = clock
        self.pacing_delay = pacing_delay
        self.stats = CycleStatistics()
        self.date_range = format_date_range(settings.start_date, settings.end_date)

    # ──────────────────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────────────────

    def start(self) -> None:
        """Create the live status message (once per process)."""
        if self.reporter is None:
            return
        cfg = self.settings
        self.reporter.start(
            render_startup(
                cfg.origin,
                cfg.destination,
                cfg.start_date,
                cfg.end_date,
                cfg.poll_interval_h,
            )
        )

    def run_forever(self) -> None:
        """Run cycles separated by the polling interval until cancelled."""
        interval_s = self.settings.poll_interval_h * 3600
        try:
            self.start()
            while True:
                try:
                    self.run_cycle()
                except OperationCancelled:
                    raise
                except Exception:
                    logger.exception("Flight search cycle failed")
                logger.info(
                    "Waiting %g hours before next check.", self.settings.poll_interval_h
                )
                pause(interval_s, self.cancel_event)
        except OperationCancelled:
            logger.info("Flight checker stopped")

    def run_cycle(self) -> CycleStatistics:
        """Check every date of the range once and publish the results."""
        cfg = self.settings
        cycle = SearchCycle.for_range(cfg.start_date, cfg.end_date, self.clock())
        self.stats = stats = CycleStatistics()
        logger.info(
            "Starting flight search %s -> %s for %d dates",
            cfg.origin,
            cfg.destination,
            len(cycle.dates),
        )
        self._update_status(
            render_cycle_started(cycle, self.date_range, cfg.display_utc_offset_h)
        )

        for day in cycle.dates:
            self._check_date(cycle, stats, day)
            pause(self.pacing_delay, self.cancel_event)

        cycle.finish(self.clock())
        logger.info(
            "Completed flight search cycle in %s: checked=%d with=%d without=%d "
            "flights=%d errors=%d",
            cycle.duration,
            stats.dates_checked,
            stats.dates_with_results,
            stats.dates_without_results,
            stats.total_results,
            stats.errors,
        )
        self._update_status(
            render_summary(
                cycle,
                self.date_range,
                stats,
                cfg.poll_interval_h,
                cfg.display_utc_offset_h,
                cfg.telegram_chat_id,
            )
        )
        return stats

    # ──────────────────────────────────────────────────────────
    # One date
    # ──────────────────────────────────────────────────────────

    def _check_date(
        self, cycle: SearchCycle, stats: CycleStatistics, day: date
    ) -> None:
        cfg = self.settings
        try:
            result = self.fetcher.search_one_way(cfg.origin, cfg.destination, day)
        except AviasalesFetcherError as exc:
            stats.record_error()
            logger.error("Error searching flights for %s: %s", format_date(day), exc)
            self._notify_ops(render_error(day, exc))
            self._update_status(
                render_progress(
                    cycle,
                    self.date_range,
                    stats,
                    day,
                    cfg.display_utc_offset_h,
                    cfg.telegram_chat_id,
                )
            )
            return

        if not result.records:
            stats.record_without_results()
            logger.info("No flights found for %s", format_date(day))
            return

        stats.record_with_results(len(result.records))
        logger.info("Found %d flights for %s", len(result.records), format_date(day))
        self._publish_results(stats, day, result)

    def _publish_results(
        self, stats: CycleStatistics, day: date, result: FlightSearchResult
    ) -> None:
        cfg = self.settings
        records = result.records
        header = render_found_header(len(records), day, cfg.origin, cfg.destination)
        stats.link_date(day, self._publish(day, header))

        limit = cfg.max_verbose_results
        for record in records[:limit]:
            self._publish(
                day,
                render_flight(record, result.currency, cfg.display_utc_offset_h),
                booking_keyboard(record),
            )
        if len(records) > limit:
            self._publish(day, render_more(len(records) - limit, day))

        if self.enricher is not None:
            for record in records:
                self._enrich(day, record)

    def _enrich(self, day: date, record: FlightRecord) -> None:
        try:
            info = self.enricher.flight_info(record.airline, record.flight_number)
        except AirLabsError as exc:
            logger.error("Error fetching AirLabs data: %s", exc)
            return
        if info is None or info.is_empty:
            logger.info(
                "No AirLabs data found for flight %s%s",
                record.airline,
                record.flight_number,
            )
            return

        rendered = render_enrichment(record, info)
        self._publish(day, rendered)
        if info.has_seat_info:
            self._publish(day, render_seat_alert(rendered))

    # ──────────────────────────────────────────────────────────
    # Messaging
    # ──────────────────────────────────────────────────────────

    def _publish(
        self,
        day: date,
        rendered: Rendered,
        reply_markup: Optional[InlineKeyboardMarkup] = None,
    ) -> Optional[str]:
        """Send to every results thread not already holding it.

        Returns the message id from the first thread that accepted it.
        """
        if self.channel is None:
            return None
        chat_id = self.settings.telegram_chat_id
        threads: List[str] = self.settings.found_topic_ids
        if self.guard is not None:
            threads = [
                t
                for t in threads
                if not self.guard.was_recently_sent(chat_id, t, rendered.dedup_key)
            ]
        if not threads:
            return None

        request = NotificationRequest(
            chat_id=chat_id, text=rendered.text, reply_markup=reply_markup
        )
        message_id = None
        for outcome in self.channel.deliver_to_threads(request, threads):
            if outcome.ok:
                message_id = message_id or outcome.message_id
            else:
                self._notify_ops(render_delivery_failure(day, outcome.error or ""))
        return message_id

    def _notify_ops(self, text: str) -> None:
        if self.channel is None:
            return
        outcome = self.channel.deliver(
            NotificationRequest(
                chat_id=self.settings.telegram_chat_id,
                text=text,
                thread_id=self.settings.devlogs_topic_id,
            )
        )
        if not outcome.ok:
            logger.error("Failed to send error message: %s", outcome.error)

    def _update_status(self, text: str) -> None:
        if self.reporter is not None:
            self.reporter.update(text)


def build_orchestrator(
    settings: Settings, cancel_event: Optional[threading.Event] = None
) -> CycleOrchestrator:
    """Wire the orchestrator and its collaborators from *settings*."""
    cancel_event = cancel_event or threading.Event()
    fetcher = AviasalesFetcher(
        settings.travelpayouts_token,
        settings.tp_marker,
        currency=settings.currency,
        direct_only=settings.direct_only,
        timeout=settings.http_timeout_s,
    )

    channel = guard = reporter = None
    if settings.telegram_enabled:
        channel = TelegramChannel(
            settings.telegram_token,
            timeout=settings.http_timeout_s,
            cancel_event=cancel_event,
        )
        if settings.enable_deduplication:
            guard = DeduplicationGuard(channel, settings.history_limit)
        if settings.enable_statistics:
            reporter = StatusReporter(
                channel, settings.telegram_chat_id, settings.devlogs_topic_id
            )
    else:
        logger.warning(
            "TELEGRAM_BOT_TOKEN or TELEGRAM_CHAT_ID missing. Notifications will not be sent."
        )

    enricher = None
    if settings.airlabs_enabled:
        enricher = AirLabsClient(settings.airlabs_token, timeout=settings.http_timeout_s)
    else:
        logger.info("AIRLABS_API_KEY not set. AirLabs enrichment will not be available.")

    return CycleOrchestrator(
        settings,
        fetcher,
        channel,
        guard,
        reporter,
        enricher,
        cancel_event=cancel_event,
    )


__all__ = ["CycleOrchestrator", "PACING_DELAY_S", "build_orchestrator"]
