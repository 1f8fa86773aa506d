"""tasks.py – schedule with APScheduler.

• every Settings.poll_interval_h – one ``CycleOrchestrator.run_cycle``,
  the first one right away
"""

from __future__ import annotations

from datetime import datetime, timezone

from apscheduler.schedulers.blocking import BlockingScheduler

from .config import Settings
from .orchestrator import CycleOrchestrator


def build_scheduler(
    orchestrator: CycleOrchestrator, settings: Settings
) -> BlockingScheduler:
    """Return a scheduler running one search cycle per polling interval."""
    sched = BlockingScheduler(timezone="UTC")
    sched.add_job(
        orchestrator.run_cycle,
        "interval",
        hours=settings.poll_interval_h,
        next_run_time=datetime.now(timezone.utc),
        id="flight_search_cycle",
        max_instances=1,
        coalesce=True,
    )
    return sched


__all__ = ["build_scheduler"]
