from __future__ import annotations

import logging
import signal
import threading
from datetime import date as date_cls

import click

from .aviasales_fetcher import AviasalesFetcher, AviasalesFetcherError
from .config import Settings, get_settings
from .orchestrator import build_orchestrator

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(cfg: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, cfg.log_level.upper(), logging.INFO),
        handlers=[logging.FileHandler(cfg.log_file), logging.StreamHandler()],
        format=LOG_FORMAT,
    )


def _install_stop_handlers(cancel_event: threading.Event) -> None:
    def _stop(signum, _frame) -> None:
        logger.info("Received signal %s, stopping", signum)
        cancel_event.set()

    signal.signal(signal.SIGTERM, _stop)
    signal.signal(signal.SIGINT, _stop)


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Command line interface."""
    cfg = get_settings()
    configure_logging(cfg)
    ctx.obj = cfg


@cli.command()
@click.option("--once", is_flag=True, help="Run a single cycle and exit")
@click.pass_obj
def run(cfg: Settings, once: bool) -> None:
    """Check all dates and publish results, repeating every interval."""
    cancel_event = threading.Event()
    orchestrator = build_orchestrator(cfg, cancel_event)
    if once:
        orchestrator.start()
        orchestrator.run_cycle()
        return
    _install_stop_handlers(cancel_event)
    orchestrator.run_forever()


@cli.command()
@click.option("--date", "day", required=True, help="Departure date (YYYY-MM-DD)")
@click.pass_obj
def fetch(cfg: Settings, day: str) -> None:
    """Fetch offers for one date and print them."""
    fetcher = AviasalesFetcher(
        cfg.travelpayouts_token,
        cfg.tp_marker,
        currency=cfg.currency,
        direct_only=cfg.direct_only,
        timeout=cfg.http_timeout_s,
    )
    try:
        result = fetcher.search_one_way(
            cfg.origin, cfg.destination, date_cls.fromisoformat(day)
        )
    except (AviasalesFetcherError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc
    if not result.records:
        click.echo("No offers found")
    for rec in result.records:
        click.echo(rec)


@cli.command()
@click.pass_obj
def schedule(cfg: Settings) -> None:
    """Run search cycles from the APScheduler interval job."""
    from .tasks import build_scheduler

    orchestrator = build_orchestrator(cfg)
    orchestrator.start()
    sched = build_scheduler(orchestrator, cfg)
    try:
        sched.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Scheduler stopped")


if __name__ == "__main__":
    cli()
