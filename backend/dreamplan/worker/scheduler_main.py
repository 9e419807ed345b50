"""Dedicated APScheduler worker process."""
from __future__ import annotations

import logging
import signal
import threading

from apscheduler.schedulers.background import BackgroundScheduler

from dreamplan.core.config import settings
from dreamplan.core.logging import configure_logging
from dreamplan.db.session import SessionLocal
from dreamplan.services.job_runner import run_topup_for_active_dreams


logger = logging.getLogger(__name__)


def main() -> None:
    configure_logging(log_level=settings.log_level)
    logger.info("Scheduler worker starting (enabled=%s)", settings.scheduler_enabled)

    scheduler = BackgroundScheduler(timezone=settings.scheduler_timezone)

    if settings.scheduler_enabled:
        register_jobs(scheduler)
        scheduler.start()
        if settings.jobs_run_on_startup:
            logger.info("Running top-up once on startup")
            run_topup_job()
    else:
        logger.warning("Scheduler disabled via config; worker will idle")

    stop_event = threading.Event()

    def shutdown(signum, frame):  # pragma: no cover - signal handler
        logger.info("Scheduler worker shutting down (signal=%s)", signum)
        if scheduler.running:
            scheduler.shutdown(wait=False)
        stop_event.set()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    try:
        stop_event.wait()
    except KeyboardInterrupt:  # pragma: no cover - manual stop
        shutdown(signal.SIGINT, None)


def register_jobs(scheduler: BackgroundScheduler) -> None:
    scheduler.add_job(
        run_topup_job,
        trigger="cron",
        hour=settings.topup_job_hour,
        minute=settings.topup_job_minute,
        id="occurrence_topup_job",
        replace_existing=True,
    )
    logger.info(
        "Registered top-up job (time=%02d:%02d %s)",
        settings.topup_job_hour,
        settings.topup_job_minute,
        settings.scheduler_timezone,
    )


def run_topup_job() -> None:
    session = SessionLocal()
    try:
        result = run_topup_for_active_dreams(session)
        logger.info(
            "Top-up job complete: dreams=%s, occurrences=%s, failures=%s",
            result.dreams_processed,
            result.occurrences_written,
            result.failures,
        )
    except Exception:  # pragma: no cover - defensive guard
        logger.exception("Top-up job failed")
    finally:
        session.close()


if __name__ == "__main__":  # pragma: no cover - manual launch
    main()
