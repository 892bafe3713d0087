# reverse_auction/worker.py
"""
Scheduler trigger for the auction engine.

    python -m reverse_auction.worker           # loop every scheduler_interval_seconds
    python -m reverse_auction.worker --once    # single sweep (cron)
"""
from __future__ import annotations

import argparse
import logging
import time
from typing import Optional

from reverse_auction.core.config import get_settings
from reverse_auction.core.logging import configure_logging
from reverse_auction.services.scheduler_service import SchedulerService

logger = logging.getLogger(__name__)


def run_once(scheduler: Optional[SchedulerService] = None) -> dict:
    # imported lazily: building the engine needs DATABASE_URL
    from reverse_auction.db.session import SessionLocal

    scheduler = scheduler or SchedulerService()
    db = SessionLocal()
    try:
        return scheduler.tick(db)
    finally:
        db.close()


def run_forever() -> None:
    settings = get_settings()
    scheduler = SchedulerService(settings=settings)
    logger.info("scheduler worker started", extra={"interval_seconds": settings.scheduler_interval_seconds})

    while True:
        try:
            run_once(scheduler)
        except Exception:
            # one failed sweep must not stop the timer; the next tick retries
            logger.exception("scheduler tick failed")
        time.sleep(settings.scheduler_interval_seconds)


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Reverse auction scheduler worker")
    parser.add_argument("--once", action="store_true", help="run a single sweep and exit")
    args = parser.parse_args(argv)

    configure_logging(get_settings())

    if args.once:
        result = run_once()
        logger.info("scheduler sweep finished", extra={"result": result})
        return
    run_forever()


if __name__ == "__main__":
    main()
