# reverse_auction/services/scheduler_service.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from reverse_auction.core.clock import Clock, utcnow
from reverse_auction.core.config import Settings, get_settings
from reverse_auction.services.lifecycle_service import LifecycleService
from reverse_auction.services.notification_service import NotificationDispatcher, Notifier

logger = logging.getLogger(__name__)


class SchedulerService:
    """
    Handlers behind the periodic trigger. The engine does not own the timer;
    reverse_auction.worker (or any cron) calls tick() on an interval.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.settings = settings or get_settings()
        self.clock = clock or utcnow
        self.lifecycle = LifecycleService(clock=self.clock)
        self.dispatcher = NotificationDispatcher(notifier=notifier, settings=self.settings, clock=self.clock)

    def activate_due(self, db: Session) -> Dict[str, int]:
        return self.lifecycle.activate_due(db)

    def close_expired(self, db: Session) -> Dict[str, int]:
        return self.lifecycle.close_expired(db)

    def dispatch_notifications(self, db: Session) -> Dict[str, int]:
        return self.dispatcher.dispatch_pending(db)

    def tick(self, db: Session) -> Dict[str, Any]:
        """Start due auctions, close expired ones, then drain the outbox."""
        result = {
            "activated": self.activate_due(db),
            "closed": self.close_expired(db),
            "notifications": self.dispatch_notifications(db),
        }
        logger.debug("scheduler tick", extra={"result": result})
        return result
