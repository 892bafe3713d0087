# reverse_auction/services/notification_service.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from reverse_auction.core.clock import Clock, utcnow
from reverse_auction.core.config import Settings, get_settings
from reverse_auction.models.auction import Auction
from reverse_auction.models.enums import NotificationType, OutboxStatus
from reverse_auction.models.outbox_event import OutboxEvent

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def send(self, event_type: str, recipient_id: str, payload: Dict[str, Any]) -> None:
        ...


class LoggingNotifier:
    """Default delivery channel: one structured log line per notification."""

    def send(self, event_type: str, recipient_id: str, payload: Dict[str, Any]) -> None:
        logger.info(
            "notification delivered",
            extra={"event_type": event_type, "recipient_id": recipient_id, "payload": payload},
        )


def _auction_summary(auction: Auction) -> Dict[str, Any]:
    return {
        "auction_id": str(auction.id),
        "auction_number": auction.auction_number,
        "title": auction.title,
    }


class NotificationService:
    """
    Writes notification requests to the outbox.

    Never commits: rows become visible together with the state change that
    caused them, or not at all.
    """

    def enqueue(
        self,
        db: Session,
        *,
        event_type: NotificationType,
        auction: Auction,
        recipient_id: str,
        extra: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> OutboxEvent:
        row = OutboxEvent(
            event_type=event_type.value,
            auction_id=auction.id,
            recipient_id=recipient_id,
            payload_json={**_auction_summary(auction), **(extra or {})},
            status=OutboxStatus.PENDING.value,
            attempts=0,
            created_at=now or utcnow(),
        )
        db.add(row)
        return row


class NotificationDispatcher:
    """
    Delivers PENDING outbox events. A failed delivery is logged and retried on
    the next run until notification_max_attempts, then parked as FAILED.
    """

    def __init__(
        self,
        notifier: Optional[Notifier] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ):
        self.notifier = notifier or LoggingNotifier()
        self.settings = settings or get_settings()
        self.clock = clock or utcnow

    def dispatch_pending(self, db: Session, *, limit: Optional[int] = None) -> Dict[str, int]:
        batch = limit or self.settings.notification_batch_size
        rows = list(
            db.execute(
                select(OutboxEvent)
                .where(OutboxEvent.status == OutboxStatus.PENDING.value)
                .order_by(OutboxEvent.created_at.asc())
                .limit(batch)
                .with_for_update(skip_locked=True)
            )
            .scalars()
            .all()
        )

        sent = failed = retrying = 0
        for row in rows:
            row.attempts += 1
            try:
                self.notifier.send(row.event_type, row.recipient_id, dict(row.payload_json or {}))
            except Exception as e:  # delivery channel errors are opaque
                row.last_error = str(e)[:2000]
                if row.attempts >= self.settings.notification_max_attempts:
                    row.status = OutboxStatus.FAILED.value
                    failed += 1
                else:
                    retrying += 1
                logger.warning(
                    "notification delivery failed",
                    extra={
                        "outbox_event_id": str(row.id),
                        "event_type": row.event_type,
                        "recipient_id": row.recipient_id,
                        "attempts": row.attempts,
                    },
                    exc_info=True,
                )
                continue

            row.status = OutboxStatus.SENT.value
            row.dispatched_at = self.clock()
            row.last_error = None
            sent += 1

        db.commit()
        return {"sent": sent, "failed": failed, "retrying": retrying}
