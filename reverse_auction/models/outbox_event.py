#reverse_auction/models/outbox_event.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import String, Integer, Text, Uuid, Index
from sqlalchemy.orm import Mapped, mapped_column

from reverse_auction.core.clock import utcnow
from reverse_auction.db.base import Base
from reverse_auction.db.types import JSONType, UTCDateTime
from reverse_auction.models.enums import OutboxStatus


class OutboxEvent(Base):
    """
    Durable notification request.

    Inserted in the same transaction as the state change that causes it,
    delivered later by NotificationDispatcher. Delivery never touches
    auction or bid rows.
    """

    __tablename__ = "outbox_events"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    event_type: Mapped[str] = mapped_column(String(32), nullable=False)  # NotificationType
    auction_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    recipient_id: Mapped[str] = mapped_column(String(128), nullable=False)
    payload_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    status: Mapped[str] = mapped_column(String(16), nullable=False, default=OutboxStatus.PENDING.value)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    dispatched_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    __table_args__ = (
        Index("ix_outbox_status_created", "status", "created_at"),
    )
