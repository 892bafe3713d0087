#reverse_auction/models/bid.py
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy import (
    String,
    Integer,
    Numeric,
    Text,
    Uuid,
    ForeignKey,
    CheckConstraint,
    Index,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from reverse_auction.core.clock import utcnow
from reverse_auction.db.base import Base
from reverse_auction.db.types import JSONType, UTCDateTime
from reverse_auction.models.enums import BidStatus


class Bid(Base):
    __tablename__ = "reverse_auction_bids"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    auction_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("reverse_auctions.id", ondelete="CASCADE"), nullable=False
    )
    seller_id: Mapped[str] = mapped_column(String(128), nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    # secondary commercial terms
    delivery_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    warranty: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    attachments: Mapped[List[Any]] = mapped_column(JSONType, nullable=False, default=list)

    status: Mapped[str] = mapped_column(String(16), nullable=False, default=BidStatus.ACTIVE.value)

    # when the current amount was accepted; breaks ranking ties
    accepted_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    withdrawn_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    auction = relationship("Auction", back_populates="bids")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_bids_amount_positive"),
        # at most one ACTIVE bid per (auction, seller)
        Index(
            "uq_bids_one_active_per_seller",
            "auction_id",
            "seller_id",
            unique=True,
            postgresql_where=text("status = 'ACTIVE'"),
            sqlite_where=text("status = 'ACTIVE'"),
        ),
        Index("ix_bids_auction_status_amount", "auction_id", "status", "amount"),
    )
