#reverse_auction/models/auction.py
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

import sqlalchemy as sa
from sqlalchemy import (
    String,
    Integer,
    Numeric,
    Text,
    Uuid,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from reverse_auction.core.clock import utcnow
from reverse_auction.db.base import Base
from reverse_auction.db.types import JSONType, UTCDateTime
from reverse_auction.models.enums import AuctionStatus, AwardMethod


class Auction(Base):
    """
    One sourcing event owned by one buyer.

    status, end_date, extensions_used and winning_bid_id are engine-owned:
    only the services in reverse_auction.services mutate them.
    """

    __tablename__ = "reverse_auctions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    auction_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)

    buyer_id: Mapped[str] = mapped_column(String(128), nullable=False)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    specifications: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit: Mapped[str] = mapped_column(String(32), nullable=False, default="units")
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="INR")
    max_budget: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    start_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    original_end_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    # anti-sniping rules, snapshotted from settings at creation
    extension_window_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    max_extensions: Mapped[int] = mapped_column(Integer, nullable=False)
    extensions_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    delivery_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    delivery_deadline: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    award_method: Mapped[str] = mapped_column(
        String(32), nullable=False, default=AwardMethod.LOWEST_BID.value
    )
    is_public: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    qualification_criteria: Mapped[List[Any]] = mapped_column(JSONType, nullable=False, default=list)
    attachments: Mapped[List[Any]] = mapped_column(JSONType, nullable=False, default=list)

    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=AuctionStatus.DRAFT.value
    )

    # advisory cache; the authoritative value is the live aggregate over ACTIVE bids
    current_lowest_bid: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    last_bid_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    winning_bid_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    awarded_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    award_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    published_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    ended_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    # optimistic lock: every UPDATE is "... WHERE version = :expected"
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    bids = relationship("Bid", back_populates="auction", cascade="all, delete-orphan")
    invitations = relationship("Invitation", back_populates="auction", cascade="all, delete-orphan")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_auctions_quantity_positive"),
        CheckConstraint("max_budget > 0", name="ck_auctions_budget_positive"),
        CheckConstraint("end_date >= original_end_date", name="ck_auctions_end_not_before_original"),
        CheckConstraint("extensions_used >= 0", name="ck_auctions_extensions_nonnegative"),
        CheckConstraint("extensions_used <= max_extensions", name="ck_auctions_extensions_capped"),
        Index("ix_auctions_status_start", "status", "start_date"),
        Index("ix_auctions_status_end", "status", "end_date"),
        Index("ix_auctions_buyer", "buyer_id"),
    )
