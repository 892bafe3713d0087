#reverse_auction/models/purchase_order.py
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import String, Integer, Numeric, Text, Uuid, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from reverse_auction.core.clock import utcnow
from reverse_auction.db.base import Base
from reverse_auction.db.types import UTCDateTime
from reverse_auction.models.enums import OrderStatus


class PurchaseOrder(Base):
    """
    Order materialized by an award. Written by the default order-management
    collaborator inside the award transaction.
    """

    __tablename__ = "purchase_orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)

    buyer_id: Mapped[str] = mapped_column(String(128), nullable=False)
    seller_id: Mapped[str] = mapped_column(String(128), nullable=False)

    auction_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("reverse_auctions.id"), nullable=False
    )
    bid_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("reverse_auction_bids.id"), nullable=False
    )

    description: Mapped[str] = mapped_column(String(200), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    shipping_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(String(16), nullable=False, default=OrderStatus.PENDING.value)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_purchase_orders_auction", "auction_id"),
    )
