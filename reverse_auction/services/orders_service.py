# reverse_auction/services/orders_service.py
from __future__ import annotations

import logging
import secrets
import string
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional, Protocol

from sqlalchemy.orm import Session

from reverse_auction.core.clock import Clock, utcnow
from reverse_auction.models.auction import Auction
from reverse_auction.models.enums import OrderStatus
from reverse_auction.models.purchase_order import PurchaseOrder

logger = logging.getLogger(__name__)

_ALPHABET = string.ascii_uppercase + string.digits


def generate_reference(prefix: str, now: datetime) -> str:
    """<prefix><yy><mm>-<5 random chars>, e.g. PO2610-7KQ2Z."""
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(5))
    return f"{prefix}{now:%y%m}-{suffix}"


class OrderManagement(Protocol):
    """
    Order-management collaborator used by the award unit.

    transactional=True means orders are written through the caller's session
    and disappear with its rollback; otherwise cancel_purchase_order is the
    compensating action when the award cannot commit.
    """

    transactional: bool

    def create_purchase_order(
        self,
        db: Session,
        *,
        auction: Auction,
        bid_id: uuid.UUID,
        buyer_id: str,
        seller_id: str,
        quantity: int,
        unit_price: Decimal,
    ) -> uuid.UUID:
        ...

    def cancel_purchase_order(self, order_id: uuid.UUID) -> None:
        ...


class OrdersService:
    """Default collaborator: purchase orders live in the engine's own database."""

    transactional = True

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or utcnow

    def create_purchase_order(
        self,
        db: Session,
        *,
        auction: Auction,
        bid_id: uuid.UUID,
        buyer_id: str,
        seller_id: str,
        quantity: int,
        unit_price: Decimal,
    ) -> uuid.UUID:
        now = self.clock()
        total = unit_price * quantity
        order = PurchaseOrder(
            order_number=generate_reference("PO", now),
            buyer_id=buyer_id,
            seller_id=seller_id,
            auction_id=auction.id,
            bid_id=bid_id,
            description=auction.title,
            quantity=quantity,
            unit_price=unit_price,
            subtotal=total,
            total=total,
            currency=auction.currency,
            shipping_address=auction.delivery_address,
            status=OrderStatus.PENDING.value,
            created_at=now,
        )
        db.add(order)
        db.flush()

        logger.info(
            "purchase order created",
            extra={"order_id": str(order.id), "auction_id": str(auction.id), "total": str(total)},
        )
        return order.id

    def cancel_purchase_order(self, order_id: uuid.UUID) -> None:
        # rows written through the award session roll back with it
        return None

    def get(self, db: Session, order_id: uuid.UUID) -> Optional[PurchaseOrder]:
        return db.get(PurchaseOrder, order_id)
