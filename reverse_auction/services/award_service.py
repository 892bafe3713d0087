# reverse_auction/services/award_service.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from reverse_auction.core.clock import Clock, utcnow
from reverse_auction.core.errors import (
    AuctionError,
    ConflictRetryable,
    Forbidden,
    InvalidState,
    NotFound,
    OrderCreationFailed,
)
from reverse_auction.models.auction import Auction
from reverse_auction.models.bid import Bid
from reverse_auction.models.enums import AuctionStatus, BidStatus, NotificationType
from reverse_auction.services.auction_repository import get_auction_for_update, transition
from reverse_auction.services.notification_service import NotificationService
from reverse_auction.services.orders_service import OrderManagement, OrdersService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AwardResult:
    auction: Auction
    winning_bid: Bid
    order_id: uuid.UUID
    rejected_bid_ids: List[uuid.UUID]


class AwardService:
    """
    Terminal, single-writer award.

    In one transaction under the auction row lock:
    - winning bid -> AWARDED, every other ACTIVE bid -> REJECTED
    - auction ENDED -> AWARDED with winning_bid_id / awarded_at
    - purchase order requested from the order collaborator
    - WON / LOST notifications written to the outbox
    Any failure rolls the whole unit back and leaves the auction ENDED.
    """

    def __init__(self, clock: Optional[Clock] = None, orders: Optional[OrderManagement] = None):
        self.clock = clock or utcnow
        self.orders = orders or OrdersService(clock=self.clock)
        self.notifications = NotificationService()

    def award(
        self,
        db: Session,
        *,
        auction_id: uuid.UUID,
        buyer_id: str,
        bid_id: uuid.UUID,
        notes: str = "",
    ) -> AwardResult:
        order_id: Optional[uuid.UUID] = None
        try:
            auction = get_auction_for_update(db, auction_id)
            if auction.buyer_id != buyer_id:
                raise Forbidden("Only the auction owner may award it.")
            if auction.status != AuctionStatus.ENDED.value:
                raise InvalidState(
                    "Auction must be ended before awarding.",
                    current=auction.status,
                    requested=AuctionStatus.AWARDED.value,
                )

            winner = db.execute(
                select(Bid).where(Bid.id == bid_id, Bid.auction_id == auction.id)
            ).scalar_one_or_none()
            if not winner:
                raise NotFound("Bid not found on this auction.", bid_id=str(bid_id))
            if winner.status != BidStatus.ACTIVE.value:
                raise InvalidState(
                    "Only an active bid can win.",
                    current=winner.status,
                    requested=BidStatus.AWARDED.value,
                )

            now = self.clock()

            winner.status = BidStatus.AWARDED.value
            winner.updated_at = now

            losers = list(
                db.execute(
                    select(Bid).where(
                        Bid.auction_id == auction.id,
                        Bid.id != winner.id,
                        Bid.status == BidStatus.ACTIVE.value,
                    )
                )
                .scalars()
                .all()
            )
            for b in losers:
                b.status = BidStatus.REJECTED.value
                b.updated_at = now

            transition(auction, AuctionStatus.AWARDED, now)
            auction.winning_bid_id = winner.id
            auction.awarded_at = now
            auction.award_notes = notes
            auction.current_lowest_bid = None
            db.flush()

            try:
                order_id = self.orders.create_purchase_order(
                    db,
                    auction=auction,
                    bid_id=winner.id,
                    buyer_id=auction.buyer_id,
                    seller_id=winner.seller_id,
                    quantity=auction.quantity,
                    unit_price=winner.amount,
                )
            except AuctionError:
                raise
            except Exception as e:
                raise OrderCreationFailed(
                    "Purchase order could not be created; award rolled back.",
                    auction_id=str(auction.id),
                ) from e

            self.notifications.enqueue(
                db,
                event_type=NotificationType.WON,
                auction=auction,
                recipient_id=winner.seller_id,
                extra={"bid_id": str(winner.id), "amount": str(winner.amount), "order_id": str(order_id)},
                now=now,
            )
            for b in losers:
                self.notifications.enqueue(
                    db,
                    event_type=NotificationType.LOST,
                    auction=auction,
                    recipient_id=b.seller_id,
                    extra={"bid_id": str(b.id)},
                    now=now,
                )

            db.commit()
        except StaleDataError as e:
            db.rollback()
            self._compensate(order_id)
            raise ConflictRetryable("Auction changed concurrently; retry the award.", auction_id=str(auction_id)) from e
        except Exception:
            db.rollback()
            self._compensate(order_id)
            raise

        db.refresh(auction)
        db.refresh(winner)

        logger.info(
            "auction awarded",
            extra={
                "auction_id": str(auction.id),
                "bid_id": str(winner.id),
                "winner_id": winner.seller_id,
                "order_id": str(order_id),
                "rejected": len(losers),
            },
        )
        return AwardResult(
            auction=auction,
            winning_bid=winner,
            order_id=order_id,
            rejected_bid_ids=[b.id for b in losers],
        )

    def _compensate(self, order_id: Optional[uuid.UUID]) -> None:
        if order_id is None or getattr(self.orders, "transactional", False):
            return
        try:
            self.orders.cancel_purchase_order(order_id)
        except Exception:
            logger.exception("purchase order compensation failed", extra={"order_id": str(order_id)})
