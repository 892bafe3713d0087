# reverse_auction/services/lifecycle_service.py
from __future__ import annotations

import logging
import uuid
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from reverse_auction.core.clock import Clock, utcnow
from reverse_auction.core.errors import Forbidden, InvalidState
from reverse_auction.models.auction import Auction
from reverse_auction.models.bid import Bid
from reverse_auction.models.enums import (
    OPEN_STATUSES,
    AuctionStatus,
    BidStatus,
    NotificationType,
)
from reverse_auction.models.invitation import Invitation
from reverse_auction.services.auction_repository import (
    count_active_bids,
    get_auction_for_update,
    transition,
)
from reverse_auction.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class LifecycleService:
    """
    Owns the auction state machine.

    Buyer actions: publish, cancel.
    Scheduler entry points: activate_due, close_expired (idempotent sweeps).
    Every transition runs under the auction's row lock and commits alone.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or utcnow
        self.notifications = NotificationService()

    # ---------------------------
    # BUYER ACTIONS
    # ---------------------------

    def publish(self, db: Session, *, auction_id: uuid.UUID, actor_id: str) -> Auction:
        """
        DRAFT -> PUBLISHED (start in the future) or DRAFT -> ACTIVE (start passed).
        Invitation-only auctions notify their invitees.
        """
        try:
            auction = get_auction_for_update(db, auction_id)
            if auction.buyer_id != actor_id:
                raise Forbidden("Only the auction owner may publish it.")
            if auction.status != AuctionStatus.DRAFT.value:
                raise InvalidState(
                    "Only draft auctions can be published.",
                    current=auction.status,
                    requested=AuctionStatus.PUBLISHED.value,
                )

            now = self.clock()
            target = AuctionStatus.ACTIVE if auction.start_date <= now else AuctionStatus.PUBLISHED
            transition(auction, target, now)
            auction.published_at = now

            if not auction.is_public:
                invitees = db.execute(
                    select(Invitation.seller_id).where(Invitation.auction_id == auction.id)
                ).scalars().all()
                for seller_id in invitees:
                    self.notifications.enqueue(
                        db,
                        event_type=NotificationType.INVITED,
                        auction=auction,
                        recipient_id=seller_id,
                        now=now,
                    )

            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(auction)
        logger.info(
            "auction published",
            extra={"auction_id": str(auction.id), "status": auction.status},
        )
        return auction

    def cancel(
        self,
        db: Session,
        *,
        auction_id: uuid.UUID,
        actor_id: str,
        reason: Optional[str] = None,
    ) -> Auction:
        try:
            auction = get_auction_for_update(db, auction_id)
            if auction.buyer_id != actor_id:
                raise Forbidden("Only the auction owner may cancel it.")
            if auction.status == AuctionStatus.AWARDED.value:
                raise InvalidState(
                    "Awarded auctions cannot be cancelled.",
                    current=auction.status,
                    requested=AuctionStatus.CANCELLED.value,
                )

            now = self.clock()
            transition(auction, AuctionStatus.CANCELLED, now)
            auction.cancelled_at = now
            auction.cancellation_reason = reason

            bidders = db.execute(
                select(Bid.seller_id)
                .where(
                    Bid.auction_id == auction.id,
                    Bid.status == BidStatus.ACTIVE.value,
                )
                .distinct()
            ).scalars().all()
            for seller_id in bidders:
                self.notifications.enqueue(
                    db,
                    event_type=NotificationType.CANCELLED,
                    auction=auction,
                    recipient_id=seller_id,
                    extra={"reason": reason},
                    now=now,
                )

            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(auction)
        logger.info(
            "auction cancelled",
            extra={"auction_id": str(auction.id), "reason": reason},
        )
        return auction

    # ---------------------------
    # SCHEDULER ENTRY POINTS
    # ---------------------------

    def activate_due(self, db: Session) -> Dict[str, int]:
        """
        PUBLISHED -> ACTIVE for every auction whose start_date has passed.
        Auctions already ACTIVE are not selected, so repeated calls are no-ops.
        """
        now = self.clock()
        due_ids = db.execute(
            select(Auction.id)
            .where(
                Auction.status == AuctionStatus.PUBLISHED.value,
                Auction.start_date <= now,
            )
            .order_by(Auction.start_date.asc())
        ).scalars().all()

        started = 0
        for auction_id in due_ids:
            try:
                auction = get_auction_for_update(db, auction_id)
                # re-check under lock; a concurrent sweep or cancel may have won
                if auction.status != AuctionStatus.PUBLISHED.value or auction.start_date > now:
                    db.rollback()
                    continue
                transition(auction, AuctionStatus.ACTIVE, now)
                db.commit()
                started += 1
            except StaleDataError:
                db.rollback()
                logger.warning("auction activation lost a race", extra={"auction_id": str(auction_id)})

        if started:
            logger.info("scheduled auctions started", extra={"count": started})
        return {"started": started}

    def close_expired(self, db: Session) -> Dict[str, int]:
        """
        ACTIVE/EXTENDED -> ENDED (has an ACTIVE bid) or NO_BIDS once end_date passes.

        end_date is re-read under the row lock: a bid accepted just before the
        deadline may have extended it, in which case the auction stays open.
        """
        now = self.clock()
        expired_ids = db.execute(
            select(Auction.id)
            .where(
                Auction.status.in_(OPEN_STATUSES),
                Auction.end_date <= now,
            )
            .order_by(Auction.end_date.asc())
        ).scalars().all()

        ended = no_bids = 0
        for auction_id in expired_ids:
            try:
                auction = get_auction_for_update(db, auction_id)
                if auction.status not in OPEN_STATUSES or auction.end_date > now:
                    db.rollback()
                    continue

                has_bids = count_active_bids(db, auction.id) > 0
                transition(auction, AuctionStatus.ENDED if has_bids else AuctionStatus.NO_BIDS, now)
                auction.ended_at = now
                db.commit()
                if has_bids:
                    ended += 1
                else:
                    no_bids += 1
            except StaleDataError:
                db.rollback()
                logger.warning("auction close lost a race", extra={"auction_id": str(auction_id)})

        logger.info(
            "expired auctions processed",
            extra={"processed": ended + no_bids, "ended": ended, "no_bids": no_bids},
        )
        return {"processed": ended + no_bids, "ended": ended, "no_bids": no_bids}
