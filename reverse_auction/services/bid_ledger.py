# reverse_auction/services/bid_ledger.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from reverse_auction.core.clock import Clock, utcnow
from reverse_auction.core.config import Settings, get_settings
from reverse_auction.core.errors import (
    ConflictRetryable,
    Forbidden,
    InvalidState,
    NotFound,
)
from reverse_auction.models.bid import Bid
from reverse_auction.models.enums import AuctionStatus, BidStatus
from reverse_auction.services.auction_repository import (
    get_active_bid,
    get_auction,
    get_auction_for_update,
    lowest_active_amount,
)
from reverse_auction.services.bid_validator import BidValidator
from reverse_auction.services.extension_controller import ExtensionController
from reverse_auction.services.invitation_service import EligibilityChecker, InvitationService

logger = logging.getLogger(__name__)

# Bid rows the buyer sees ranked; withdrawn offers drop out.
STANDING_STATUSES = (
    BidStatus.ACTIVE.value,
    BidStatus.AWARDED.value,
    BidStatus.REJECTED.value,
)


@dataclass(frozen=True)
class RankedBid:
    bid: Bid
    rank: int


@dataclass(frozen=True)
class SellerBidView:
    bid: Optional[Bid]
    rank: Optional[int]
    active_bid_count: int


class BidLedger:
    """
    Authoritative bid set per auction.

    submit() is one read-validate-write unit scoped to the auction row:
    lock auction -> read live competitor aggregate -> validate -> upsert the
    seller's ACTIVE bid -> maybe extend -> refresh cached lowest -> commit.
    A lost race surfaces as ConflictRetryable and is retried a bounded
    number of times before reaching the caller.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
        eligibility: Optional[EligibilityChecker] = None,
    ):
        self.settings = settings or get_settings()
        self.clock = clock or utcnow
        self.eligibility = eligibility or InvitationService(clock=self.clock)
        self.validator = BidValidator(self.settings.auction_min_bid_decrement_pct)
        self.extensions = ExtensionController()

    # -----------------------------------------------------------------
    # submit
    # -----------------------------------------------------------------

    def submit(
        self,
        db: Session,
        *,
        auction_id: uuid.UUID,
        seller_id: str,
        amount: Decimal,
        delivery_days: Optional[int] = None,
        warranty: Optional[str] = None,
        notes: Optional[str] = None,
        attachments: Optional[List[Any]] = None,
    ) -> Bid:
        max_attempts = max(1, self.settings.bid_conflict_max_attempts)
        attempt = 1
        while True:
            try:
                return self._submit_once(
                    db,
                    auction_id=auction_id,
                    seller_id=seller_id,
                    amount=Decimal(amount),
                    delivery_days=delivery_days,
                    warranty=warranty,
                    notes=notes,
                    attachments=attachments,
                )
            except ConflictRetryable:
                if attempt >= max_attempts:
                    logger.warning(
                        "bid conflict retries exhausted",
                        extra={"auction_id": str(auction_id), "seller_id": seller_id, "attempts": attempt},
                    )
                    raise
                logger.warning(
                    "bid conflict, retrying",
                    extra={"auction_id": str(auction_id), "seller_id": seller_id, "attempt": attempt},
                )
                attempt += 1

    def _submit_once(
        self,
        db: Session,
        *,
        auction_id: uuid.UUID,
        seller_id: str,
        amount: Decimal,
        delivery_days: Optional[int],
        warranty: Optional[str],
        notes: Optional[str],
        attachments: Optional[List[Any]],
    ) -> Bid:
        try:
            auction = get_auction_for_update(db, auction_id)
            if auction.buyer_id == seller_id:
                raise Forbidden("Buyers cannot bid on their own auction.")

            now = self.clock()
            competitor_lowest = lowest_active_amount(db, auction.id, exclude_seller_id=seller_id)
            invited = auction.is_public or self.eligibility.has_accepted_invitation(
                db, auction.id, seller_id
            )

            decision = self.validator.decide(
                auction,
                amount=amount,
                now=now,
                has_accepted_invitation=invited,
                competitor_lowest=competitor_lowest,
            )
            if not decision.accepted:
                logger.info(
                    "bid rejected",
                    extra={
                        "auction_id": str(auction.id),
                        "seller_id": seller_id,
                        "amount": str(amount),
                        "reason": decision.reason,
                    },
                )
                decision.raise_for_rejection(auction)

            bid = get_active_bid(db, auction.id, seller_id)
            is_update = bid is not None
            if bid is None:
                bid = Bid(
                    auction_id=auction.id,
                    seller_id=seller_id,
                    status=BidStatus.ACTIVE.value,
                    created_at=now,
                )
                db.add(bid)
            bid.amount = amount
            bid.delivery_days = delivery_days
            bid.warranty = warranty
            bid.notes = notes
            bid.attachments = list(attachments or [])
            bid.accepted_at = now
            bid.updated_at = now

            extended = self.extensions.maybe_extend(auction, now)

            db.flush()
            auction.current_lowest_bid = lowest_active_amount(db, auction.id)
            auction.last_bid_at = now
            auction.updated_at = now

            db.commit()
        except (StaleDataError, IntegrityError) as e:
            db.rollback()
            raise ConflictRetryable(
                "Another bid was written to this auction concurrently; retry.",
                auction_id=str(auction_id),
            ) from e
        except Exception:
            db.rollback()
            raise

        db.refresh(bid)
        logger.info(
            "bid accepted",
            extra={
                "auction_id": str(auction_id),
                "seller_id": seller_id,
                "amount": str(amount),
                "is_update": is_update,
                "extended": extended,
            },
        )
        return bid

    # -----------------------------------------------------------------
    # withdraw
    # -----------------------------------------------------------------

    def withdraw(self, db: Session, *, bid_id: uuid.UUID, seller_id: str) -> Bid:
        bid = db.get(Bid, bid_id)
        if not bid:
            raise NotFound("Bid not found.", bid_id=str(bid_id))
        if bid.seller_id != seller_id:
            raise Forbidden("Bids can only be withdrawn by the seller who placed them.")

        try:
            auction = get_auction_for_update(db, bid.auction_id)
            db.refresh(bid)
            if auction.status == AuctionStatus.AWARDED.value:
                raise InvalidState(
                    "Cannot withdraw bid from awarded auction.",
                    current=auction.status,
                    requested=BidStatus.WITHDRAWN.value,
                )
            if bid.status != BidStatus.ACTIVE.value:
                raise InvalidState(
                    "Only active bids can be withdrawn.",
                    current=bid.status,
                    requested=BidStatus.WITHDRAWN.value,
                )

            now = self.clock()
            bid.status = BidStatus.WITHDRAWN.value
            bid.withdrawn_at = now
            bid.updated_at = now

            db.flush()
            auction.current_lowest_bid = lowest_active_amount(db, auction.id)
            auction.updated_at = now
            db.commit()
        except StaleDataError as e:
            db.rollback()
            raise ConflictRetryable("Auction changed concurrently; retry.", bid_id=str(bid_id)) from e
        except Exception:
            db.rollback()
            raise

        db.refresh(bid)
        logger.info("bid withdrawn", extra={"bid_id": str(bid_id), "seller_id": seller_id})
        return bid

    # -----------------------------------------------------------------
    # reads
    # -----------------------------------------------------------------

    def _ranked(self, db: Session, auction_id: uuid.UUID, statuses) -> List[Bid]:
        return list(
            db.execute(
                select(Bid)
                .where(Bid.auction_id == auction_id, Bid.status.in_(statuses))
                .order_by(Bid.amount.asc(), Bid.accepted_at.asc())
            )
            .scalars()
            .all()
        )

    def list_for_buyer(self, db: Session, *, auction_id: uuid.UUID, buyer_id: str) -> List[RankedBid]:
        """Full ranked list, amount ascending, earliest acceptance first on ties."""
        auction = get_auction(db, auction_id)
        if auction.buyer_id != buyer_id:
            raise Forbidden("Not authorized to view all bids.")
        return [
            RankedBid(bid=b, rank=i)
            for i, b in enumerate(self._ranked(db, auction.id, STANDING_STATUSES), start=1)
        ]

    def view_for_seller(self, db: Session, *, auction_id: uuid.UUID, seller_id: str) -> SellerBidView:
        """A seller sees only its own latest bid and its rank among ACTIVE bids."""
        auction = get_auction(db, auction_id)
        active = self._ranked(db, auction.id, (BidStatus.ACTIVE.value,))

        rank = None
        own = None
        for i, b in enumerate(active, start=1):
            if b.seller_id == seller_id:
                own, rank = b, i
                break

        if own is None:
            own = db.execute(
                select(Bid)
                .where(Bid.auction_id == auction.id, Bid.seller_id == seller_id)
                .order_by(Bid.updated_at.desc())
                .limit(1)
            ).scalar_one_or_none()

        return SellerBidView(bid=own, rank=rank, active_bid_count=len(active))
