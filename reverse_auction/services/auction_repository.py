# reverse_auction/services/auction_repository.py
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from reverse_auction.core.auction_state_graph import can_transition
from reverse_auction.core.errors import InvalidState, NotFound
from reverse_auction.models.auction import Auction
from reverse_auction.models.bid import Bid
from reverse_auction.models.enums import AuctionStatus, BidStatus


# ---------------------------
# READS
# ---------------------------

def get_auction(db: Session, auction_id: uuid.UUID) -> Auction:
    auction = db.get(Auction, auction_id)
    if not auction:
        raise NotFound("Auction not found.", auction_id=str(auction_id))
    return auction


def get_auction_for_update(db: Session, auction_id: uuid.UUID) -> Auction:
    """
    Lock the auction row (FOR UPDATE) and refresh it from the database.

    Every read-validate-write unit on an auction starts here, so writers
    on the same auction are serialized and see each other's commits.
    """
    auction = (
        db.execute(
            select(Auction)
            .where(Auction.id == auction_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        .scalars()
        .one_or_none()
    )
    if not auction:
        raise NotFound("Auction not found.", auction_id=str(auction_id))
    return auction


def lowest_active_amount(
    db: Session,
    auction_id: uuid.UUID,
    *,
    exclude_seller_id: Optional[str] = None,
) -> Optional[Decimal]:
    """
    Live aggregate: lowest ACTIVE amount on the auction, optionally ignoring
    one seller's own standing bid.
    """
    stmt = select(func.min(Bid.amount)).where(
        Bid.auction_id == auction_id,
        Bid.status == BidStatus.ACTIVE.value,
    )
    if exclude_seller_id is not None:
        stmt = stmt.where(Bid.seller_id != exclude_seller_id)
    return db.execute(stmt).scalar_one_or_none()


def count_active_bids(db: Session, auction_id: uuid.UUID) -> int:
    return db.execute(
        select(func.count(Bid.id)).where(
            Bid.auction_id == auction_id,
            Bid.status == BidStatus.ACTIVE.value,
        )
    ).scalar_one()


def get_active_bid(db: Session, auction_id: uuid.UUID, seller_id: str) -> Optional[Bid]:
    return db.execute(
        select(Bid).where(
            Bid.auction_id == auction_id,
            Bid.seller_id == seller_id,
            Bid.status == BidStatus.ACTIVE.value,
        )
    ).scalar_one_or_none()


# ---------------------------
# TRANSITIONS
# ---------------------------

def transition(auction: Auction, target: AuctionStatus, now: datetime) -> None:
    """
    Move auction.status along the lifecycle graph or raise InvalidState.
    Nothing is mutated when the move is illegal.
    """
    current = AuctionStatus(auction.status)
    if not can_transition(current, target):
        raise InvalidState(
            f"Cannot move auction from {current.value} to {target.value}.",
            current=current.value,
            requested=target.value,
        )
    auction.status = target.value
    auction.updated_at = now
