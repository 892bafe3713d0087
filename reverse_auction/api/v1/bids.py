# reverse_auction/api/v1/bids.py
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from reverse_auction.api.v1.presenters import bid_to_schema
from reverse_auction.core.auth_deps import get_current_principal
from reverse_auction.core.clock import Clock
from reverse_auction.core.deps import get_clock
from reverse_auction.core.errors import AuctionError, to_http_exception
from reverse_auction.db.session import get_db
from reverse_auction.policies.rbac import (
    ACTION_MANAGE_AUCTION,
    ACTION_SUBMIT_BID,
    Principal,
    require_action,
)
from reverse_auction.schemas.bids import (
    BidResponse,
    BidSubmitRequest,
    BuyerBidList,
    SellerBidStanding,
)
from reverse_auction.services.bid_ledger import BidLedger

router = APIRouter(prefix="/auctions")


# ---------------------------------------------------------------------
# POST /auctions/{id}/bids  (seller submit / improve)
# ---------------------------------------------------------------------


@router.post("/{auction_id}/bids", response_model=BidResponse, status_code=201)
def place_bid(
    auction_id: uuid.UUID,
    req: BidSubmitRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    clock: Clock = Depends(get_clock),
):
    try:
        require_action(principal, ACTION_SUBMIT_BID)
        bid = BidLedger(clock=clock).submit(
            db,
            auction_id=auction_id,
            seller_id=principal.participant_id,
            amount=req.amount,
            delivery_days=req.delivery_days,
            warranty=req.warranty,
            notes=req.notes,
            attachments=req.attachments,
        )
    except AuctionError as e:
        raise to_http_exception(e)
    return bid_to_schema(bid)


@router.post("/bids/{bid_id}/withdraw", response_model=BidResponse)
def withdraw_bid(
    bid_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    clock: Clock = Depends(get_clock),
):
    try:
        require_action(principal, ACTION_SUBMIT_BID)
        bid = BidLedger(clock=clock).withdraw(db, bid_id=bid_id, seller_id=principal.participant_id)
    except AuctionError as e:
        raise to_http_exception(e)
    return bid_to_schema(bid)


# ---------------------------------------------------------------------
# GET /auctions/{id}/bids  (buyer: full ranked list)
# ---------------------------------------------------------------------


@router.get("/{auction_id}/bids", response_model=BuyerBidList)
def list_bids(
    auction_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    try:
        require_action(principal, ACTION_MANAGE_AUCTION)
        ranked = BidLedger().list_for_buyer(db, auction_id=auction_id, buyer_id=principal.participant_id)
    except AuctionError as e:
        raise to_http_exception(e)

    return BuyerBidList(
        auction_id=str(auction_id),
        count=len(ranked),
        bids=[bid_to_schema(r.bid, r.rank) for r in ranked],
    )


# ---------------------------------------------------------------------
# GET /auctions/{id}/bids/mine  (seller: own bid + rank only)
# ---------------------------------------------------------------------


@router.get("/{auction_id}/bids/mine", response_model=SellerBidStanding)
def my_bid(
    auction_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    try:
        require_action(principal, ACTION_SUBMIT_BID)
        view = BidLedger().view_for_seller(db, auction_id=auction_id, seller_id=principal.participant_id)
    except AuctionError as e:
        raise to_http_exception(e)

    return SellerBidStanding(
        auction_id=str(auction_id),
        bid=bid_to_schema(view.bid, view.rank) if view.bid else None,
        rank=view.rank,
        active_bid_count=view.active_bid_count,
    )
