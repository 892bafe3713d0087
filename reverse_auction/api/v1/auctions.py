# reverse_auction/api/v1/auctions.py
from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from reverse_auction.api.v1.presenters import auction_to_schema, view_to_schema
from reverse_auction.core.auth_deps import get_current_principal
from reverse_auction.core.clock import Clock
from reverse_auction.core.deps import get_clock
from reverse_auction.core.errors import AuctionError, to_http_exception
from reverse_auction.db.session import get_db
from reverse_auction.models.enums import AuctionStatus
from reverse_auction.policies.rbac import (
    ACTION_CREATE_AUCTION,
    ACTION_MANAGE_AUCTION,
    Principal,
    require_action,
)
from reverse_auction.schemas.auctions import (
    AuctionAwardRequest,
    AuctionCancelRequest,
    AuctionCreateRequest,
    AuctionResponse,
    AuctionUpdateRequest,
    AwardResponse,
)
from reverse_auction.schemas.primitives import Page, Pagination
from reverse_auction.services.auctions_service import AuctionsService
from reverse_auction.services.award_service import AwardService
from reverse_auction.services.lifecycle_service import LifecycleService

router = APIRouter(prefix="/auctions")


def _parse_uuid(raw: str, name: str) -> uuid.UUID:
    try:
        return uuid.UUID(raw)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"{name} must be UUID.")


# ─────────────────────────────────────────────────────────────
# CREATE / UPDATE
# ─────────────────────────────────────────────────────────────

@router.post("", response_model=AuctionResponse, status_code=201)
def create_auction(
    req: AuctionCreateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    clock: Clock = Depends(get_clock),
):
    try:
        require_action(principal, ACTION_CREATE_AUCTION)
        auction = AuctionsService(clock=clock).create_auction(
            db,
            buyer_id=principal.participant_id,
            data=req.model_dump(),
        )
    except AuctionError as e:
        raise to_http_exception(e)
    return auction_to_schema(auction)


@router.put("/{auction_id}", response_model=AuctionResponse)
def update_auction(
    auction_id: uuid.UUID,
    req: AuctionUpdateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    clock: Clock = Depends(get_clock),
):
    try:
        require_action(principal, ACTION_MANAGE_AUCTION)
        auction = AuctionsService(clock=clock).update_draft(
            db,
            auction_id=auction_id,
            buyer_id=principal.participant_id,
            changes=req.model_dump(exclude_unset=True),
        )
    except AuctionError as e:
        raise to_http_exception(e)
    return auction_to_schema(auction)


# ─────────────────────────────────────────────────────────────
# READS
# ─────────────────────────────────────────────────────────────

@router.get("/active", response_model=Page[AuctionResponse])
def list_active_auctions(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    category_id: Optional[str] = None,
    search: Optional[str] = None,
    min_budget: Optional[Decimal] = None,
    max_budget: Optional[Decimal] = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    clock: Clock = Depends(get_clock),
):
    views, total = AuctionsService(clock=clock).list_active(
        db,
        page=page,
        limit=limit,
        category_id=category_id,
        search=search,
        min_budget=min_budget,
        max_budget=max_budget,
        viewer_id=principal.participant_id,
    )
    return Page[AuctionResponse](
        items=[view_to_schema(v) for v in views],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/mine", response_model=Page[AuctionResponse])
def list_my_auctions(
    status: Optional[AuctionStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    clock: Clock = Depends(get_clock),
):
    try:
        require_action(principal, ACTION_CREATE_AUCTION)
    except AuctionError as e:
        raise to_http_exception(e)

    views, total = AuctionsService(clock=clock).list_buyer_auctions(
        db,
        buyer_id=principal.participant_id,
        status=status,
        page=page,
        limit=limit,
    )
    return Page[AuctionResponse](
        items=[view_to_schema(v) for v in views],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/{auction_id}", response_model=AuctionResponse)
def get_auction(
    auction_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    clock: Clock = Depends(get_clock),
):
    try:
        view = AuctionsService(clock=clock).get_auction_view(
            db, auction_id=auction_id, viewer_id=principal.participant_id
        )
    except AuctionError as e:
        raise to_http_exception(e)
    return view_to_schema(view)


# ─────────────────────────────────────────────────────────────
# LIFECYCLE
# ─────────────────────────────────────────────────────────────

@router.post("/{auction_id}/publish", response_model=AuctionResponse)
def publish_auction(
    auction_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    clock: Clock = Depends(get_clock),
):
    try:
        require_action(principal, ACTION_MANAGE_AUCTION)
        auction = LifecycleService(clock=clock).publish(
            db, auction_id=auction_id, actor_id=principal.participant_id
        )
    except AuctionError as e:
        raise to_http_exception(e)
    return auction_to_schema(auction)


@router.post("/{auction_id}/cancel", response_model=AuctionResponse)
def cancel_auction(
    auction_id: uuid.UUID,
    req: AuctionCancelRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    clock: Clock = Depends(get_clock),
):
    try:
        require_action(principal, ACTION_MANAGE_AUCTION)
        auction = LifecycleService(clock=clock).cancel(
            db,
            auction_id=auction_id,
            actor_id=principal.participant_id,
            reason=req.reason,
        )
    except AuctionError as e:
        raise to_http_exception(e)
    return auction_to_schema(auction)


@router.post("/{auction_id}/award", response_model=AwardResponse)
def award_auction(
    auction_id: uuid.UUID,
    req: AuctionAwardRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    clock: Clock = Depends(get_clock),
):
    bid_uuid = _parse_uuid(req.bid_id, "bid_id")
    try:
        require_action(principal, ACTION_MANAGE_AUCTION)
        result = AwardService(clock=clock).award(
            db,
            auction_id=auction_id,
            buyer_id=principal.participant_id,
            bid_id=bid_uuid,
            notes=req.notes,
        )
    except AuctionError as e:
        raise to_http_exception(e)

    return AwardResponse(
        auction=auction_to_schema(result.auction),
        winning_bid_id=str(result.winning_bid.id),
        order_id=str(result.order_id),
        rejected_bid_ids=[str(i) for i in result.rejected_bid_ids],
    )
