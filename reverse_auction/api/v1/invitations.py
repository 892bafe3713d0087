# reverse_auction/api/v1/invitations.py
from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from reverse_auction.api.v1.presenters import invitation_to_schema
from reverse_auction.core.auth_deps import get_current_principal
from reverse_auction.core.clock import Clock
from reverse_auction.core.deps import get_clock
from reverse_auction.core.errors import AuctionError, to_http_exception
from reverse_auction.db.session import get_db
from reverse_auction.policies.rbac import (
    ACTION_MANAGE_AUCTION,
    ACTION_RESPOND_INVITATION,
    Principal,
    require_action,
)
from reverse_auction.schemas.invitations import (
    InvitationRespondRequest,
    InvitationResponse,
    InviteSellersRequest,
)
from reverse_auction.services.invitation_service import InvitationService

router = APIRouter(prefix="/auctions")


@router.post("/{auction_id}/invitations", response_model=List[InvitationResponse], status_code=201)
def invite_sellers(
    auction_id: uuid.UUID,
    req: InviteSellersRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    clock: Clock = Depends(get_clock),
):
    try:
        require_action(principal, ACTION_MANAGE_AUCTION)
        created = InvitationService(clock=clock).invite_sellers(
            db,
            auction_id=auction_id,
            buyer_id=principal.participant_id,
            seller_ids=req.seller_ids,
        )
    except AuctionError as e:
        raise to_http_exception(e)
    return [invitation_to_schema(i) for i in created]


@router.get("/{auction_id}/invitations", response_model=List[InvitationResponse])
def list_invitations(
    auction_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    try:
        require_action(principal, ACTION_MANAGE_AUCTION)
        rows = InvitationService().list_for_auction(
            db, auction_id=auction_id, buyer_id=principal.participant_id
        )
    except AuctionError as e:
        raise to_http_exception(e)
    return [invitation_to_schema(i) for i in rows]


@router.post("/{auction_id}/invitations/respond", response_model=InvitationResponse)
def respond_to_invitation(
    auction_id: uuid.UUID,
    req: InvitationRespondRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    clock: Clock = Depends(get_clock),
):
    try:
        require_action(principal, ACTION_RESPOND_INVITATION)
        inv = InvitationService(clock=clock).respond(
            db,
            auction_id=auction_id,
            seller_id=principal.participant_id,
            accept=req.accept,
        )
    except AuctionError as e:
        raise to_http_exception(e)
    return invitation_to_schema(inv)
