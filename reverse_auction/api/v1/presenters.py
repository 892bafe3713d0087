# reverse_auction/api/v1/presenters.py
from __future__ import annotations

from typing import Optional

from reverse_auction.models.auction import Auction
from reverse_auction.models.bid import Bid
from reverse_auction.models.invitation import Invitation
from reverse_auction.schemas.auctions import AuctionResponse
from reverse_auction.schemas.bids import BidResponse
from reverse_auction.schemas.invitations import InvitationResponse
from reverse_auction.services.auctions_service import AuctionView


def auction_to_schema(a: Auction, view: Optional[AuctionView] = None) -> AuctionResponse:
    return AuctionResponse(
        id=str(a.id),
        auction_number=a.auction_number,
        buyer_id=a.buyer_id,
        title=a.title,
        description=a.description,
        category_id=a.category_id,
        quantity=a.quantity,
        unit=a.unit,
        currency=a.currency,
        max_budget=a.max_budget,
        start_date=a.start_date,
        end_date=a.end_date,
        original_end_date=a.original_end_date,
        extensions_used=a.extensions_used,
        max_extensions=a.max_extensions,
        extension_window_minutes=a.extension_window_minutes,
        award_method=a.award_method,
        is_public=a.is_public,
        status=a.status,
        status_label=view.status_label if view else None,
        current_lowest_bid=view.current_lowest_bid if view else a.current_lowest_bid,
        active_bid_count=view.active_bid_count if view else None,
        is_owner=view.is_owner if view else None,
        time_remaining=view.time_remaining if view else None,
        winning_bid_id=str(a.winning_bid_id) if a.winning_bid_id else None,
        awarded_at=a.awarded_at,
        cancelled_at=a.cancelled_at,
        cancellation_reason=a.cancellation_reason,
    )


def view_to_schema(view: AuctionView) -> AuctionResponse:
    return auction_to_schema(view.auction, view)


def bid_to_schema(b: Bid, rank: Optional[int] = None) -> BidResponse:
    return BidResponse(
        id=str(b.id),
        auction_id=str(b.auction_id),
        seller_id=b.seller_id,
        amount=b.amount,
        delivery_days=b.delivery_days,
        warranty=b.warranty,
        notes=b.notes,
        status=b.status,
        accepted_at=b.accepted_at,
        updated_at=b.updated_at,
        rank=rank,
    )


def invitation_to_schema(i: Invitation) -> InvitationResponse:
    return InvitationResponse(
        id=str(i.id),
        auction_id=str(i.auction_id),
        seller_id=i.seller_id,
        status=i.status,
        invited_at=i.invited_at,
        responded_at=i.responded_at,
    )
