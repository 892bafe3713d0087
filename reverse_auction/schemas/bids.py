from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from reverse_auction.schemas.primitives import Money


class BidSubmitRequest(BaseModel):
    """
    Seller-side bid. Re-submitting replaces the seller's standing ACTIVE bid.
    """

    amount: Money
    delivery_days: Optional[int] = Field(default=None, ge=1)
    warranty: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = Field(default=None, max_length=2000)
    attachments: List[Any] = Field(default_factory=list)


class BidResponse(BaseModel):
    id: str
    auction_id: str
    seller_id: str
    amount: Decimal
    delivery_days: Optional[int] = None
    warranty: Optional[str] = None
    notes: Optional[str] = None
    status: str
    accepted_at: datetime
    updated_at: datetime
    rank: Optional[int] = None


class SellerBidStanding(BaseModel):
    auction_id: str
    bid: Optional[BidResponse] = None
    rank: Optional[int] = None
    active_bid_count: int


class BuyerBidList(BaseModel):
    auction_id: str
    count: int
    bids: List[BidResponse]
