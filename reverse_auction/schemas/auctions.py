from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from reverse_auction.models.enums import AwardMethod
from reverse_auction.schemas.primitives import Money, PositiveInt


class AuctionCreateRequest(BaseModel):
    """
    Buyer-side auction definition. Schedule/duration rules are enforced by
    AuctionsService; this schema only checks shape.
    """

    title: str = Field(..., min_length=5, max_length=200)
    description: str = Field(..., min_length=20)
    category_id: Optional[str] = Field(default=None, max_length=64)
    specifications: Dict[str, Any] = Field(default_factory=dict)

    quantity: PositiveInt
    unit: str = Field(default="units", max_length=32)
    max_budget: Money
    currency: str = Field(default="INR", min_length=3, max_length=3)

    start_date: datetime
    end_date: datetime

    delivery_address: Optional[str] = None
    delivery_deadline: Optional[datetime] = None

    award_method: AwardMethod = AwardMethod.LOWEST_BID
    qualification_criteria: List[Any] = Field(default_factory=list)
    attachments: List[Any] = Field(default_factory=list)

    is_public: bool = True
    invited_sellers: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _end_after_start(self):
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date.")
        return self


class AuctionUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=5, max_length=200)
    description: Optional[str] = Field(default=None, min_length=20)
    category_id: Optional[str] = Field(default=None, max_length=64)
    specifications: Optional[Dict[str, Any]] = None
    quantity: Optional[PositiveInt] = None
    unit: Optional[str] = Field(default=None, max_length=32)
    max_budget: Optional[Money] = None
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    delivery_address: Optional[str] = None
    delivery_deadline: Optional[datetime] = None
    award_method: Optional[AwardMethod] = None
    qualification_criteria: Optional[List[Any]] = None
    attachments: Optional[List[Any]] = None
    is_public: Optional[bool] = None


class AuctionCancelRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=2000)


class AuctionAwardRequest(BaseModel):
    bid_id: str = Field(..., min_length=1)
    notes: str = Field(default="", max_length=2000)


class AuctionResponse(BaseModel):
    id: str
    auction_number: str
    buyer_id: str
    title: str
    description: str
    category_id: Optional[str] = None

    quantity: int
    unit: str
    currency: str
    max_budget: Decimal

    start_date: datetime
    end_date: datetime
    original_end_date: datetime
    extensions_used: int
    max_extensions: int
    extension_window_minutes: int

    award_method: str
    is_public: bool
    status: str
    status_label: Optional[str] = None

    current_lowest_bid: Optional[Decimal] = None
    active_bid_count: Optional[int] = None
    is_owner: Optional[bool] = None
    time_remaining: Optional[str] = None

    winning_bid_id: Optional[str] = None
    awarded_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None


class AwardResponse(BaseModel):
    auction: AuctionResponse
    winning_bid_id: str
    order_id: str
    rejected_bid_ids: List[str]


class SweepResponse(BaseModel):
    result: Dict[str, int]
