from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class InviteSellersRequest(BaseModel):
    seller_ids: List[str] = Field(..., min_length=1)


class InvitationRespondRequest(BaseModel):
    accept: bool


class InvitationResponse(BaseModel):
    id: str
    auction_id: str
    seller_id: str
    status: str
    invited_at: datetime
    responded_at: Optional[datetime] = None
