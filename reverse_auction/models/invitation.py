#reverse_auction/models/invitation.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Uuid, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from reverse_auction.core.clock import utcnow
from reverse_auction.db.base import Base
from reverse_auction.db.types import UTCDateTime
from reverse_auction.models.enums import InvitationStatus


class Invitation(Base):
    """
    (auction, seller) pair for invitation-only auctions.
    Gates visibility and bid eligibility once ACCEPTED.
    """

    __tablename__ = "reverse_auction_invitations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    auction_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("reverse_auctions.id", ondelete="CASCADE"), nullable=False
    )
    seller_id: Mapped[str] = mapped_column(String(128), nullable=False)

    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=InvitationStatus.PENDING.value
    )

    invited_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    responded_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    auction = relationship("Auction", back_populates="invitations")

    __table_args__ = (
        UniqueConstraint("auction_id", "seller_id", name="uq_invitations_auction_seller"),
    )
