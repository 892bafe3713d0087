# reverse_auction/services/auctions_service.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from reverse_auction.core.clock import Clock, utcnow
from reverse_auction.core.config import Settings, get_settings
from reverse_auction.core.errors import (
    AuctionRejection,
    Forbidden,
    InvalidState,
    ValidationFailed,
)
from reverse_auction.models.auction import Auction
from reverse_auction.models.enums import (
    AUCTION_STATUS_LABELS,
    OPEN_STATUSES,
    AuctionStatus,
    AwardMethod,
)
from reverse_auction.services.auction_repository import (
    count_active_bids,
    get_auction,
    get_auction_for_update,
    lowest_active_amount,
)
from reverse_auction.services.invitation_service import InvitationService
from reverse_auction.services.orders_service import generate_reference

logger = logging.getLogger(__name__)

# Fields a buyer may change while the auction is still a draft.
EDITABLE_DRAFT_FIELDS = (
    "title",
    "description",
    "category_id",
    "specifications",
    "quantity",
    "unit",
    "currency",
    "max_budget",
    "start_date",
    "end_date",
    "delivery_address",
    "delivery_deadline",
    "award_method",
    "qualification_criteria",
    "attachments",
    "is_public",
)


def time_remaining(end_date: datetime, now: datetime) -> str:
    remaining = end_date - now
    if remaining <= timedelta(0):
        return "Ended"

    total_minutes = int(remaining.total_seconds() // 60)
    days, rem = divmod(total_minutes, 24 * 60)
    hours, minutes = divmod(rem, 60)

    if days > 0:
        return f"{days}d {hours}h"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


@dataclass(frozen=True)
class AuctionView:
    auction: Auction
    status_label: str
    current_lowest_bid: Optional[Decimal]
    active_bid_count: int
    is_owner: bool
    time_remaining: str


class AuctionsService:
    def __init__(self, settings: Optional[Settings] = None, clock: Optional[Clock] = None):
        self.settings = settings or get_settings()
        self.clock = clock or utcnow
        self.invitations = InvitationService(clock=self.clock)

    # ---------------------------
    # VALIDATION
    # ---------------------------

    def _validate_schedule(self, start: datetime, end: datetime, now: datetime) -> None:
        if start.tzinfo is None or end.tzinfo is None:
            raise ValidationFailed(
                "Start and end dates must carry a timezone.",
                reason=AuctionRejection.INVALID_SCHEDULE,
            )
        if start < now:
            raise ValidationFailed(
                "Start date must be in the future.",
                reason=AuctionRejection.INVALID_SCHEDULE,
            )
        duration = end - start
        min_duration = timedelta(minutes=self.settings.auction_min_duration_minutes)
        max_duration = timedelta(days=self.settings.auction_max_duration_days)
        if duration < min_duration or duration > max_duration:
            raise ValidationFailed(
                "Invalid auction duration.",
                reason=AuctionRejection.INVALID_SCHEDULE,
                min_minutes=self.settings.auction_min_duration_minutes,
                max_days=self.settings.auction_max_duration_days,
            )

    def _validate_terms(self, quantity: int, max_budget: Decimal) -> None:
        if quantity < 1:
            raise ValidationFailed("Quantity must be at least 1.", reason=AuctionRejection.INVALID_QUANTITY)
        if max_budget <= 0:
            raise ValidationFailed("Maximum budget must be positive.", reason=AuctionRejection.INVALID_BUDGET)

    # ---------------------------
    # MUTATIONS
    # ---------------------------

    def create_auction(self, db: Session, *, buyer_id: str, data: Dict[str, Any]) -> Auction:
        """
        Create a DRAFT auction. Anti-sniping rules are snapshotted from
        settings so later config changes never alter a running auction.
        """
        now = self.clock()
        start: datetime = data["start_date"]
        end: datetime = data["end_date"]
        quantity = int(data["quantity"])
        max_budget = Decimal(data["max_budget"])

        self._validate_schedule(start, end, now)
        self._validate_terms(quantity, max_budget)

        auction = Auction(
            auction_number=generate_reference("RA", now),
            buyer_id=buyer_id,
            title=data["title"],
            description=data.get("description") or "",
            category_id=data.get("category_id"),
            specifications=data.get("specifications") or {},
            quantity=quantity,
            unit=data.get("unit") or "units",
            currency=data.get("currency") or "INR",
            max_budget=max_budget,
            start_date=start,
            end_date=end,
            original_end_date=end,
            extension_window_minutes=self.settings.auction_extension_window_minutes,
            max_extensions=self.settings.auction_max_extensions,
            extensions_used=0,
            delivery_address=data.get("delivery_address"),
            delivery_deadline=data.get("delivery_deadline"),
            award_method=AwardMethod(data.get("award_method") or AwardMethod.LOWEST_BID).value,
            is_public=bool(data.get("is_public", True)),
            qualification_criteria=list(data.get("qualification_criteria") or []),
            attachments=list(data.get("attachments") or []),
            status=AuctionStatus.DRAFT.value,
            created_at=now,
            updated_at=now,
        )
        db.add(auction)
        db.flush()

        invited = data.get("invited_sellers") or []
        if invited:
            self.invitations.add_pending(db, auction, invited)

        db.commit()
        db.refresh(auction)

        logger.info(
            "auction created",
            extra={
                "auction_id": str(auction.id),
                "auction_number": auction.auction_number,
                "buyer_id": buyer_id,
                "is_public": auction.is_public,
            },
        )
        return auction

    def update_draft(
        self,
        db: Session,
        *,
        auction_id: uuid.UUID,
        buyer_id: str,
        changes: Dict[str, Any],
    ) -> Auction:
        try:
            auction = get_auction_for_update(db, auction_id)
            if auction.buyer_id != buyer_id:
                raise Forbidden("Not authorized.")
            if auction.status != AuctionStatus.DRAFT.value:
                raise InvalidState(
                    "Only draft auctions can be edited.",
                    current=auction.status,
                    requested="UPDATE",
                )

            updates = {k: v for k, v in changes.items() if k in EDITABLE_DRAFT_FIELDS and v is not None}
            if "award_method" in updates:
                updates["award_method"] = AwardMethod(updates["award_method"]).value

            start = updates.get("start_date", auction.start_date)
            end = updates.get("end_date", auction.end_date)
            now = self.clock()
            if "start_date" in updates or "end_date" in updates:
                self._validate_schedule(start, end, now)
            self._validate_terms(
                int(updates.get("quantity", auction.quantity)),
                Decimal(updates.get("max_budget", auction.max_budget)),
            )

            for key, value in updates.items():
                setattr(auction, key, value)
            # no extensions can have happened in draft
            auction.original_end_date = auction.end_date
            auction.updated_at = now
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(auction)
        logger.info("auction draft updated", extra={"auction_id": str(auction.id), "fields": sorted(updates)})
        return auction

    # ---------------------------
    # READS
    # ---------------------------

    def _ensure_visible(self, db: Session, auction: Auction, viewer_id: Optional[str]) -> None:
        if auction.is_public and auction.status != AuctionStatus.DRAFT.value:
            return
        if viewer_id is not None and viewer_id == auction.buyer_id:
            return
        if (
            not auction.is_public
            and viewer_id is not None
            and auction.status != AuctionStatus.DRAFT.value
            and self.invitations.is_invited(db, auction.id, viewer_id)
        ):
            return
        raise Forbidden("Not authorized to view this auction.")

    def _view(self, db: Session, auction: Auction, viewer_id: Optional[str], now: datetime) -> AuctionView:
        return AuctionView(
            auction=auction,
            status_label=AUCTION_STATUS_LABELS[auction.status],
            current_lowest_bid=lowest_active_amount(db, auction.id),
            active_bid_count=count_active_bids(db, auction.id),
            is_owner=viewer_id == auction.buyer_id,
            time_remaining=time_remaining(auction.end_date, now),
        )

    def get_auction_view(self, db: Session, *, auction_id: uuid.UUID, viewer_id: Optional[str]) -> AuctionView:
        auction = get_auction(db, auction_id)
        self._ensure_visible(db, auction, viewer_id)
        return self._view(db, auction, viewer_id, self.clock())

    def list_active(
        self,
        db: Session,
        *,
        page: int = 1,
        limit: int = 20,
        category_id: Optional[str] = None,
        search: Optional[str] = None,
        min_budget: Optional[Decimal] = None,
        max_budget: Optional[Decimal] = None,
        viewer_id: Optional[str] = None,
    ) -> Tuple[List[AuctionView], int]:
        """Public auctions currently accepting bids, soonest-closing first."""
        now = self.clock()
        conditions = [
            Auction.status.in_(OPEN_STATUSES),
            Auction.is_public.is_(True),
            Auction.end_date > now,
        ]
        if category_id:
            conditions.append(Auction.category_id == category_id)
        if min_budget is not None:
            conditions.append(Auction.max_budget >= min_budget)
        if max_budget is not None:
            conditions.append(Auction.max_budget <= max_budget)
        if search:
            pattern = f"%{search.lower()}%"
            conditions.append(
                or_(
                    func.lower(Auction.title).like(pattern),
                    func.lower(Auction.description).like(pattern),
                    func.lower(Auction.auction_number).like(pattern),
                )
            )

        total = db.execute(select(func.count(Auction.id)).where(*conditions)).scalar_one()
        rows = (
            db.execute(
                select(Auction)
                .where(*conditions)
                .order_by(Auction.end_date.asc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
            .scalars()
            .all()
        )
        return [self._view(db, a, viewer_id, now) for a in rows], total

    def list_buyer_auctions(
        self,
        db: Session,
        *,
        buyer_id: str,
        status: Optional[AuctionStatus] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[AuctionView], int]:
        now = self.clock()
        conditions = [Auction.buyer_id == buyer_id]
        if status is not None:
            conditions.append(Auction.status == AuctionStatus(status).value)

        total = db.execute(select(func.count(Auction.id)).where(*conditions)).scalar_one()
        rows = (
            db.execute(
                select(Auction)
                .where(*conditions)
                .order_by(Auction.created_at.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
            .scalars()
            .all()
        )
        return [self._view(db, a, buyer_id, now) for a in rows], total
