# reverse_auction/services/invitation_service.py
from __future__ import annotations

import logging
import uuid
from typing import Iterable, List, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from reverse_auction.core.clock import Clock, utcnow
from reverse_auction.core.errors import Forbidden, InvalidState, NotFound
from reverse_auction.models.enums import (
    AuctionStatus,
    InvitationStatus,
    NotificationType,
)
from reverse_auction.models.invitation import Invitation
from reverse_auction.services.auction_repository import get_auction, get_auction_for_update
from reverse_auction.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

INVITABLE_STATUSES = frozenset(
    {
        AuctionStatus.DRAFT.value,
        AuctionStatus.PUBLISHED.value,
        AuctionStatus.ACTIVE.value,
        AuctionStatus.EXTENDED.value,
    }
)


class EligibilityChecker(Protocol):
    def has_accepted_invitation(self, db: Session, auction_id: uuid.UUID, seller_id: str) -> bool:
        ...


class InvitationService:
    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or utcnow

    # ---------------------------
    # READS
    # ---------------------------

    def get_invitation(self, db: Session, auction_id: uuid.UUID, seller_id: str) -> Optional[Invitation]:
        return db.execute(
            select(Invitation).where(
                Invitation.auction_id == auction_id,
                Invitation.seller_id == seller_id,
            )
        ).scalar_one_or_none()

    def has_accepted_invitation(self, db: Session, auction_id: uuid.UUID, seller_id: str) -> bool:
        inv = self.get_invitation(db, auction_id, seller_id)
        return bool(inv and inv.status == InvitationStatus.ACCEPTED.value)

    def is_invited(self, db: Session, auction_id: uuid.UUID, seller_id: str) -> bool:
        """Any invitation (pending, accepted or declined) grants visibility."""
        return self.get_invitation(db, auction_id, seller_id) is not None

    def list_for_auction(self, db: Session, *, auction_id: uuid.UUID, buyer_id: str) -> List[Invitation]:
        auction = get_auction(db, auction_id)
        if auction.buyer_id != buyer_id:
            raise Forbidden("Only the auction owner may list invitations.")
        return list(
            db.execute(
                select(Invitation)
                .where(Invitation.auction_id == auction_id)
                .order_by(Invitation.invited_at.asc())
            )
            .scalars()
            .all()
        )

    # ---------------------------
    # MUTATIONS
    # ---------------------------

    def add_pending(self, db: Session, auction, seller_ids: Iterable[str]) -> List[Invitation]:
        """Create PENDING invitations for sellers not yet invited. Does not commit."""
        existing = {
            inv.seller_id
            for inv in db.execute(
                select(Invitation).where(Invitation.auction_id == auction.id)
            ).scalars()
        }
        created: List[Invitation] = []
        now = self.clock()
        for seller_id in dict.fromkeys(seller_ids):
            if seller_id in existing or seller_id == auction.buyer_id:
                continue
            inv = Invitation(
                auction_id=auction.id,
                seller_id=seller_id,
                status=InvitationStatus.PENDING.value,
                invited_at=now,
            )
            db.add(inv)
            created.append(inv)
        return created

    def invite_sellers(
        self,
        db: Session,
        *,
        auction_id: uuid.UUID,
        buyer_id: str,
        seller_ids: List[str],
    ) -> List[Invitation]:
        auction = get_auction_for_update(db, auction_id)
        try:
            if auction.buyer_id != buyer_id:
                raise Forbidden("Only the auction owner may invite sellers.")
            if auction.is_public:
                raise InvalidState(
                    "Invitations apply to invitation-only auctions.",
                    current=auction.status,
                    requested="INVITE",
                )
            if auction.status not in INVITABLE_STATUSES:
                raise InvalidState(
                    f"Cannot invite sellers while auction is {auction.status}.",
                    current=auction.status,
                    requested="INVITE",
                )

            created = self.add_pending(db, auction, seller_ids)

            # already visible to sellers: tell the new invitees now
            if auction.status != AuctionStatus.DRAFT.value:
                notifications = NotificationService()
                for inv in created:
                    notifications.enqueue(
                        db,
                        event_type=NotificationType.INVITED,
                        auction=auction,
                        recipient_id=inv.seller_id,
                        now=self.clock(),
                    )
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(
            "sellers invited",
            extra={"auction_id": str(auction_id), "invited": [i.seller_id for i in created]},
        )
        return created

    def respond(
        self,
        db: Session,
        *,
        auction_id: uuid.UUID,
        seller_id: str,
        accept: bool,
    ) -> Invitation:
        inv = self.get_invitation(db, auction_id, seller_id)
        if not inv:
            raise NotFound("Invitation not found.", auction_id=str(auction_id))
        if inv.status != InvitationStatus.PENDING.value:
            raise InvalidState(
                "Invitation has already been answered.",
                current=inv.status,
                requested=InvitationStatus.ACCEPTED.value if accept else InvitationStatus.DECLINED.value,
            )

        inv.status = InvitationStatus.ACCEPTED.value if accept else InvitationStatus.DECLINED.value
        inv.responded_at = self.clock()
        db.commit()
        db.refresh(inv)

        logger.info(
            "invitation answered",
            extra={"auction_id": str(auction_id), "seller_id": seller_id, "status": inv.status},
        )
        return inv
