#reverse_auction/models/enums.py
from __future__ import annotations
from enum import Enum


class ParticipantRole(str, Enum):
    BUYER = "BUYER"
    SELLER = "SELLER"
    ADMIN = "ADMIN"


class AuctionStatus(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ACTIVE = "ACTIVE"
    EXTENDED = "EXTENDED"
    ENDED = "ENDED"
    AWARDED = "AWARDED"
    CANCELLED = "CANCELLED"
    NO_BIDS = "NO_BIDS"


# Statuses in which bids are accepted.
OPEN_STATUSES = frozenset({AuctionStatus.ACTIVE.value, AuctionStatus.EXTENDED.value})

TERMINAL_STATUSES = frozenset(
    {
        AuctionStatus.AWARDED.value,
        AuctionStatus.CANCELLED.value,
        AuctionStatus.NO_BIDS.value,
    }
)

# Human labels shown next to the machine status.
AUCTION_STATUS_LABELS = {
    AuctionStatus.DRAFT.value: "Draft",
    AuctionStatus.PUBLISHED.value: "Published",
    AuctionStatus.ACTIVE.value: "Active",
    AuctionStatus.EXTENDED.value: "Extended",
    AuctionStatus.ENDED.value: "Ended",
    AuctionStatus.AWARDED.value: "Awarded",
    AuctionStatus.CANCELLED.value: "Cancelled",
    AuctionStatus.NO_BIDS.value: "No Bids Received",
}


class AwardMethod(str, Enum):
    LOWEST_BID = "LOWEST_BID"
    WEIGHTED_SCORE = "WEIGHTED_SCORE"
    MANUAL = "MANUAL"


class BidStatus(str, Enum):
    ACTIVE = "ACTIVE"
    WITHDRAWN = "WITHDRAWN"
    AWARDED = "AWARDED"
    REJECTED = "REJECTED"


class InvitationStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"


class OrderStatus(str, Enum):
    PENDING = "PENDING"


class NotificationType(str, Enum):
    INVITED = "INVITED"
    WON = "WON"
    LOST = "LOST"
    CANCELLED = "CANCELLED"


class OutboxStatus(str, Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"
