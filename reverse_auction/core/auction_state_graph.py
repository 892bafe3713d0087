# reverse_auction/core/auction_state_graph.py
from reverse_auction.models.enums import AuctionStatus

ALLOWED_STATUS_TRANSITIONS = {
    AuctionStatus.DRAFT: {
        AuctionStatus.PUBLISHED,
        AuctionStatus.ACTIVE,
        AuctionStatus.CANCELLED,
    },

    AuctionStatus.PUBLISHED: {
        AuctionStatus.ACTIVE,
        AuctionStatus.CANCELLED,
    },

    AuctionStatus.ACTIVE: {
        AuctionStatus.EXTENDED,
        AuctionStatus.ENDED,
        AuctionStatus.NO_BIDS,
        AuctionStatus.CANCELLED,
    },

    # re-entrant: each further extension stays EXTENDED
    AuctionStatus.EXTENDED: {
        AuctionStatus.EXTENDED,
        AuctionStatus.ENDED,
        AuctionStatus.NO_BIDS,
        AuctionStatus.CANCELLED,
    },

    AuctionStatus.ENDED: {
        AuctionStatus.AWARDED,
        AuctionStatus.CANCELLED,
    },

    AuctionStatus.AWARDED: set(),
    AuctionStatus.CANCELLED: set(),
    AuctionStatus.NO_BIDS: set(),
}


def can_transition(current: AuctionStatus, target: AuctionStatus) -> bool:
    return target in ALLOWED_STATUS_TRANSITIONS.get(current, set())
