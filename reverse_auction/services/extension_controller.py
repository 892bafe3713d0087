# reverse_auction/services/extension_controller.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta

from reverse_auction.models.auction import Auction
from reverse_auction.models.enums import AuctionStatus
from reverse_auction.services.auction_repository import transition

logger = logging.getLogger(__name__)


class ExtensionController:
    """
    Anti-sniping: a bid accepted inside the last extension window pushes
    end_date out by one window, at most max_extensions times.

    Must run on an auction row already locked by the caller, in the same
    unit as the bid write, so two late bids cannot both extend the clock.
    """

    def maybe_extend(self, auction: Auction, now: datetime) -> bool:
        window = timedelta(minutes=auction.extension_window_minutes)
        remaining = auction.end_date - now

        if remaining >= window:
            return False

        if auction.extensions_used >= auction.max_extensions:
            logger.info(
                "auction extension cap reached",
                extra={
                    "auction_id": str(auction.id),
                    "extensions_used": auction.extensions_used,
                    "end_date": auction.end_date.isoformat(),
                },
            )
            return False

        auction.end_date = auction.end_date + window
        auction.extensions_used += 1
        if auction.status != AuctionStatus.EXTENDED.value:
            transition(auction, AuctionStatus.EXTENDED, now)
        auction.updated_at = now

        logger.info(
            "auction extended",
            extra={
                "auction_id": str(auction.id),
                "new_end_date": auction.end_date.isoformat(),
                "extensions_used": auction.extensions_used,
            },
        )
        return True
