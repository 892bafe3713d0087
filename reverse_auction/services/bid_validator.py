# reverse_auction/services/bid_validator.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_DOWN, Decimal
from typing import Optional

from reverse_auction.core.errors import BidRejection, InvalidState, ValidationFailed
from reverse_auction.models.auction import Auction
from reverse_auction.models.enums import OPEN_STATUSES

_HUNDRED = Decimal("100")
_CENT = Decimal("0.01")


@dataclass(frozen=True)
class BidDecision:
    accepted: bool
    reason: Optional[str] = None
    message: str = ""
    current_lowest: Optional[Decimal] = None

    def raise_for_rejection(self, auction: Auction) -> None:
        if self.accepted:
            return
        if self.reason == BidRejection.AUCTION_NOT_OPEN:
            raise InvalidState(
                self.message,
                current=auction.status,
                requested="BID",
                reason=self.reason,
                end_date=auction.end_date.isoformat(),
            )
        raise ValidationFailed(
            self.message,
            reason=self.reason,
            current_lowest=self.current_lowest,
        )


ACCEPT = BidDecision(accepted=True)


class BidValidator:
    """
    Pure accept/reject decision for a proposed bid.

    Checks run in a fixed order and the first failure wins:
    open auction, invitation, amount/budget, strictly lower than competitors.
    The caller supplies the competitor aggregate; BidLedger reads it inside
    the auction's locked unit so the decision is made on live data.
    """

    def __init__(self, min_decrement_pct: Decimal = Decimal("0")):
        self.min_decrement_pct = Decimal(min_decrement_pct)

    def decide(
        self,
        auction: Auction,
        *,
        amount: Decimal,
        now: datetime,
        has_accepted_invitation: bool,
        competitor_lowest: Optional[Decimal],
    ) -> BidDecision:
        # 1. open for bidding
        if auction.status not in OPEN_STATUSES or now >= auction.end_date:
            return BidDecision(
                accepted=False,
                reason=BidRejection.AUCTION_NOT_OPEN,
                message="Auction is not accepting bids.",
                current_lowest=competitor_lowest,
            )

        # 2. invitation-only auctions
        if not auction.is_public and not has_accepted_invitation:
            return BidDecision(
                accepted=False,
                reason=BidRejection.NOT_INVITED,
                message="Seller does not hold an accepted invitation for this auction.",
            )

        # 3. amount within ceiling
        if amount <= 0:
            return BidDecision(
                accepted=False,
                reason=BidRejection.INVALID_AMOUNT,
                message="Bid amount must be positive.",
            )
        if amount != amount.quantize(_CENT):
            return BidDecision(
                accepted=False,
                reason=BidRejection.INVALID_AMOUNT,
                message="Bid amount must have at most two decimal places.",
            )
        if amount > auction.max_budget:
            return BidDecision(
                accepted=False,
                reason=BidRejection.BUDGET_EXCEEDED,
                message=f"Bid must not exceed budget of {auction.max_budget}.",
                current_lowest=competitor_lowest,
            )

        # 4. strictly below every other seller's standing bid
        if competitor_lowest is not None:
            ceiling = self.max_acceptable(competitor_lowest)
            if amount >= competitor_lowest or amount > ceiling:
                return BidDecision(
                    accepted=False,
                    reason=BidRejection.NOT_LOWER_THAN_CURRENT_BID,
                    message=f"Bid must be lower than current lowest: {competitor_lowest}.",
                    current_lowest=competitor_lowest,
                )

        return ACCEPT

    def max_acceptable(self, competitor_lowest: Decimal) -> Decimal:
        """Highest amount that still beats competitor_lowest by the configured decrement."""
        if self.min_decrement_pct <= 0:
            return competitor_lowest
        factor = (_HUNDRED - self.min_decrement_pct) / _HUNDRED
        return (competitor_lowest * factor).quantize(_CENT, rounding=ROUND_DOWN)
