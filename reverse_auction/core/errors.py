# reverse_auction/core/errors.py
from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import HTTPException


class BidRejection:
    """Reason codes attached to ValidationFailed for rejected bids."""

    AUCTION_NOT_OPEN = "AuctionNotOpen"
    NOT_INVITED = "NotInvited"
    BUDGET_EXCEEDED = "BudgetExceeded"
    NOT_LOWER_THAN_CURRENT_BID = "NotLowerThanCurrentBid"
    INVALID_AMOUNT = "InvalidAmount"


class AuctionRejection:
    """Reason codes for rejected auction definitions."""

    INVALID_SCHEDULE = "InvalidSchedule"
    INVALID_QUANTITY = "InvalidQuantity"
    INVALID_BUDGET = "InvalidBudget"


class AuctionError(Exception):
    code = "AuctionError"
    http_status = 400

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"code": self.code, "message": self.message}
        for k, v in self.context.items():
            body[k] = str(v) if isinstance(v, Decimal) else v
        return body


class NotFound(AuctionError, LookupError):
    code = "NotFound"
    http_status = 404


class Forbidden(AuctionError, PermissionError):
    code = "Forbidden"
    http_status = 403


class InvalidState(AuctionError, ValueError):
    """Illegal lifecycle transition or an operation the current status does not allow."""

    code = "InvalidState"
    http_status = 409

    def __init__(
        self,
        message: str,
        *,
        current: Optional[str] = None,
        requested: Optional[str] = None,
        **context: Any,
    ):
        super().__init__(message, current=current, requested=requested, **context)
        self.current = current
        self.requested = requested


class ValidationFailed(AuctionError, ValueError):
    code = "ValidationFailed"
    http_status = 422

    def __init__(self, message: str, *, reason: str, current_lowest: Optional[Decimal] = None, **context: Any):
        super().__init__(message, reason=reason, current_lowest=current_lowest, **context)
        self.reason = reason
        self.current_lowest = current_lowest


class ConflictRetryable(AuctionError, RuntimeError):
    """Lost a race on the auction's atomic unit; the submission may be retried."""

    code = "ConflictRetryable"
    http_status = 409


class OrderCreationFailed(AuctionError, RuntimeError):
    code = "OrderCreationFailed"
    http_status = 502


def to_http_exception(exc: AuctionError) -> HTTPException:
    return HTTPException(status_code=exc.http_status, detail=exc.to_dict())
