# reverse_auction/api/v1/scheduler.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from reverse_auction.core.auth_deps import get_current_principal
from reverse_auction.core.clock import Clock
from reverse_auction.core.deps import get_clock
from reverse_auction.core.errors import AuctionError, to_http_exception
from reverse_auction.db.session import get_db
from reverse_auction.policies.rbac import ACTION_RUN_SCHEDULER, Principal, require_action
from reverse_auction.schemas.auctions import SweepResponse
from reverse_auction.services.scheduler_service import SchedulerService

router = APIRouter(prefix="/scheduler")


def _authorize(principal: Principal) -> None:
    try:
        require_action(principal, ACTION_RUN_SCHEDULER)
    except AuctionError as e:
        raise to_http_exception(e)


@router.post("/activate-due", response_model=SweepResponse)
def activate_due(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    clock: Clock = Depends(get_clock),
):
    _authorize(principal)
    return SweepResponse(result=SchedulerService(clock=clock).activate_due(db))


@router.post("/close-expired", response_model=SweepResponse)
def close_expired(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    clock: Clock = Depends(get_clock),
):
    _authorize(principal)
    return SweepResponse(result=SchedulerService(clock=clock).close_expired(db))


@router.post("/dispatch-notifications", response_model=SweepResponse)
def dispatch_notifications(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    clock: Clock = Depends(get_clock),
):
    _authorize(principal)
    return SweepResponse(result=SchedulerService(clock=clock).dispatch_notifications(db))
