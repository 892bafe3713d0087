from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select

from reverse_auction.core.auction_state_graph import can_transition
from reverse_auction.core.errors import Forbidden, InvalidState
from reverse_auction.models.enums import AuctionStatus, BidStatus, NotificationType
from reverse_auction.models.outbox_event import OutboxEvent
from reverse_auction.services.bid_ledger import BidLedger
from reverse_auction.services.lifecycle_service import LifecycleService


def outbox(db, event_type=None):
    stmt = select(OutboxEvent)
    if event_type is not None:
        stmt = stmt.where(OutboxEvent.event_type == event_type.value)
    return db.execute(stmt).scalars().all()


def test_state_graph_edges():
    assert can_transition(AuctionStatus.DRAFT, AuctionStatus.PUBLISHED)
    assert can_transition(AuctionStatus.EXTENDED, AuctionStatus.EXTENDED)
    assert can_transition(AuctionStatus.ENDED, AuctionStatus.AWARDED)
    assert not can_transition(AuctionStatus.ACTIVE, AuctionStatus.AWARDED)
    assert not can_transition(AuctionStatus.AWARDED, AuctionStatus.CANCELLED)
    for terminal in (AuctionStatus.AWARDED, AuctionStatus.CANCELLED, AuctionStatus.NO_BIDS):
        for target in AuctionStatus:
            assert not can_transition(terminal, target)


def test_publish_future_start_goes_published(db, make_auction, clock):
    auction = make_auction(
        status=AuctionStatus.DRAFT,
        start=clock() + timedelta(hours=1),
        end=clock() + timedelta(hours=5),
    )
    out = LifecycleService(clock=clock).publish(db, auction_id=auction.id, actor_id="buyer-1")
    assert out.status == AuctionStatus.PUBLISHED.value
    assert out.published_at == clock()


def test_publish_past_start_goes_active(db, make_auction, clock):
    auction = make_auction(status=AuctionStatus.DRAFT)
    out = LifecycleService(clock=clock).publish(db, auction_id=auction.id, actor_id="buyer-1")
    assert out.status == AuctionStatus.ACTIVE.value


def test_publish_private_notifies_invitees(db, make_auction, invite, clock):
    auction = make_auction(status=AuctionStatus.DRAFT, is_public=False)
    invite(auction, "seller-a")
    invite(auction, "seller-b")

    LifecycleService(clock=clock).publish(db, auction_id=auction.id, actor_id="buyer-1")

    rows = outbox(db, NotificationType.INVITED)
    assert sorted(r.recipient_id for r in rows) == ["seller-a", "seller-b"]


def test_publish_rules(db, make_auction, clock):
    svc = LifecycleService(clock=clock)
    auction = make_auction(status=AuctionStatus.DRAFT)
    with pytest.raises(Forbidden):
        svc.publish(db, auction_id=auction.id, actor_id="someone-else")

    svc.publish(db, auction_id=auction.id, actor_id="buyer-1")
    with pytest.raises(InvalidState):
        svc.publish(db, auction_id=auction.id, actor_id="buyer-1")


def test_cancel_active_auction_notifies_bidders(db, make_auction, make_bid, clock):
    auction = make_auction()
    make_bid(auction, "seller-a", "700")
    make_bid(auction, "seller-b", "650")
    make_bid(auction, "seller-c", "900", status=BidStatus.WITHDRAWN)

    out = LifecycleService(clock=clock).cancel(
        db, auction_id=auction.id, actor_id="buyer-1", reason="scope changed"
    )
    assert out.status == AuctionStatus.CANCELLED.value
    assert out.cancellation_reason == "scope changed"
    assert out.cancelled_at == clock()

    rows = outbox(db, NotificationType.CANCELLED)
    assert sorted(r.recipient_id for r in rows) == ["seller-a", "seller-b"]
    assert rows[0].payload_json["reason"] == "scope changed"


def test_cancel_ended_auction_is_allowed(db, make_auction, clock):
    auction = make_auction(status=AuctionStatus.ENDED)
    out = LifecycleService(clock=clock).cancel(db, auction_id=auction.id, actor_id="buyer-1")
    assert out.status == AuctionStatus.CANCELLED.value


@pytest.mark.parametrize(
    "status",
    [AuctionStatus.AWARDED, AuctionStatus.CANCELLED, AuctionStatus.NO_BIDS],
)
def test_cancel_terminal_auction_fails_unchanged(db, make_auction, clock, status):
    auction = make_auction(status=status)
    with pytest.raises(InvalidState) as e:
        LifecycleService(clock=clock).cancel(db, auction_id=auction.id, actor_id="buyer-1")
    assert e.value.current == status.value
    assert e.value.requested == AuctionStatus.CANCELLED.value

    db.refresh(auction)
    assert auction.status == status.value
    assert auction.cancelled_at is None


def test_cancel_by_non_owner_is_forbidden(db, make_auction, clock):
    auction = make_auction()
    with pytest.raises(Forbidden):
        LifecycleService(clock=clock).cancel(db, auction_id=auction.id, actor_id="seller-a")


def test_activate_due_is_idempotent(db, make_auction, clock):
    svc = LifecycleService(clock=clock)
    due = make_auction(
        status=AuctionStatus.PUBLISHED,
        start=clock() + timedelta(minutes=5),
        end=clock() + timedelta(hours=3),
    )
    later = make_auction(
        status=AuctionStatus.PUBLISHED,
        start=clock() + timedelta(hours=1),
        end=clock() + timedelta(hours=3),
    )

    assert svc.activate_due(db) == {"started": 0}
    clock.advance(minutes=5)
    assert svc.activate_due(db) == {"started": 1}
    assert svc.activate_due(db) == {"started": 0}

    db.refresh(due)
    db.refresh(later)
    assert due.status == AuctionStatus.ACTIVE.value
    assert later.status == AuctionStatus.PUBLISHED.value


def test_close_expired_ended_and_no_bids(db, make_auction, make_bid, clock):
    svc = LifecycleService(clock=clock)
    with_bids = make_auction(end=clock() + timedelta(minutes=10))
    make_bid(with_bids, "seller-a", "500")
    empty = make_auction(end=clock() + timedelta(minutes=10))
    only_withdrawn = make_auction(end=clock() + timedelta(minutes=10))
    make_bid(only_withdrawn, "seller-a", "500", status=BidStatus.WITHDRAWN)
    still_open = make_auction(end=clock() + timedelta(hours=1))

    clock.advance(minutes=10)
    result = svc.close_expired(db)
    assert result == {"processed": 3, "ended": 1, "no_bids": 2}

    for a in (with_bids, empty, only_withdrawn, still_open):
        db.refresh(a)
    assert with_bids.status == AuctionStatus.ENDED.value
    assert with_bids.ended_at == clock()
    assert empty.status == AuctionStatus.NO_BIDS.value
    assert only_withdrawn.status == AuctionStatus.NO_BIDS.value
    assert still_open.status == AuctionStatus.ACTIVE.value

    assert svc.close_expired(db) == {"processed": 0, "ended": 0, "no_bids": 0}


def test_close_expired_skips_auction_extended_past_now(db, make_auction, clock):
    auction = make_auction(end=clock() + timedelta(minutes=10))
    clock.advance(minutes=8)
    BidLedger(clock=clock).submit(db, auction_id=auction.id, seller_id="s1", amount=Decimal("500"))

    clock.advance(minutes=2)  # original deadline
    assert LifecycleService(clock=clock).close_expired(db)["processed"] == 0

    db.refresh(auction)
    assert auction.status == AuctionStatus.EXTENDED.value
