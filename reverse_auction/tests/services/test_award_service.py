import uuid
from decimal import Decimal

import pytest
from sqlalchemy import select

from reverse_auction.core.errors import Forbidden, InvalidState, NotFound, OrderCreationFailed
from reverse_auction.models.enums import AuctionStatus, BidStatus, NotificationType
from reverse_auction.models.outbox_event import OutboxEvent
from reverse_auction.models.purchase_order import PurchaseOrder
from reverse_auction.services.award_service import AwardService
from reverse_auction.services.orders_service import OrdersService


class ExplodingOrders:
    transactional = False

    def __init__(self):
        self.cancelled = []

    def create_purchase_order(self, db, **kwargs):
        raise RuntimeError("order backend unavailable")

    def cancel_purchase_order(self, order_id):
        self.cancelled.append(order_id)


class ExternalOrders:
    """Non-transactional collaborator that succeeds; the award fails afterwards."""

    transactional = False

    def __init__(self):
        self.created = []
        self.cancelled = []

    def create_purchase_order(self, db, **kwargs):
        order_id = uuid.uuid4()
        self.created.append(order_id)
        return order_id

    def cancel_purchase_order(self, order_id):
        self.cancelled.append(order_id)


def test_award_lowest_bid(db, make_auction, make_bid, clock):
    auction = make_auction(status=AuctionStatus.ENDED, quantity=3, max_budget=Decimal("100000"))
    a = make_bid(auction, "seller-a", "80000")
    b = make_bid(auction, "seller-b", "85000")
    withdrawn = make_bid(auction, "seller-c", "70000", status=BidStatus.WITHDRAWN)

    result = AwardService(clock=clock).award(
        db, auction_id=auction.id, buyer_id="buyer-1", bid_id=a.id, notes="best price"
    )

    assert result.auction.status == AuctionStatus.AWARDED.value
    assert result.auction.winning_bid_id == a.id
    assert result.auction.awarded_at == clock()
    assert result.auction.award_notes == "best price"
    assert result.winning_bid.status == BidStatus.AWARDED.value
    assert result.rejected_bid_ids == [b.id]

    db.refresh(b)
    db.refresh(withdrawn)
    assert b.status == BidStatus.REJECTED.value
    assert withdrawn.status == BidStatus.WITHDRAWN.value

    order = OrdersService().get(db, result.order_id)
    assert order.total == Decimal("240000")
    assert order.unit_price == Decimal("80000")
    assert order.seller_id == "seller-a"
    assert order.order_number.startswith("PO2603-")

    events = db.execute(select(OutboxEvent)).scalars().all()
    kinds = {(e.event_type, e.recipient_id) for e in events}
    assert kinds == {
        (NotificationType.WON.value, "seller-a"),
        (NotificationType.LOST.value, "seller-b"),
    }


def test_award_any_active_bid_not_only_lowest(db, make_auction, make_bid, clock):
    auction = make_auction(status=AuctionStatus.ENDED)
    make_bid(auction, "seller-a", "500")
    b = make_bid(auction, "seller-b", "600")

    result = AwardService(clock=clock).award(db, auction_id=auction.id, buyer_id="buyer-1", bid_id=b.id)
    assert result.winning_bid.seller_id == "seller-b"


def test_order_failure_rolls_back_everything(db, make_auction, make_bid, clock):
    auction = make_auction(status=AuctionStatus.ENDED)
    a = make_bid(auction, "seller-a", "500")
    b = make_bid(auction, "seller-b", "600")
    orders = ExplodingOrders()

    with pytest.raises(OrderCreationFailed):
        AwardService(clock=clock, orders=orders).award(
            db, auction_id=auction.id, buyer_id="buyer-1", bid_id=a.id
        )

    db.refresh(auction)
    db.refresh(a)
    db.refresh(b)
    assert auction.status == AuctionStatus.ENDED.value
    assert auction.winning_bid_id is None
    assert a.status == BidStatus.ACTIVE.value
    assert b.status == BidStatus.ACTIVE.value
    assert db.execute(select(OutboxEvent)).scalars().all() == []
    assert db.execute(select(PurchaseOrder)).scalars().all() == []
    assert orders.cancelled == []


def test_external_order_is_compensated_when_commit_fails(db, make_auction, make_bid, clock, monkeypatch):
    auction = make_auction(status=AuctionStatus.ENDED)
    a = make_bid(auction, "seller-a", "500")
    orders = ExternalOrders()

    def broken_commit():
        raise RuntimeError("connection dropped")

    monkeypatch.setattr(db, "commit", broken_commit)
    with pytest.raises(RuntimeError):
        AwardService(clock=clock, orders=orders).award(
            db, auction_id=auction.id, buyer_id="buyer-1", bid_id=a.id
        )
    monkeypatch.undo()

    assert orders.cancelled == orders.created
    db.refresh(auction)
    assert auction.status == AuctionStatus.ENDED.value


@pytest.mark.parametrize(
    "status",
    [AuctionStatus.ACTIVE, AuctionStatus.EXTENDED, AuctionStatus.NO_BIDS, AuctionStatus.CANCELLED],
)
def test_award_requires_ended(db, make_auction, make_bid, clock, status):
    auction = make_auction(status=status)
    a = make_bid(auction, "seller-a", "500")

    with pytest.raises(InvalidState):
        AwardService(clock=clock).award(db, auction_id=auction.id, buyer_id="buyer-1", bid_id=a.id)

    db.refresh(auction)
    db.refresh(a)
    assert auction.status == status.value
    assert a.status == BidStatus.ACTIVE.value


def test_double_award_fails(db, make_auction, make_bid, clock):
    auction = make_auction(status=AuctionStatus.ENDED)
    a = make_bid(auction, "seller-a", "500")
    b = make_bid(auction, "seller-b", "600")
    svc = AwardService(clock=clock)

    svc.award(db, auction_id=auction.id, buyer_id="buyer-1", bid_id=a.id)
    with pytest.raises(InvalidState):
        svc.award(db, auction_id=auction.id, buyer_id="buyer-1", bid_id=b.id)

    db.refresh(auction)
    assert auction.winning_bid_id == a.id
    assert len(db.execute(select(PurchaseOrder)).scalars().all()) == 1


def test_award_checks_owner_and_bid(db, make_auction, make_bid, clock):
    auction = make_auction(status=AuctionStatus.ENDED)
    other = make_auction(status=AuctionStatus.ENDED)
    a = make_bid(auction, "seller-a", "500")
    foreign = make_bid(other, "seller-b", "400")
    withdrawn = make_bid(auction, "seller-c", "450", status=BidStatus.WITHDRAWN)
    svc = AwardService(clock=clock)

    with pytest.raises(Forbidden):
        svc.award(db, auction_id=auction.id, buyer_id="seller-a", bid_id=a.id)
    with pytest.raises(NotFound):
        svc.award(db, auction_id=auction.id, buyer_id="buyer-1", bid_id=foreign.id)
    with pytest.raises(InvalidState):
        svc.award(db, auction_id=auction.id, buyer_id="buyer-1", bid_id=withdrawn.id)
