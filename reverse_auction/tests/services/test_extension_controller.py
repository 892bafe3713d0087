from datetime import timedelta
from decimal import Decimal

from reverse_auction.models.enums import AuctionStatus
from reverse_auction.services.bid_ledger import BidLedger
from reverse_auction.services.extension_controller import ExtensionController


def test_bid_inside_window_extends_end_date(db, make_auction, clock):
    end = clock() + timedelta(hours=1)
    auction = make_auction(end=end, window_minutes=10)

    clock.advance(minutes=55)  # T - 5m
    BidLedger(clock=clock).submit(db, auction_id=auction.id, seller_id="s1", amount=Decimal("500"))

    db.refresh(auction)
    assert auction.end_date == end + timedelta(minutes=10)
    assert auction.original_end_date == end
    assert auction.extensions_used == 1
    assert auction.status == AuctionStatus.EXTENDED.value


def test_bid_outside_window_does_not_extend(db, make_auction, clock):
    end = clock() + timedelta(hours=1)
    auction = make_auction(end=end, window_minutes=10)

    clock.advance(minutes=50)  # exactly T - 10m
    BidLedger(clock=clock).submit(db, auction_id=auction.id, seller_id="s1", amount=Decimal("500"))

    db.refresh(auction)
    assert auction.end_date == end
    assert auction.extensions_used == 0
    assert auction.status == AuctionStatus.ACTIVE.value


def test_cap_reached_bid_accepted_without_extension(db, make_auction, clock):
    end = clock() + timedelta(minutes=30)
    auction = make_auction(end=end, window_minutes=10, max_extensions=5)
    auction.extensions_used = 5
    auction.status = AuctionStatus.EXTENDED.value
    db.commit()

    clock.advance(minutes=25)
    bid = BidLedger(clock=clock).submit(db, auction_id=auction.id, seller_id="s1", amount=Decimal("500"))

    db.refresh(auction)
    assert bid.amount == Decimal("500")
    assert auction.end_date == end
    assert auction.extensions_used == 5


def test_repeated_late_bids_never_exceed_cap(db, make_auction, clock):
    end = clock() + timedelta(minutes=15)
    auction = make_auction(end=end, window_minutes=10, max_extensions=3)
    ledger = BidLedger(clock=clock)

    amount = Decimal("900")
    for i in range(8):
        db.refresh(auction)
        # land 2 minutes before whatever the deadline currently is
        clock.now = auction.end_date - timedelta(minutes=2)
        ledger.submit(db, auction_id=auction.id, seller_id=f"s{i}", amount=amount)
        amount -= 10

    db.refresh(auction)
    assert auction.extensions_used == 3
    assert auction.end_date == end + timedelta(minutes=30)
    assert auction.end_date >= auction.original_end_date


def test_maybe_extend_on_extended_auction_keeps_status(make_auction, clock):
    auction = make_auction(status=AuctionStatus.EXTENDED, end=clock() + timedelta(minutes=3))
    assert ExtensionController().maybe_extend(auction, clock()) is True
    assert auction.status == AuctionStatus.EXTENDED.value
    assert auction.extensions_used == 1
