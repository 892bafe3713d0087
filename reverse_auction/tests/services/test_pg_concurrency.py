import os
import threading
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker

from reverse_auction.core.errors import BidRejection, ConflictRetryable, ValidationFailed
from reverse_auction.db.base import Base
from reverse_auction.models.auction import Auction
from reverse_auction.models.bid import Bid
from reverse_auction.models.enums import AuctionStatus, BidStatus
from reverse_auction.services.bid_ledger import BidLedger


@pytest.mark.skipif(not os.getenv("TEST_DATABASE_URL"), reason="Set TEST_DATABASE_URL to run DB tests.")
def test_simultaneous_equal_bids_accept_exactly_one():
    engine = create_engine(os.environ["TEST_DATABASE_URL"])
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    now = datetime.now(timezone.utc)
    db = TestingSessionLocal()
    auction = Auction(
        id=uuid.uuid4(),
        auction_number="RA-RACE-1",
        buyer_id="buyer-1",
        title="Race",
        description="Concurrent submission check.",
        specifications={},
        quantity=1,
        unit="units",
        currency="INR",
        max_budget=Decimal("100000"),
        start_date=now - timedelta(hours=1),
        end_date=now + timedelta(hours=1),
        original_end_date=now + timedelta(hours=1),
        extension_window_minutes=10,
        max_extensions=5,
        extensions_used=0,
        award_method="LOWEST_BID",
        is_public=True,
        qualification_criteria=[],
        attachments=[],
        status=AuctionStatus.ACTIVE.value,
        created_at=now,
        updated_at=now,
    )
    db.add(auction)
    db.add(
        Bid(
            auction=auction,
            seller_id="seller-x",
            amount=Decimal("80000"),
            attachments=[],
            status=BidStatus.ACTIVE.value,
            accepted_at=now,
            created_at=now,
            updated_at=now,
        )
    )
    db.commit()
    auction_id = auction.id
    db.close()

    barrier = threading.Barrier(2)
    outcomes = {}

    def submit(seller_id):
        session = TestingSessionLocal()
        try:
            barrier.wait()
            BidLedger().submit(session, auction_id=auction_id, seller_id=seller_id, amount=Decimal("79000"))
            outcomes[seller_id] = "accepted"
        except ValidationFailed as e:
            outcomes[seller_id] = e.reason
        except ConflictRetryable:
            outcomes[seller_id] = "conflict"
        finally:
            session.close()

    threads = [threading.Thread(target=submit, args=(s,)) for s in ("seller-a", "seller-b")]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(outcomes.values()).count("accepted") == 1
    loser = [v for v in outcomes.values() if v != "accepted"][0]
    assert loser in (BidRejection.NOT_LOWER_THAN_CURRENT_BID, "conflict")

    db = TestingSessionLocal()
    rows = db.execute(
        select(Bid).where(Bid.auction_id == auction_id, Bid.amount == Decimal("79000"))
    ).scalars().all()
    assert len(rows) == 1
    assert db.get(Auction, auction_id).current_lowest_bid == Decimal("79000")
    db.close()
    Base.metadata.drop_all(bind=engine)
