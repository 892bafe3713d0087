import os

# settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# FORCE model registration
import reverse_auction.models  # noqa

from reverse_auction.db.base import Base
from reverse_auction.models.auction import Auction
from reverse_auction.models.bid import Bid
from reverse_auction.models.enums import AuctionStatus, BidStatus, InvitationStatus
from reverse_auction.models.invitation import Invitation

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

T0 = datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Manually advanced time source."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(scope="function")
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def make_auction(db, clock):
    """Insert an auction directly, bypassing create/publish."""

    def _make(
        *,
        buyer_id="buyer-1",
        status=AuctionStatus.ACTIVE,
        start=None,
        end=None,
        max_budget=Decimal("1000.00"),
        quantity=10,
        is_public=True,
        window_minutes=10,
        max_extensions=5,
        title="Steel rebar 12mm",
    ):
        now = clock()
        start = start or now - timedelta(hours=1)
        end = end or now + timedelta(hours=2)
        a = Auction(
            id=uuid.uuid4(),
            auction_number=f"RA2603-{uuid.uuid4().hex[:5].upper()}",
            buyer_id=buyer_id,
            title=title,
            description="Supply of TMT steel rebar for site B.",
            specifications={},
            quantity=quantity,
            unit="tonnes",
            currency="INR",
            max_budget=max_budget,
            start_date=start,
            end_date=end,
            original_end_date=end,
            extension_window_minutes=window_minutes,
            max_extensions=max_extensions,
            extensions_used=0,
            award_method="LOWEST_BID",
            is_public=is_public,
            qualification_criteria=[],
            attachments=[],
            status=AuctionStatus(status).value,
            created_at=now,
            updated_at=now,
        )
        db.add(a)
        db.commit()
        return a

    return _make


@pytest.fixture
def make_bid(db, clock):
    """Insert a bid row directly, bypassing validation."""

    def _make(auction, seller_id, amount, *, status=BidStatus.ACTIVE, accepted_at=None):
        now = accepted_at or clock()
        b = Bid(
            auction_id=auction.id,
            seller_id=seller_id,
            amount=Decimal(amount),
            attachments=[],
            status=BidStatus(status).value,
            accepted_at=now,
            created_at=now,
            updated_at=now,
        )
        db.add(b)
        db.commit()
        return b

    return _make


@pytest.fixture
def invite(db, clock):
    def _invite(auction, seller_id, status=InvitationStatus.ACCEPTED):
        inv = Invitation(
            auction_id=auction.id,
            seller_id=seller_id,
            status=InvitationStatus(status).value,
            invited_at=clock(),
        )
        db.add(inv)
        db.commit()
        return inv

    return _invite


@pytest.fixture
def client(db, clock):
    from fastapi.testclient import TestClient

    from reverse_auction.core.deps import get_clock
    from reverse_auction.db.session import get_db
    from reverse_auction.main import create_app

    app = create_app()

    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    return TestClient(app)


@pytest.fixture
def auth():
    from reverse_auction.core.security import principal_token

    def _headers(participant_id, role):
        return {"Authorization": f"Bearer {principal_token(participant_id, role)}"}

    return _headers
