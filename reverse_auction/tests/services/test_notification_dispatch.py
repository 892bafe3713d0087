from reverse_auction.core.config import get_settings
from reverse_auction.models.enums import AuctionStatus, NotificationType, OutboxStatus
from reverse_auction.services.notification_service import NotificationDispatcher, NotificationService


class FlakyNotifier:
    def __init__(self, failures):
        self.failures = failures
        self.calls = 0

    def send(self, event_type, recipient_id, payload):
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError("smtp down")


def enqueue_one(db, auction, recipient="seller-a"):
    row = NotificationService().enqueue(
        db,
        event_type=NotificationType.WON,
        auction=auction,
        recipient_id=recipient,
        extra={"amount": "500.00"},
    )
    db.commit()
    return row


def test_enqueue_carries_auction_summary(db, make_auction):
    auction = make_auction()
    row = enqueue_one(db, auction)
    assert row.status == OutboxStatus.PENDING.value
    assert row.payload_json["auction_number"] == auction.auction_number
    assert row.payload_json["amount"] == "500.00"


def test_failed_delivery_retries_then_parks(db, make_auction, clock):
    auction = make_auction(status=AuctionStatus.AWARDED)
    row = enqueue_one(db, auction)
    max_attempts = get_settings().notification_max_attempts
    dispatcher = NotificationDispatcher(notifier=FlakyNotifier(failures=100), clock=clock)

    for _ in range(max_attempts - 1):
        assert dispatcher.dispatch_pending(db) == {"sent": 0, "failed": 0, "retrying": 1}

    assert dispatcher.dispatch_pending(db) == {"sent": 0, "failed": 1, "retrying": 0}
    db.refresh(row)
    assert row.status == OutboxStatus.FAILED.value
    assert row.attempts == max_attempts
    assert "smtp down" in row.last_error

    # parked rows are not picked up again
    assert dispatcher.dispatch_pending(db) == {"sent": 0, "failed": 0, "retrying": 0}

    # delivery failures never touch the auction
    db.refresh(auction)
    assert auction.status == AuctionStatus.AWARDED.value


def test_delivery_recovers_after_transient_failure(db, make_auction, clock):
    auction = make_auction()
    row = enqueue_one(db, auction)
    dispatcher = NotificationDispatcher(notifier=FlakyNotifier(failures=1), clock=clock)

    assert dispatcher.dispatch_pending(db)["retrying"] == 1
    assert dispatcher.dispatch_pending(db)["sent"] == 1

    db.refresh(row)
    assert row.status == OutboxStatus.SENT.value
    assert row.dispatched_at == clock()
    assert row.last_error is None
    assert row.attempts == 2
