# Import every model so Base.metadata is complete for create_all / alembic.
from reverse_auction.models.auction import Auction  # noqa: F401
from reverse_auction.models.bid import Bid  # noqa: F401
from reverse_auction.models.invitation import Invitation  # noqa: F401
from reverse_auction.models.purchase_order import PurchaseOrder  # noqa: F401
from reverse_auction.models.outbox_event import OutboxEvent  # noqa: F401
