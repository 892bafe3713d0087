from fastapi import APIRouter

from reverse_auction.api.v1.health import router as health_router

# /auctions/active and /auctions/mine must register before /auctions/{auction_id}
from reverse_auction.api.v1.auctions import router as auctions_router
from reverse_auction.api.v1.bids import router as bids_router
from reverse_auction.api.v1.invitations import router as invitations_router
from reverse_auction.api.v1.scheduler import router as scheduler_router

v1_router = APIRouter()

v1_router.include_router(health_router, tags=["health"])
v1_router.include_router(auctions_router, tags=["auctions"])
v1_router.include_router(bids_router, tags=["bids"])
v1_router.include_router(invitations_router, tags=["invitations"])
v1_router.include_router(scheduler_router, tags=["scheduler"])
