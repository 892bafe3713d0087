from fastapi import FastAPI

from reverse_auction.api.v1.router import v1_router
from reverse_auction.core.config import get_settings
from reverse_auction.core.logging import configure_logging
from reverse_auction.core.middleware import RequestIdMiddleware


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
    )

    # Middleware: Request ID
    app.add_middleware(RequestIdMiddleware, header_name=settings.request_id_header)

    # API v1
    app.include_router(v1_router, prefix=settings.api_prefix)

    return app


app = create_app()
