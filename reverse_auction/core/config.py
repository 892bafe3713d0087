from decimal import Decimal
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # ─────────── APP ───────────
    app_name: str = "Reverse Auction Engine"
    environment: str = "dev"
    log_level: str = "INFO"

    # ─────────── API ───────────
    api_prefix: str = "/api/v1"
    request_id_header: str = "X-Request-Id"

    # ─────────── DATABASE ───────────
    database_url: str

    # ─────────── JWT / AUTH ───────────
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    jwt_access_token_minutes: int = 1440  # 24 hours

    # ─────────── AUCTION RULES ───────────
    auction_min_duration_minutes: int = 60
    auction_max_duration_days: int = 30
    auction_extension_window_minutes: int = 10
    auction_max_extensions: int = 5
    auction_min_bid_decrement_pct: Decimal = Decimal("0")

    # ─────────── CONCURRENCY ───────────
    bid_conflict_max_attempts: int = 3

    # ─────────── SCHEDULER / OUTBOX ───────────
    scheduler_interval_seconds: int = 30
    notification_max_attempts: int = 5
    notification_batch_size: int = 100


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
