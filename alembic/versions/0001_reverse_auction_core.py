"""create reverse auction tables

Revision ID: 0001
Revises:
Create Date: 2026-10-17 09:12:41.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _json():
    return sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade():
    op.create_table(
        "reverse_auctions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("auction_number", sa.String(32), nullable=False, unique=True),
        sa.Column("buyer_id", sa.String(128), nullable=False),

        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category_id", sa.String(64), nullable=True),
        sa.Column("specifications", _json(), nullable=False),

        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit", sa.String(32), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("max_budget", sa.Numeric(14, 2), nullable=False),

        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("original_end_date", sa.DateTime(timezone=True), nullable=False),

        sa.Column("extension_window_minutes", sa.Integer(), nullable=False),
        sa.Column("max_extensions", sa.Integer(), nullable=False),
        sa.Column("extensions_used", sa.Integer(), nullable=False, server_default="0"),

        sa.Column("delivery_address", sa.Text(), nullable=True),
        sa.Column("delivery_deadline", sa.DateTime(timezone=True), nullable=True),

        sa.Column("award_method", sa.String(32), nullable=False),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("qualification_criteria", _json(), nullable=False),
        sa.Column("attachments", _json(), nullable=False),

        sa.Column("status", sa.String(16), nullable=False, server_default="DRAFT"),

        sa.Column("current_lowest_bid", sa.Numeric(14, 2), nullable=True),
        sa.Column("last_bid_at", sa.DateTime(timezone=True), nullable=True),

        sa.Column("winning_bid_id", sa.Uuid(), nullable=True),
        sa.Column("awarded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("award_notes", sa.Text(), nullable=True),

        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),

        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),

        sa.CheckConstraint("quantity > 0", name="ck_auctions_quantity_positive"),
        sa.CheckConstraint("max_budget > 0", name="ck_auctions_budget_positive"),
        sa.CheckConstraint("end_date >= original_end_date", name="ck_auctions_end_not_before_original"),
        sa.CheckConstraint("extensions_used >= 0", name="ck_auctions_extensions_nonnegative"),
        sa.CheckConstraint("extensions_used <= max_extensions", name="ck_auctions_extensions_capped"),
    )
    op.create_index("ix_auctions_status_start", "reverse_auctions", ["status", "start_date"])
    op.create_index("ix_auctions_status_end", "reverse_auctions", ["status", "end_date"])
    op.create_index("ix_auctions_buyer", "reverse_auctions", ["buyer_id"])

    op.create_table(
        "reverse_auction_bids",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "auction_id",
            sa.Uuid(),
            sa.ForeignKey("reverse_auctions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("seller_id", sa.String(128), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("delivery_days", sa.Integer(), nullable=True),
        sa.Column("warranty", sa.String(255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("attachments", _json(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="ACTIVE"),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("withdrawn_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_bids_amount_positive"),
    )
    op.create_index(
        "uq_bids_one_active_per_seller",
        "reverse_auction_bids",
        ["auction_id", "seller_id"],
        unique=True,
        postgresql_where=sa.text("status = 'ACTIVE'"),
        sqlite_where=sa.text("status = 'ACTIVE'"),
    )
    op.create_index(
        "ix_bids_auction_status_amount",
        "reverse_auction_bids",
        ["auction_id", "status", "amount"],
    )

    if op.get_bind().dialect.name == "postgresql":
        op.create_foreign_key(
            "fk_auctions_winning_bid",
            "reverse_auctions",
            "reverse_auction_bids",
            ["winning_bid_id"],
            ["id"],
            ondelete="SET NULL",
        )

    op.create_table(
        "reverse_auction_invitations",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "auction_id",
            sa.Uuid(),
            sa.ForeignKey("reverse_auctions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("seller_id", sa.String(128), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="PENDING"),
        sa.Column("invited_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("auction_id", "seller_id", name="uq_invitations_auction_seller"),
    )

    op.create_table(
        "purchase_orders",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("order_number", sa.String(32), nullable=False, unique=True),
        sa.Column("buyer_id", sa.String(128), nullable=False),
        sa.Column("seller_id", sa.String(128), nullable=False),
        sa.Column("auction_id", sa.Uuid(), sa.ForeignKey("reverse_auctions.id"), nullable=False),
        sa.Column("bid_id", sa.Uuid(), sa.ForeignKey("reverse_auction_bids.id"), nullable=False),
        sa.Column("description", sa.String(200), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(14, 2), nullable=False),
        sa.Column("subtotal", sa.Numeric(16, 2), nullable=False),
        sa.Column("total", sa.Numeric(16, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("shipping_address", sa.Text(), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="PENDING"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_purchase_orders_auction", "purchase_orders", ["auction_id"])

    op.create_table(
        "outbox_events",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("event_type", sa.String(32), nullable=False),
        sa.Column("auction_id", sa.Uuid(), nullable=False),
        sa.Column("recipient_id", sa.String(128), nullable=False),
        sa.Column("payload_json", _json(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="PENDING"),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("dispatched_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_outbox_status_created", "outbox_events", ["status", "created_at"])


def downgrade():
    op.drop_index("ix_outbox_status_created", table_name="outbox_events")
    op.drop_table("outbox_events")

    op.drop_index("ix_purchase_orders_auction", table_name="purchase_orders")
    op.drop_table("purchase_orders")

    op.drop_table("reverse_auction_invitations")

    if op.get_bind().dialect.name == "postgresql":
        op.drop_constraint("fk_auctions_winning_bid", "reverse_auctions", type_="foreignkey")

    op.drop_index("ix_bids_auction_status_amount", table_name="reverse_auction_bids")
    op.drop_index("uq_bids_one_active_per_seller", table_name="reverse_auction_bids")
    op.drop_table("reverse_auction_bids")

    op.drop_index("ix_auctions_buyer", table_name="reverse_auctions")
    op.drop_index("ix_auctions_status_end", table_name="reverse_auctions")
    op.drop_index("ix_auctions_status_start", table_name="reverse_auctions")
    op.drop_table("reverse_auctions")
