"""
Initial database schema: milk_subscriptions, skip_overrides, slot_cancellations.

Revision ID: 001
"""
from alembic import op
import sqlalchemy as sa

revision = "001"
down_revision = None
branch_labels = None
depends_on = None

def upgrade() -> None:
    """Create initial tables."""
    op.create_table(
        "milk_subscriptions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("subscription_id", sa.String(64), nullable=False),
        sa.Column("customer_id", sa.String(100), nullable=False),
        sa.Column("morning", sa.JSON(), nullable=False),
        sa.Column("evening", sa.JSON(), nullable=False),
        sa.Column("delivery_address_id", sa.String(100), nullable=False),
        sa.Column("auto_pay_enabled", sa.Boolean(), default=True),
        sa.Column("created_on", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(), default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_milk_subscriptions_subscription_id", "milk_subscriptions", ["subscription_id"], unique=True)
    op.create_index("ix_milk_subscriptions_customer_id", "milk_subscriptions", ["customer_id"])

    # Sparse skip markers; one row per (subscription, date, slot)
    op.create_table(
        "skip_overrides",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("subscription_id", sa.String(64), sa.ForeignKey("milk_subscriptions.subscription_id"), nullable=False),
        sa.Column("delivery_date", sa.Date(), nullable=False),
        sa.Column("slot_name", sa.String(20), nullable=False),
        sa.Column("skipped", sa.Boolean(), nullable=False, default=True),
        sa.Column("created_at", sa.DateTime(), default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("subscription_id", "delivery_date", "slot_name", name="ux_skip_override_key"),
    )
    op.create_index("ix_skip_overrides_subscription_id", "skip_overrides", ["subscription_id"])

    op.create_table(
        "slot_cancellations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("subscription_id", sa.String(64), sa.ForeignKey("milk_subscriptions.subscription_id"), nullable=False),
        sa.Column("slot_name", sa.String(20), nullable=False),
        sa.Column("reason", sa.String(100), nullable=False),
        sa.Column("free_text", sa.Text(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_slot_cancellations_subscription_id", "slot_cancellations", ["subscription_id"])

def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("slot_cancellations")
    op.drop_table("skip_overrides")
    op.drop_table("milk_subscriptions")
