"""
SQLAlchemy ORM models for the subscription store.

Purpose:
- Define milk_subscriptions, skip_overrides and slot_cancellations tables
- Use SQLAlchemy async-compatible models
- Support migrations via Alembic

Notes:
- Slot configuration is stored as JSON (one document per slot); the pydantic
  SubscriptionSlot model re-validates it on load.
- skip_overrides has a UNIQUE (subscription_id, delivery_date, slot_name) so two
  concurrent skips of the same delivery cannot both insert.
- Overrides and cancellations are never deleted when a slot is cancelled.
"""

from sqlalchemy import Column, Integer, String, Date, DateTime, JSON, Boolean, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from core.db import Base
from datetime import datetime

class SubscriptionRow(Base):
    """
    A customer's milk subscription.

    Columns:
    - subscription_id: public identifier (uuid hex)
    - customer_id: owner (identity lives outside this service)
    - morning/evening: JSON slot documents
    - delivery_address_id: address book reference
    - auto_pay_enabled: payment preference flag
    - created_on: business date the subscription started
    - created_at/updated_at: audit timestamps
    """
    __tablename__ = "milk_subscriptions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    subscription_id = Column(String(64), unique=True, index=True, nullable=False)
    customer_id = Column(String(100), index=True, nullable=False)
    morning = Column(JSON, nullable=False)
    evening = Column(JSON, nullable=False)
    delivery_address_id = Column(String(100), nullable=False)
    auto_pay_enabled = Column(Boolean, default=True)
    created_on = Column(Date, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # --- relationships ---
    overrides = relationship("SkipOverrideRow", back_populates="subscription")
    cancellations = relationship("CancellationRow", back_populates="subscription")


class SkipOverrideRow(Base):
    """
    A skipped delivery for one (subscription, date, slot).
    Absence of a row means "deliver as scheduled".
    """
    __tablename__ = "skip_overrides"

    id = Column(Integer, primary_key=True, autoincrement=True)
    subscription_id = Column(String(64), ForeignKey("milk_subscriptions.subscription_id"), index=True, nullable=False)
    delivery_date = Column(Date, nullable=False)
    slot_name = Column(String(20), nullable=False)
    skipped = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("subscription_id", "delivery_date", "slot_name", name="ux_skip_override_key"),
    )

    subscription = relationship("SubscriptionRow", back_populates="overrides")


class CancellationRow(Base):
    """Audit record written when a slot is cancelled."""
    __tablename__ = "slot_cancellations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    subscription_id = Column(String(64), ForeignKey("milk_subscriptions.subscription_id"), index=True, nullable=False)
    slot_name = Column(String(20), nullable=False)
    reason = Column(String(100), nullable=False)
    free_text = Column(Text, nullable=True)
    cancelled_at = Column(DateTime, nullable=False)

    subscription = relationship("SubscriptionRow", back_populates="cancellations")
