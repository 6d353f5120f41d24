"""
DB-backed subscription store using async SQLAlchemy.

- get / put                   -> SELECT / INSERT-or-UPDATE milk_subscriptions
- get_overrides               -> SELECT skip_overrides WHERE subscription_id = ?
- put_override                -> INSERT-or-UPDATE on the (subscription_id, date, slot) key
- delete_override             -> DELETE by key
- swap_override               -> guarded DELETE / UPDATE, else INSERT; the
                                 unique key makes a concurrent second insert fail
- put_cancellation            -> INSERT slot_cancellations

It is *only* used when:
- USE_DB=true
- DATABASE_URL is not "disabled"

Every SQLAlchemy failure is rolled back, logged and re-raised as
StoreUnavailable; retrying is left to the caller.
"""

from contextlib import asynccontextmanager
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy import and_, delete, insert, update
from sqlalchemy.future import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from core.exceptions import NotFound, StoreUnavailable
from models.db_models import CancellationRow, SkipOverrideRow, SubscriptionRow
from models.subscription import (
    CancellationRecord,
    OverrideKey,
    SkipOverride,
    SlotName,
    Subscription,
    SubscriptionSlot,
)
from services.subscription_store import SubscriptionStore
import logging

logger = logging.getLogger(__name__)


class SubscriptionDBService(SubscriptionStore):
    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    @asynccontextmanager
    async def _session(self, op: str):
        """One session per store call; commit on success, rollback + StoreUnavailable on DB errors."""
        async with self.session_maker() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("DB %s failed: %s", op, e)
                raise StoreUnavailable(f"subscription store unavailable during {op}") from e

    async def get(self, subscription_id: str) -> Subscription:
        async with self._session("get") as session:
            row = await self._find(session, subscription_id)
            if row is None:
                raise NotFound(f"subscription {subscription_id} not found")
            return self._to_model(row)

    async def put(self, subscription: Subscription) -> None:
        async with self._session("put") as session:
            row = await self._find(session, subscription.id, for_update=True)
            if row is None:
                row = SubscriptionRow(subscription_id=subscription.id)
                session.add(row)
            row.customer_id = subscription.customer_id
            row.morning = subscription.morning.model_dump(mode="json")
            row.evening = subscription.evening.model_dump(mode="json")
            row.delivery_address_id = subscription.delivery_address_id
            row.auto_pay_enabled = subscription.auto_pay_enabled
            row.created_on = subscription.created_at

    async def list_subscriptions(self) -> List[Subscription]:
        async with self._session("list_subscriptions") as session:
            result = await session.execute(select(SubscriptionRow).order_by(SubscriptionRow.id))
            return [self._to_model(r) for r in result.scalars().all()]

    async def get_overrides(self, subscription_id: str) -> List[SkipOverride]:
        async with self._session("get_overrides") as session:
            result = await session.execute(
                select(SkipOverrideRow).where(SkipOverrideRow.subscription_id == subscription_id)
            )
            return [
                SkipOverride(
                    subscription_id=r.subscription_id,
                    date=r.delivery_date,
                    slot_name=SlotName(r.slot_name),
                    skipped=r.skipped,
                )
                for r in result.scalars().all()
            ]

    async def put_override(self, override: SkipOverride) -> None:
        async with self._session("put_override") as session:
            row = await self._find_override(session, override.key)
            if row is None:
                session.add(SkipOverrideRow(
                    subscription_id=override.subscription_id,
                    delivery_date=override.date,
                    slot_name=override.slot_name.value,
                    skipped=override.skipped,
                ))
            else:
                row.skipped = override.skipped

    async def delete_override(self, key: OverrideKey) -> None:
        async with self._session("delete_override") as session:
            row = await self._find_override(session, key)
            if row is not None:
                await session.delete(row)

    async def swap_override(self, key: OverrideKey, expected_skipped: bool) -> bool:
        async with self._session("swap_override") as session:
            if expected_skipped:
                result = await session.execute(
                    delete(SkipOverrideRow).where(self._override_clause(key), SkipOverrideRow.skipped.is_(True))
                    .execution_options(synchronize_session=False)
                )
                return result.rowcount == 1

            result = await session.execute(
                update(SkipOverrideRow)
                .where(self._override_clause(key), SkipOverrideRow.skipped.is_(False))
                .values(skipped=True)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                return True
            try:
                await session.execute(insert(SkipOverrideRow).values(
                    subscription_id=key.subscription_id,
                    delivery_date=key.date,
                    slot_name=SlotName(key.slot_name).value,
                    skipped=True,
                ))
            except IntegrityError:
                # someone else skipped it first
                await session.rollback()
                return False
            return True

    async def put_cancellation(self, record: CancellationRecord) -> None:
        async with self._session("put_cancellation") as session:
            session.add(self._cancellation_row(record))

    async def apply_cancellation(self, subscription: Subscription, record: CancellationRecord) -> None:
        """Slot status and the cancellation record commit in one transaction."""
        async with self._session("apply_cancellation") as session:
            row = await self._find(session, subscription.id, for_update=True)
            if row is None:
                raise NotFound(f"subscription {subscription.id} not found")
            row.morning = subscription.morning.model_dump(mode="json")
            row.evening = subscription.evening.model_dump(mode="json")
            session.add(self._cancellation_row(record))

    async def get_cancellations(self, subscription_id: str) -> List[CancellationRecord]:
        async with self._session("get_cancellations") as session:
            result = await session.execute(
                select(CancellationRow)
                .where(CancellationRow.subscription_id == subscription_id)
                .order_by(CancellationRow.id)
            )
            return [
                CancellationRecord(
                    subscription_id=r.subscription_id,
                    slot_name=SlotName(r.slot_name),
                    reason=r.reason,
                    free_text=r.free_text,
                    cancelled_at=r.cancelled_at,
                )
                for r in result.scalars().all()
            ]

    @staticmethod
    async def _find(session: AsyncSession, subscription_id: str, for_update: bool = False):
        stmt = select(SubscriptionRow).where(SubscriptionRow.subscription_id == subscription_id)
        if for_update:
            stmt = stmt.with_for_update()  # lock row
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    def _override_clause(key: OverrideKey):
        return and_(
            SkipOverrideRow.subscription_id == key.subscription_id,
            SkipOverrideRow.delivery_date == key.date,
            SkipOverrideRow.slot_name == SlotName(key.slot_name).value,
        )

    @classmethod
    async def _find_override(cls, session: AsyncSession, key: OverrideKey):
        result = await session.execute(select(SkipOverrideRow).where(cls._override_clause(key)))
        return result.scalar_one_or_none()

    @staticmethod
    def _cancellation_row(record: CancellationRecord) -> CancellationRow:
        return CancellationRow(
            subscription_id=record.subscription_id,
            slot_name=record.slot_name.value,
            reason=record.reason,
            free_text=record.free_text,
            cancelled_at=record.cancelled_at,
        )

    @staticmethod
    def _to_model(row: SubscriptionRow) -> Subscription:
        """Convert ORM row to the pydantic Subscription (slots are re-validated)."""
        return Subscription(
            id=row.subscription_id,
            customer_id=row.customer_id,
            morning=SubscriptionSlot.model_validate(row.morning),
            evening=SubscriptionSlot.model_validate(row.evening),
            delivery_address_id=row.delivery_address_id,
            auto_pay_enabled=row.auto_pay_enabled,
            created_at=row.created_on,
        )
