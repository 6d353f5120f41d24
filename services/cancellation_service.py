# services/cancellation_service.py
from typing import Optional
import logging

from core.clock import Clock
from core.exceptions import FreeTextRequired, InvalidTransition, ReasonRequired, ValidationError
from core.locks import KeyedLocks
from models.subscription import (
    CANCELLATION_REASONS,
    OTHER_REASON,
    CancellationRecord,
    SlotName,
    SlotStatus,
    Subscription,
)
from services.subscription_store import SubscriptionStore

logger = logging.getLogger(__name__)


class CancellationWorkflow:
    """
    Slot lifecycle: Active <-> Paused, and {Active, Paused} -> Cancelled.

    Cancelled is terminal. Cancelling never touches the other slot and never
    removes existing skip overrides; they stay as history.
    """

    def __init__(self, store: SubscriptionStore, clock: Clock, locks: KeyedLocks):
        self.store = store
        self.clock = clock
        self.locks = locks

    @staticmethod
    def validate_reason(reason: Optional[str], free_text: Optional[str]) -> tuple[str, Optional[str]]:
        reason = (reason or "").strip()
        if not reason:
            raise ReasonRequired("a cancellation reason is required")
        if reason not in CANCELLATION_REASONS:
            raise ValidationError(ValidationError.INVALID_REASON, f"unknown cancellation reason: {reason!r}")
        free_text = (free_text or "").strip() or None
        if reason == OTHER_REASON and not free_text:
            raise FreeTextRequired("please tell us why you are cancelling")
        return reason, free_text

    async def cancel(self, subscription_id: str, slot_name: SlotName, reason: str,
                     free_text: Optional[str] = None) -> CancellationRecord:
        slot_name = SlotName(slot_name)
        reason, free_text = self.validate_reason(reason, free_text)

        async with self.locks.hold(subscription_id):
            sub = await self.store.get(subscription_id)
            slot = sub.slot(slot_name)
            if slot.status == SlotStatus.CANCELLED:
                raise InvalidTransition(f"{slot_name.value} slot is already cancelled")

            cancelled = slot.model_copy(update={"status": SlotStatus.CANCELLED, "enabled": False})
            record = CancellationRecord(
                subscription_id=subscription_id,
                slot_name=slot_name,
                reason=reason,
                free_text=free_text,
                cancelled_at=self.clock.now(),
            )
            await self.store.apply_cancellation(sub.with_slot(slot_name, cancelled), record)

        logger.info("Cancelled %s slot of %s (reason=%s)", slot_name.value, subscription_id, reason)
        return record

    async def pause(self, subscription_id: str, slot_name: SlotName) -> Subscription:
        return await self._set_status(subscription_id, SlotName(slot_name), SlotStatus.PAUSED)

    async def resume(self, subscription_id: str, slot_name: SlotName) -> Subscription:
        return await self._set_status(subscription_id, SlotName(slot_name), SlotStatus.ACTIVE)

    async def _set_status(self, subscription_id: str, slot_name: SlotName, target: SlotStatus) -> Subscription:
        async with self.locks.hold(subscription_id):
            sub = await self.store.get(subscription_id)
            slot = sub.slot(slot_name)
            if slot.status == SlotStatus.CANCELLED:
                raise InvalidTransition(f"{slot_name.value} slot is cancelled; start a new subscription instead")
            if slot.status == target:
                return sub
            sub = sub.with_slot(slot_name, slot.model_copy(update={"status": target}))
            await self.store.put(sub)

        logger.info("%s slot of %s is now %s", slot_name.value, subscription_id, target.value)
        return sub
