from typing import Any, Dict, List, Optional
import logging
import uuid

from core.clock import Clock
from core.exceptions import InvalidTransition, ValidationError
from core.locks import KeyedLocks
from models.subscription import SlotName, SlotStatus, Subscription, SubscriptionSlot
from services.subscription_store import SubscriptionStore

logger = logging.getLogger(__name__)

# Fields a customer may change on an existing slot
EDITABLE_SLOT_FIELDS = ("enabled", "product_type", "quantity", "delivery_window", "frequency", "active_days")


class SubscriptionService:
    """
    Create and edit subscriptions (the checkout and "modify plan" flows).

    Direct edits re-validate the whole slot and never rewrite existing skip
    overrides. Status changes go through CancellationWorkflow instead.
    """

    def __init__(self, store: SubscriptionStore, clock: Clock, locks: KeyedLocks):
        self.store = store
        self.clock = clock
        self.locks = locks

    async def create_subscription(
        self,
        customer_id: str,
        morning: SubscriptionSlot,
        evening: SubscriptionSlot,
        delivery_address_id: str,
        auto_pay_enabled: bool = True,
    ) -> Subscription:
        if not (morning.enabled or evening.enabled):
            raise ValidationError(ValidationError.NO_SLOT_ENABLED, "select at least one slot (morning or evening)")
        # new plans always start active, whatever the client sent
        sub = Subscription(
            id=uuid.uuid4().hex,
            customer_id=customer_id,
            morning=morning.model_copy(update={"status": SlotStatus.ACTIVE}),
            evening=evening.model_copy(update={"status": SlotStatus.ACTIVE}),
            delivery_address_id=delivery_address_id,
            auto_pay_enabled=auto_pay_enabled,
            created_at=self.clock.today(),
        )
        await self.store.put(sub)
        logger.info("Created subscription %s for customer %s", sub.id, customer_id)
        return sub

    async def get_subscription(self, subscription_id: str) -> Subscription:
        return await self.store.get(subscription_id)

    async def list_subscriptions(self, customer_id: Optional[str] = None) -> List[Subscription]:
        subs = await self.store.list_subscriptions()
        if customer_id:
            subs = [s for s in subs if s.customer_id == customer_id]
        return subs

    async def update_slot(self, subscription_id: str, slot_name: SlotName, changes: Dict[str, Any]) -> Subscription:
        slot_name = SlotName(slot_name)
        # PATCH semantics: null means "leave as is"
        changes = {k: v for k, v in changes.items() if v is not None}
        unknown = set(changes) - set(EDITABLE_SLOT_FIELDS)
        if unknown:
            raise ValueError(f"not editable: {sorted(unknown)}")

        async with self.locks.hold(subscription_id):
            sub = await self.store.get(subscription_id)
            current = sub.slot(slot_name)
            if current.status == SlotStatus.CANCELLED:
                raise InvalidTransition(f"{slot_name.value} slot is cancelled and can no longer be edited")

            merged = current.model_dump()
            merged.update(changes)
            slot = SubscriptionSlot.model_validate(merged)
            sub = sub.with_slot(slot_name, slot)
            if not any(s.enabled for _, s in sub.slots()):
                raise ValidationError(ValidationError.NO_SLOT_ENABLED, "at least one slot must stay enabled")
            await self.store.put(sub)

        logger.info("Updated %s slot of %s: %s", slot_name.value, subscription_id, sorted(changes))
        return sub

    async def set_auto_pay(self, subscription_id: str, enabled: bool) -> Subscription:
        async with self.locks.hold(subscription_id):
            sub = await self.store.get(subscription_id)
            sub = sub.model_copy(update={"auto_pay_enabled": enabled})
            await self.store.put(sub)
        logger.info("Auto-pay %s for %s", "enabled" if enabled else "disabled", subscription_id)
        return sub
