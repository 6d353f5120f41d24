"""
Subscription store interface and the in-memory implementation.

The core only talks to persistence through SubscriptionStore:
- get / put / list_subscriptions: Subscription documents
- get_overrides / put_override / delete_override: sparse SkipOverride records,
  addressed by the composite OverrideKey
- swap_override: compare-and-swap used by the skip toggle, so two writers
  that read the same state cannot both flip it
- put_cancellation / get_cancellations: slot cancellation audit trail

Any failure of the backing system surfaces as core.exceptions.StoreUnavailable.
A missing subscription surfaces as core.exceptions.NotFound.
"""
from abc import ABC, abstractmethod
from typing import Dict, List

from core.exceptions import NotFound
from models.subscription import CancellationRecord, OverrideKey, SkipOverride, Subscription


class SubscriptionStore(ABC):
    @abstractmethod
    async def get(self, subscription_id: str) -> Subscription:
        raise NotImplementedError()

    @abstractmethod
    async def put(self, subscription: Subscription) -> None:
        raise NotImplementedError()

    @abstractmethod
    async def list_subscriptions(self) -> List[Subscription]:
        raise NotImplementedError()

    @abstractmethod
    async def get_overrides(self, subscription_id: str) -> List[SkipOverride]:
        raise NotImplementedError()

    @abstractmethod
    async def put_override(self, override: SkipOverride) -> None:
        raise NotImplementedError()

    @abstractmethod
    async def delete_override(self, key: OverrideKey) -> None:
        raise NotImplementedError()

    @abstractmethod
    async def swap_override(self, key: OverrideKey, expected_skipped: bool) -> bool:
        """
        Flip the override at `key` only if it is still in `expected_skipped` state.

        Returns False, and writes nothing, when another writer changed it first.
        """
        raise NotImplementedError()

    @abstractmethod
    async def put_cancellation(self, record: CancellationRecord) -> None:
        raise NotImplementedError()

    @abstractmethod
    async def get_cancellations(self, subscription_id: str) -> List[CancellationRecord]:
        raise NotImplementedError()

    async def apply_cancellation(self, subscription: Subscription, record: CancellationRecord) -> None:
        """
        Persist a cancelled slot together with its record.

        Backends with transactions must override this to write both at once.
        The fallback writes the slot first so a failed write never leaves a
        record for a slot that is still running.
        """
        await self.put(subscription)
        await self.put_cancellation(record)


class InMemorySubscriptionStore(SubscriptionStore):
    """Dict-backed store for local dev and tests. Returns copies so callers cannot mutate state."""

    def __init__(self):
        self.subscriptions: Dict[str, Subscription] = {}
        self.overrides: Dict[OverrideKey, SkipOverride] = {}
        self.cancellations: List[CancellationRecord] = []

    async def get(self, subscription_id: str) -> Subscription:
        sub = self.subscriptions.get(subscription_id)
        if sub is None:
            raise NotFound(f"subscription {subscription_id} not found")
        return sub.model_copy(deep=True)

    async def put(self, subscription: Subscription) -> None:
        self.subscriptions[subscription.id] = subscription.model_copy(deep=True)

    async def list_subscriptions(self) -> List[Subscription]:
        return [s.model_copy(deep=True) for s in self.subscriptions.values()]

    async def get_overrides(self, subscription_id: str) -> List[SkipOverride]:
        return [o.model_copy() for k, o in self.overrides.items() if k.subscription_id == subscription_id]

    async def put_override(self, override: SkipOverride) -> None:
        self.overrides[override.key] = override.model_copy()

    async def delete_override(self, key: OverrideKey) -> None:
        self.overrides.pop(key, None)

    async def swap_override(self, key: OverrideKey, expected_skipped: bool) -> bool:
        current = self.overrides.get(key)
        if (current is not None and current.skipped) != expected_skipped:
            return False
        if expected_skipped:
            del self.overrides[key]
        else:
            self.overrides[key] = SkipOverride(subscription_id=key.subscription_id, date=key.date, slot_name=key.slot_name)
        return True

    async def put_cancellation(self, record: CancellationRecord) -> None:
        self.cancellations.append(record.model_copy())

    async def get_cancellations(self, subscription_id: str) -> List[CancellationRecord]:
        return [r.model_copy() for r in self.cancellations if r.subscription_id == subscription_id]
