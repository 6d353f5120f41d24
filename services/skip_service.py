# services/skip_service.py
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List
import logging

from core.clock import Clock
from core.exceptions import ConcurrentUpdate, LockedWindow, NotScheduled
from core.locks import KeyedLocks
from models.subscription import SLOT_ORDER, OverrideKey, SlotName, Subscription
from services.schedule_projector import ScheduleProjector
from services.subscription_store import SubscriptionStore

logger = logging.getLogger(__name__)


@dataclass
class ToggleResult:
    subscription_id: str
    date: date
    slot_name: SlotName
    skipped: bool


@dataclass
class BatchSkipResult:
    """Per-slot outcome of skip_all; a rejected slot never fails the whole batch."""
    subscription_id: str
    date: date
    skipped: List[SlotName] = field(default_factory=list)
    rejected: Dict[SlotName, str] = field(default_factory=dict)


class SkipResumeController:
    """
    Owns the write path for per-date skip overrides.

    toggle() flips one delivery between skipped and resumed. It refuses dates
    where the slot does not deliver (NotScheduled) and tomorrow's deliveries
    once the cut-off hour has passed (LockedWindow). Writes to one subscription
    are serialized through `locks` within a process; across processes the
    store's swap_override rejects a write based on a stale read
    (ConcurrentUpdate).
    """

    def __init__(self, store: SubscriptionStore, projector: ScheduleProjector, clock: Clock, locks: KeyedLocks):
        self.store = store
        self.projector = projector
        self.clock = clock
        self.locks = locks

    def _check(self, sub: Subscription, d: date, slot_name: SlotName, now):
        if d <= now.date() or not self.projector.is_scheduled(sub, slot_name, d):
            raise NotScheduled(f"{slot_name.value} delivery is not scheduled on {d.isoformat()}")
        if self.projector.is_locked(d, now):
            raise LockedWindow(
                f"cut-off passed: {d.isoformat()} can no longer be changed after "
                f"{self.projector.cutoff:%H:%M}"
            )

    async def toggle(self, subscription_id: str, d: date, slot_name: SlotName) -> ToggleResult:
        slot_name = SlotName(slot_name)
        async with self.locks.hold(subscription_id):
            sub = await self.store.get(subscription_id)
            now = self.clock.now()
            try:
                self._check(sub, d, slot_name, now)
            except (NotScheduled, LockedWindow) as e:
                logger.info("Skip toggle rejected for %s %s %s: %s", subscription_id, d, slot_name.value, e.code)
                raise

            key = OverrideKey(subscription_id, d, slot_name)
            overrides = await self.store.get_overrides(subscription_id)
            currently_skipped = any(o.key == key and o.skipped for o in overrides)
            if not await self.store.swap_override(key, expected_skipped=currently_skipped):
                logger.warning("Skip toggle lost a race for %s %s %s", subscription_id, d, slot_name.value)
                raise ConcurrentUpdate(
                    f"{slot_name.value} delivery on {d.isoformat()} was changed by another request; reload and retry"
                )

        logger.info("Delivery %s for %s on %s (%s)",
                    "resumed" if currently_skipped else "skipped", subscription_id, d, slot_name.value)
        return ToggleResult(subscription_id, d, slot_name, skipped=not currently_skipped)

    async def skip_all(self, subscription_id: str, d: date) -> BatchSkipResult:
        """Skip every slot delivering on `d`; already-skipped slots are reported as skipped."""
        result = BatchSkipResult(subscription_id, d)
        async with self.locks.hold(subscription_id):
            sub = await self.store.get(subscription_id)
            now = self.clock.now()
            overrides = await self.store.get_overrides(subscription_id)
            skipped_keys = {o.key for o in overrides if o.skipped}
            for slot_name in SLOT_ORDER:
                try:
                    self._check(sub, d, slot_name, now)
                except (NotScheduled, LockedWindow) as e:
                    result.rejected[slot_name] = e.code
                    continue
                key = OverrideKey(subscription_id, d, slot_name)
                if key not in skipped_keys:
                    # a failed swap means another writer already skipped it
                    await self.store.swap_override(key, expected_skipped=False)
                result.skipped.append(slot_name)

        logger.info("Skip-all for %s on %s: skipped=%s rejected=%s",
                    subscription_id, d, [s.value for s in result.skipped],
                    {s.value: c for s, c in result.rejected.items()})
        return result
