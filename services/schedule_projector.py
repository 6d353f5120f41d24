"""
Schedule projection: the next K days of deliveries for a subscription.

Purpose:
- Combine slot frequency rules with stored skip overrides
- Mark the nearest day as locked once the daily cut-off hour has passed
- Stay a pure function of (subscription, overrides, now): nothing is stored

Rules:
- The horizon starts tomorrow (today + 1) and covers K consecutive days
- Only enabled slots in Active status are emitted; paused and cancelled
  slots are left out
- A slot runs on a day if it is daily, or the weekday is one of its days
- Deliveries are ordered by date, then morning before evening
- Days with nothing scheduled are left out entirely
- Only tomorrow can be locked; later days stay editable whatever the time
"""
from datetime import date, datetime, time, timedelta
from typing import Iterable, Iterator, List, Optional, Set

from config.settings import settings
from models.subscription import (
    OverrideKey,
    ScheduledDelivery,
    SkipOverride,
    SlotName,
    Subscription,
)


class Projection:
    """Lazy, finite and restartable: every iteration recomputes from the same inputs."""

    def __init__(self, projector: "ScheduleProjector", subscription: Subscription,
                 skipped: Set[OverrideKey], now: datetime, days: int):
        self.projector = projector
        self.subscription = subscription
        self.skipped = frozenset(skipped)
        self.now = now
        self.days = days

    def __iter__(self) -> Iterator[ScheduledDelivery]:
        sub = self.subscription
        for d in self.projector.horizon(self.now, self.days):
            for name, slot in sub.slots():
                if not self.projector.is_scheduled(sub, name, d):
                    continue
                yield ScheduledDelivery(
                    date=d,
                    slot_name=name,
                    product_type=slot.product_type,
                    quantity=slot.quantity,
                    delivery_window=slot.delivery_window,
                    is_skipped=OverrideKey(sub.id, d, name) in self.skipped,
                    is_locked=self.projector.is_locked(d, self.now),
                )

    def to_list(self) -> List[ScheduledDelivery]:
        return list(self)

    def by_date(self) -> List[dict]:
        """Grouped view used by the plan screen: one entry per day with a delivery."""
        days: List[dict] = []
        for delivery in self:
            if not days or days[-1]["date"] != delivery.date:
                days.append({"date": delivery.date, "is_locked": delivery.is_locked, "deliveries": []})
            days[-1]["deliveries"].append(delivery)
        return days


class ScheduleProjector:
    def __init__(self, cutoff_hour: int = settings.CUTOFF_HOUR, horizon_days: int = settings.SCHEDULE_HORIZON_DAYS):
        if not 0 <= cutoff_hour <= 23:
            raise ValueError(f"cutoff_hour must be within 0..23, got {cutoff_hour}")
        self.cutoff = time(hour=cutoff_hour)
        self.horizon_days = horizon_days

    def horizon(self, now: datetime, days: Optional[int] = None) -> List[date]:
        tomorrow = now.date() + timedelta(days=1)
        count = self.horizon_days if days is None else days
        return [tomorrow + timedelta(days=i) for i in range(max(count, 0))]

    def is_locked(self, d: date, now: datetime) -> bool:
        return d == now.date() + timedelta(days=1) and now.time() >= self.cutoff

    @staticmethod
    def is_scheduled(subscription: Subscription, slot_name: SlotName, d: date) -> bool:
        slot = subscription.slot(slot_name)
        return slot.is_active and slot.runs_on(d)

    def project(self, subscription: Subscription, overrides: Iterable[SkipOverride],
                now: datetime, days: Optional[int] = None) -> Projection:
        skipped = {o.key for o in overrides if o.skipped and o.subscription_id == subscription.id}
        return Projection(self, subscription, skipped, now, self.horizon_days if days is None else days)
