# models/subscription.py
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import List, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from core.exceptions import ValidationError

# Allowed litres per delivery: 0.50 .. 2.00 in 0.25 steps
QUANTITIES = tuple(Decimal("0.50") + Decimal("0.25") * i for i in range(7))

CANCELLATION_REASONS = (
    "Moving out of town",
    "Milk quality issue",
    "Delivery timing issue",
    "Price is too high",
    "Taking a break",
    "Other",
)
OTHER_REASON = "Other"


class ProductType(str, Enum):
    BUFFALO = "buffalo"
    COW = "cow"


class Frequency(str, Enum):
    DAILY = "daily"
    CUSTOM = "custom"


class SlotStatus(str, Enum):
    ACTIVE = "Active"
    PAUSED = "Paused"
    CANCELLED = "Cancelled"


class SlotName(str, Enum):
    MORNING = "morning"
    EVENING = "evening"


# morning is always emitted before evening on the same day
SLOT_ORDER = (SlotName.MORNING, SlotName.EVENING)


class Weekday(str, Enum):
    MON = "Mon"
    TUE = "Tue"
    WED = "Wed"
    THU = "Thu"
    FRI = "Fri"
    SAT = "Sat"
    SUN = "Sun"

    @classmethod
    def of(cls, d: date) -> "Weekday":
        return list(cls)[d.weekday()]


class TimeRange(BaseModel):
    """Delivery window within a day, e.g. 07:00-07:30."""
    model_config = ConfigDict(frozen=True)

    start: time
    end: time

    @model_validator(mode="after")
    def _check_order(self):
        if self.start >= self.end:
            raise ValidationError(
                ValidationError.INVALID_TIME_WINDOW,
                f"delivery window start {self.start} must be before end {self.end}",
            )
        return self

    @classmethod
    def parse(cls, value: str) -> "TimeRange":
        """Parse the "7:00-7:30" form used by the delivery time pickers."""
        try:
            raw_start, raw_end = value.split("-")
            start = datetime.strptime(raw_start.strip(), "%H:%M").time()
            end = datetime.strptime(raw_end.strip(), "%H:%M").time()
        except ValueError:
            raise ValidationError(ValidationError.INVALID_TIME_WINDOW, f"unparseable delivery window: {value!r}")
        return cls(start=start, end=end)

    def __str__(self):
        return f"{self.start:%H:%M}-{self.end:%H:%M}"


# Offered windows (used as defaults and exposed to clients)
MORNING_WINDOWS = tuple(TimeRange.parse(w) for w in ("6:00-6:30", "6:30-7:00", "7:00-7:30", "7:30-8:00", "8:00-8:30"))
EVENING_WINDOWS = tuple(TimeRange.parse(w) for w in ("17:30-18:00", "18:00-18:30", "18:30-19:00", "19:00-19:30"))


class SubscriptionSlot(BaseModel):
    """
    One time-of-day delivery line of a subscription.

    Validation happens on construction: a quantity outside QUANTITIES or a
    custom frequency without days raises core.exceptions.ValidationError.
    Daily slots always carry an empty active_days.
    """
    enabled: bool = True
    product_type: ProductType
    quantity: Decimal
    delivery_window: TimeRange
    frequency: Frequency = Frequency.DAILY
    active_days: List[Weekday] = Field(default_factory=list)
    status: SlotStatus = SlotStatus.ACTIVE

    @field_validator("quantity")
    @classmethod
    def _check_quantity(cls, v: Decimal) -> Decimal:
        if v not in QUANTITIES:
            raise ValidationError(ValidationError.INVALID_QUANTITY, f"quantity {v} is not one of the offered sizes")
        return v

    @field_validator("active_days")
    @classmethod
    def _dedupe_days(cls, v: List[Weekday]) -> List[Weekday]:
        order = list(Weekday)
        return sorted(set(v), key=order.index)

    @model_validator(mode="after")
    def _check_days(self):
        if self.frequency == Frequency.DAILY:
            self.active_days = []
        elif self.enabled and not self.active_days:
            raise ValidationError(ValidationError.DAYS_REQUIRED, "select at least one delivery day")
        return self

    @property
    def is_active(self) -> bool:
        return self.enabled and self.status == SlotStatus.ACTIVE

    @property
    def active_day_count(self) -> int:
        return 7 if self.frequency == Frequency.DAILY else len(self.active_days)

    def runs_on(self, d: date) -> bool:
        return self.frequency == Frequency.DAILY or Weekday.of(d) in self.active_days


def default_slot(slot_name: SlotName) -> SubscriptionSlot:
    """Presets offered on the new-subscription form."""
    if slot_name == SlotName.MORNING:
        return SubscriptionSlot(
            enabled=True,
            product_type=ProductType.BUFFALO,
            quantity=Decimal("0.50"),
            delivery_window=TimeRange.parse("7:00-7:30"),
        )
    return SubscriptionSlot(
        enabled=False,
        product_type=ProductType.COW,
        quantity=Decimal("0.50"),
        delivery_window=TimeRange.parse("18:00-18:30"),
    )


class Subscription(BaseModel):
    id: str
    customer_id: str
    morning: SubscriptionSlot
    evening: SubscriptionSlot
    delivery_address_id: str
    auto_pay_enabled: bool = True
    created_at: date

    def slot(self, slot_name: SlotName) -> SubscriptionSlot:
        return self.morning if SlotName(slot_name) == SlotName.MORNING else self.evening

    def with_slot(self, slot_name: SlotName, slot: SubscriptionSlot) -> "Subscription":
        return self.model_copy(update={SlotName(slot_name).value: slot})

    def slots(self):
        """(name, slot) pairs in delivery order."""
        return [(name, self.slot(name)) for name in SLOT_ORDER]

    @property
    def has_active_slot(self) -> bool:
        return any(slot.is_active for _, slot in self.slots())


class OverrideKey(NamedTuple):
    subscription_id: str
    date: date
    slot_name: SlotName


class SkipOverride(BaseModel):
    """Sparse per-date skip marker; absence means the delivery goes ahead."""
    subscription_id: str
    date: date
    slot_name: SlotName
    skipped: bool = True

    @property
    def key(self) -> OverrideKey:
        return OverrideKey(self.subscription_id, self.date, self.slot_name)


class ScheduledDelivery(BaseModel):
    """Projected delivery; derived on every query and never stored."""
    model_config = ConfigDict(frozen=True)

    date: date
    slot_name: SlotName
    product_type: ProductType
    quantity: Decimal
    delivery_window: TimeRange
    is_skipped: bool = False
    is_locked: bool = False


class CancellationRecord(BaseModel):
    subscription_id: str
    slot_name: SlotName
    reason: str
    free_text: Optional[str] = None
    cancelled_at: datetime
