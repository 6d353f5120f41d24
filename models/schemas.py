from datetime import date
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Optional, List

from models.subscription import (
    Frequency,
    ProductType,
    SlotName,
    SubscriptionSlot,
    TimeRange,
    Weekday,
)

class SlotConfig(BaseModel):
    enabled: bool = True
    product_type: ProductType
    quantity: Decimal
    delivery_window: TimeRange
    frequency: Frequency = Frequency.DAILY
    active_days: List[Weekday] = []

    def to_slot(self) -> SubscriptionSlot:
        return SubscriptionSlot(**self.model_dump())

class SubscriptionCreate(BaseModel):
    customer_id: str = Field(..., min_length=1)
    delivery_address_id: str = Field(..., min_length=1)
    morning: SlotConfig
    evening: SlotConfig
    auto_pay_enabled: bool = True
    # optional address line, used to place the subscription on a delivery route
    delivery_address_line: Optional[str] = None

class SlotUpdate(BaseModel):
    enabled: Optional[bool] = None
    product_type: Optional[ProductType] = None
    quantity: Optional[Decimal] = None
    delivery_window: Optional[TimeRange] = None
    frequency: Optional[Frequency] = None
    active_days: Optional[List[Weekday]] = None

class AutoPayUpdate(BaseModel):
    enabled: bool

class SkipToggleRequest(BaseModel):
    date: date
    slot_name: SlotName

class SkipAllRequest(BaseModel):
    date: date

class CancelRequest(BaseModel):
    reason: str = ""
    free_text: Optional[str] = None
