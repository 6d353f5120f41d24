# services/cost_calculator.py
from decimal import Decimal
from typing import Dict

from models.subscription import SlotName, Subscription, SubscriptionSlot
from services.pricing import PricingTable


class CostCalculator:
    """
    Weekly spend of a subscription.

    Per slot: quantity x unit price x delivery days per week (7 for daily,
    otherwise the number of selected days). Disabled, paused and cancelled
    slots contribute 0. Skips do not reduce the weekly figure.
    """

    def __init__(self, pricing: PricingTable):
        self.pricing = pricing

    def slot_weekly_cost(self, slot: SubscriptionSlot) -> Decimal:
        if not slot.is_active:
            return Decimal("0")
        return slot.quantity * self.pricing.unit_price(slot.product_type) * slot.active_day_count

    def breakdown(self, subscription: Subscription) -> Dict[SlotName, Decimal]:
        return {name: self.slot_weekly_cost(slot) for name, slot in subscription.slots()}

    def weekly_cost(self, subscription: Subscription) -> Decimal:
        return sum(self.breakdown(subscription).values(), Decimal("0"))
