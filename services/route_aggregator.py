# services/route_aggregator.py
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Mapping

from models.subscription import Subscription

DEFAULT_AREA = "Other"


def area_from_address(line: str | None) -> str:
    """Area is the second comma-separated part of an address line ("12th Main, Indiranagar, Bengaluru")."""
    if not line:
        return DEFAULT_AREA
    parts = line.split(",")
    if len(parts) < 2 or not parts[1].strip():
        return DEFAULT_AREA
    return parts[1].strip()


class AddressAreaResolver:
    """area_key_of(address_id) over a static address book snapshot."""

    def __init__(self, address_lines: Mapping[str, str]):
        self.address_lines = dict(address_lines)

    def register(self, address_id: str, line: str):
        self.address_lines[address_id] = line

    def area_key_of(self, address_id: str) -> str:
        return area_from_address(self.address_lines.get(address_id))


@dataclass
class AreaSummary:
    area: str
    subscription_count: int = 0
    total_quantity: Decimal = Decimal("0")
    members: List[str] = field(default_factory=list)
    demand_by_product: Dict[str, Decimal] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "area": self.area,
            "subscription_count": self.subscription_count,
            "total_quantity": self.total_quantity,
            "members": list(self.members),
            "demand_by_product": dict(self.demand_by_product),
        }


def aggregate_routes(subscriptions: Iterable[Subscription],
                     area_key_of: Callable[[str], str]) -> Dict[str, AreaSummary]:
    """
    Group subscriptions with at least one active slot by delivery area.

    total_quantity is the litres per delivery day across the area's active
    slots (what a rider loads for a day on which every slot runs).
    Read-only: nothing is written back.
    """
    routes: Dict[str, AreaSummary] = {}
    for sub in subscriptions:
        active = [slot for _, slot in sub.slots() if slot.is_active]
        if not active:
            continue
        area = area_key_of(sub.delivery_address_id) or DEFAULT_AREA
        summary = routes.setdefault(area, AreaSummary(area=area))
        summary.subscription_count += 1
        summary.members.append(sub.id)
        for slot in active:
            summary.total_quantity += slot.quantity
            product = slot.product_type.value
            summary.demand_by_product[product] = summary.demand_by_product.get(product, Decimal("0")) + slot.quantity
    return dict(sorted(routes.items()))
