import sys
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient


# Ensure project root is on sys.path so `services.*` / `core.*` imports work
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))


from core.clock import FixedClock
from core.singleton import Services, get_services
from models.subscription import ProductType, SubscriptionSlot, TimeRange
from services.pricing import PricingTable
from services.schedule_projector import ScheduleProjector
from services.subscription_store import InMemorySubscriptionStore
from main import app


# Monday. Tomorrow is Tue 2026-10-20; the default 5-day horizon runs Tue..Sat.
TODAY = date(2026, 10, 19)


@pytest.fixture()
def clock():
    """Clock frozen at 10:00 on TODAY, well before the 17:00 cut-off."""
    return FixedClock(datetime(2026, 10, 19, 10, 0))


@pytest.fixture()
def store():
    return InMemorySubscriptionStore()


@pytest.fixture()
def pricing():
    return PricingTable({ProductType.BUFFALO: Decimal("90"), ProductType.COW: Decimal("60")})


@pytest.fixture()
def services(store, clock, pricing):
    return Services(store=store, clock=clock, pricing=pricing, projector=ScheduleProjector(cutoff_hour=17, horizon_days=5))


@pytest.fixture()
def slot():
    """Factory for valid slots: daily 1.00 L buffalo in the 7:00-7:30 window unless overridden."""
    def _slot(**overrides):
        data = {
            "enabled": True,
            "product_type": ProductType.BUFFALO,
            "quantity": Decimal("1.00"),
            "delivery_window": TimeRange.parse("7:00-7:30"),
        }
        data.update(overrides)
        return SubscriptionSlot(**data)
    return _slot


@pytest.fixture()
def subscribe(services, slot):
    """Create a subscription through the service; evening defaults to a disabled cow slot."""
    async def _subscribe(morning=None, evening=None, address_id="addr-1", customer_id="cust-1"):
        if evening is None:
            evening = slot(enabled=False, product_type=ProductType.COW, delivery_window=TimeRange.parse("18:00-18:30"))
        return await services.subscriptions.create_subscription(
            customer_id=customer_id,
            morning=morning if morning is not None else slot(),
            evening=evening,
            delivery_address_id=address_id,
        )
    return _subscribe


@pytest_asyncio.fixture()
async def api_client(services):
    """Async test client for the HTTP app, wired to the per-test services."""
    app.dependency_overrides[get_services] = lambda: services
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac
    app.dependency_overrides.clear()
