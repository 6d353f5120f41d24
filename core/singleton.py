# core/singleton.py
import logging

from config.settings import settings
from core.clock import Clock, SystemClock
from core.db import async_session_maker
from core.locks import KeyedLocks
from services.cancellation_service import CancellationWorkflow
from services.cost_calculator import CostCalculator
from services.pricing import PricingTable
from services.route_aggregator import AddressAreaResolver
from services.schedule_projector import ScheduleProjector
from services.skip_service import SkipResumeController
from services.subscription_db_service import SubscriptionDBService
from services.subscription_service import SubscriptionService
from services.subscription_store import InMemorySubscriptionStore, SubscriptionStore

logger = logging.getLogger(__name__)


class Services:
    """Wires the core around one store, clock and pricing table."""

    def __init__(self, store: SubscriptionStore, clock: Clock, pricing: PricingTable,
                 projector: ScheduleProjector | None = None, areas: AddressAreaResolver | None = None):
        self.store = store
        self.clock = clock
        self.pricing = pricing
        self.projector = projector or ScheduleProjector()
        self.areas = areas or AddressAreaResolver({})
        self.locks = KeyedLocks()
        self.costs = CostCalculator(pricing)
        self.subscriptions = SubscriptionService(store, clock, self.locks)
        self.skips = SkipResumeController(store, self.projector, clock, self.locks)
        self.cancellations = CancellationWorkflow(store, clock, self.locks)


def build_services() -> Services:
    if async_session_maker is not None:
        store = SubscriptionDBService(async_session_maker)
        logger.info("Using DB-backed subscription store")
    else:
        store = InMemorySubscriptionStore()
        logger.info("Using in-memory subscription store")
    return Services(
        store=store,
        clock=SystemClock(settings.DELIVERY_TIMEZONE),
        pricing=PricingTable.from_settings(settings),
        projector=ScheduleProjector(settings.CUTOFF_HOUR, settings.SCHEDULE_HORIZON_DAYS),
    )


# Unified singleton registry
services = build_services()


def get_services() -> Services:
    """FastAPI dependency; tests override it with their own wiring."""
    return services


__all__ = ["Services", "services", "build_services", "get_services"]
