from datetime import date, datetime

import pytest

from core.exceptions import FreeTextRequired, InvalidTransition, ReasonRequired, StoreUnavailable, ValidationError
from core.singleton import Services
from models.subscription import ProductType, SlotName, SlotStatus, TimeRange
from services.subscription_store import InMemorySubscriptionStore

WED = date(2026, 10, 21)


@pytest.fixture()
def both_slots(slot):
    return {
        "morning": slot(),
        "evening": slot(product_type=ProductType.COW, delivery_window=TimeRange.parse("18:00-18:30")),
    }


@pytest.mark.asyncio
async def test_other_reason_needs_free_text(services, subscribe):
    sub = await subscribe()
    with pytest.raises(FreeTextRequired):
        await services.cancellations.cancel(sub.id, SlotName.MORNING, reason="Other", free_text="")
    with pytest.raises(FreeTextRequired):
        await services.cancellations.cancel(sub.id, SlotName.MORNING, reason="Other", free_text="   ")
    assert (await services.store.get(sub.id)).morning.status == SlotStatus.ACTIVE


@pytest.mark.asyncio
async def test_cancel_with_other_reason_removes_slot_from_schedule(services, subscribe, clock):
    sub = await subscribe()
    record = await services.cancellations.cancel(sub.id, SlotName.MORNING, reason="Other", free_text="moving")

    assert record.reason == "Other"
    assert record.free_text == "moving"
    assert record.cancelled_at == clock.now()

    stored = await services.store.get(sub.id)
    assert stored.morning.status == SlotStatus.CANCELLED
    assert stored.morning.enabled is False
    assert services.projector.project(stored, [], clock.now(), days=14).to_list() == []
    assert await services.store.get_cancellations(sub.id) == [record]


@pytest.mark.asyncio
@pytest.mark.parametrize("reason", ["", "   ", None])
async def test_reason_required(services, subscribe, reason):
    sub = await subscribe()
    with pytest.raises(ReasonRequired):
        await services.cancellations.cancel(sub.id, SlotName.MORNING, reason=reason)


@pytest.mark.asyncio
async def test_reason_must_come_from_list(services, subscribe):
    sub = await subscribe()
    with pytest.raises(ValidationError) as exc:
        await services.cancellations.cancel(sub.id, SlotName.MORNING, reason="Bored")
    assert exc.value.kind == ValidationError.INVALID_REASON


@pytest.mark.asyncio
async def test_listed_reason_needs_no_free_text(services, subscribe):
    sub = await subscribe()
    record = await services.cancellations.cancel(sub.id, SlotName.MORNING, reason="Price is too high")
    assert record.free_text is None


@pytest.mark.asyncio
async def test_cancel_leaves_other_slot_and_overrides(services, subscribe, both_slots):
    sub = await subscribe(**both_slots)
    await services.skips.toggle(sub.id, WED, SlotName.MORNING)

    await services.cancellations.cancel(sub.id, SlotName.MORNING, reason="Taking a break")

    stored = await services.store.get(sub.id)
    assert stored.evening.status == SlotStatus.ACTIVE and stored.evening.enabled
    overrides = await services.store.get_overrides(sub.id)
    assert [(o.date, o.slot_name) for o in overrides] == [(WED, SlotName.MORNING)]
    projected = services.projector.project(stored, overrides, services.clock.now()).to_list()
    assert {d.slot_name for d in projected} == {SlotName.EVENING}
    assert services.costs.weekly_cost(stored) == 7 * 60


@pytest.mark.asyncio
async def test_cancelled_slot_is_terminal(services, subscribe):
    sub = await subscribe()
    await services.cancellations.cancel(sub.id, SlotName.MORNING, reason="Milk quality issue")

    with pytest.raises(InvalidTransition):
        await services.cancellations.cancel(sub.id, SlotName.MORNING, reason="Milk quality issue")
    with pytest.raises(InvalidTransition):
        await services.cancellations.resume(sub.id, SlotName.MORNING)
    with pytest.raises(InvalidTransition):
        await services.cancellations.pause(sub.id, SlotName.MORNING)
    assert len(await services.store.get_cancellations(sub.id)) == 1


@pytest.mark.asyncio
async def test_cancelled_slot_cannot_be_edited_back(services, subscribe):
    sub = await subscribe()
    await services.cancellations.cancel(sub.id, SlotName.MORNING, reason="Moving out of town")
    with pytest.raises(InvalidTransition):
        await services.subscriptions.update_slot(sub.id, SlotName.MORNING, {"enabled": True})


@pytest.mark.asyncio
async def test_pause_and_resume(services, subscribe, clock):
    sub = await subscribe()

    paused = await services.cancellations.pause(sub.id, SlotName.MORNING)
    assert paused.morning.status == SlotStatus.PAUSED
    assert services.projector.project(paused, [], clock.now()).to_list() == []
    assert services.costs.weekly_cost(paused) == 0

    again = await services.cancellations.pause(sub.id, SlotName.MORNING)
    assert again.morning.status == SlotStatus.PAUSED

    resumed = await services.cancellations.resume(sub.id, SlotName.MORNING)
    assert resumed.morning.status == SlotStatus.ACTIVE
    assert len(services.projector.project(resumed, [], clock.now()).to_list()) == 5


@pytest.mark.asyncio
async def test_paused_slot_can_be_cancelled(services, subscribe):
    sub = await subscribe()
    await services.cancellations.pause(sub.id, SlotName.MORNING)
    await services.cancellations.cancel(sub.id, SlotName.MORNING, reason="Delivery timing issue")
    assert (await services.store.get(sub.id)).morning.status == SlotStatus.CANCELLED


@pytest.mark.asyncio
async def test_cancelled_slot_stays_out_of_projection_over_time(services, subscribe, clock):
    sub = await subscribe()
    await services.cancellations.cancel(sub.id, SlotName.MORNING, reason="Taking a break")
    clock.advance_to(datetime(2026, 12, 1, 8, 0))
    stored = await services.store.get(sub.id)
    assert services.projector.project(stored, [], clock.now(), days=30).to_list() == []


class FailingPutStore(InMemorySubscriptionStore):
    """Accepts the first put (create) and fails every later one."""

    def __init__(self):
        super().__init__()
        self.puts = 0

    async def put(self, subscription):
        self.puts += 1
        if self.puts > 1:
            raise StoreUnavailable("write failed")
        await super().put(subscription)


@pytest.mark.asyncio
async def test_failed_cancel_leaves_no_orphan_record(clock, pricing, slot):
    store = FailingPutStore()
    svc = Services(store=store, clock=clock, pricing=pricing)
    sub = await svc.subscriptions.create_subscription("cust-1", slot(), slot(enabled=False), "addr-1")

    with pytest.raises(StoreUnavailable):
        await svc.cancellations.cancel(sub.id, SlotName.MORNING, reason="Taking a break")

    assert await store.get_cancellations(sub.id) == []
    assert (await store.get(sub.id)).morning.status == SlotStatus.ACTIVE
