from datetime import date
from decimal import Decimal

import pytest

from core.exceptions import NotFound, ValidationError
from models.subscription import Frequency, SlotName, SlotStatus, Weekday

WED = date(2026, 10, 21)


@pytest.mark.asyncio
async def test_create_subscription(services, subscribe):
    sub = await subscribe(customer_id="cust-42")
    stored = await services.store.get(sub.id)
    assert stored == sub
    assert stored.customer_id == "cust-42"
    assert stored.created_at == date(2026, 10, 19)
    assert stored.auto_pay_enabled is True


@pytest.mark.asyncio
async def test_create_needs_one_enabled_slot(services, slot):
    with pytest.raises(ValidationError) as exc:
        await services.subscriptions.create_subscription("cust-1", slot(enabled=False), slot(enabled=False), "addr-1")
    assert exc.value.kind == ValidationError.NO_SLOT_ENABLED
    assert await services.store.list_subscriptions() == []


@pytest.mark.asyncio
async def test_new_slots_start_active(services, slot):
    sub = await services.subscriptions.create_subscription(
        "cust-1", slot(status=SlotStatus.CANCELLED), slot(enabled=False), "addr-1"
    )
    assert sub.morning.status == SlotStatus.ACTIVE


@pytest.mark.asyncio
async def test_get_unknown_subscription(services):
    with pytest.raises(NotFound):
        await services.subscriptions.get_subscription("nope")


@pytest.mark.asyncio
async def test_list_subscriptions_by_customer(services, subscribe):
    await subscribe(customer_id="a")
    await subscribe(customer_id="b")
    await subscribe(customer_id="a")
    assert len(await services.subscriptions.list_subscriptions()) == 3
    assert len(await services.subscriptions.list_subscriptions(customer_id="a")) == 2


@pytest.mark.asyncio
async def test_update_slot_to_custom_days(services, subscribe):
    sub = await subscribe()
    updated = await services.subscriptions.update_slot(
        sub.id, SlotName.MORNING, {"frequency": Frequency.CUSTOM, "active_days": [Weekday.SAT, Weekday.SUN]}
    )
    assert updated.morning.active_days == [Weekday.SAT, Weekday.SUN]
    assert services.costs.weekly_cost(updated) == Decimal("180")


@pytest.mark.asyncio
async def test_switching_to_daily_clears_days(services, subscribe, slot):
    sub = await subscribe(morning=slot(frequency=Frequency.CUSTOM, active_days=[Weekday.MON]))
    updated = await services.subscriptions.update_slot(sub.id, SlotName.MORNING, {"frequency": Frequency.DAILY})
    assert updated.morning.active_days == []
    assert updated.morning.active_day_count == 7


@pytest.mark.asyncio
async def test_invalid_edit_is_rejected_and_not_stored(services, subscribe):
    sub = await subscribe()
    with pytest.raises(ValidationError) as exc:
        await services.subscriptions.update_slot(sub.id, SlotName.MORNING, {"quantity": Decimal("1.10")})
    assert exc.value.kind == ValidationError.INVALID_QUANTITY
    assert (await services.store.get(sub.id)).morning.quantity == Decimal("1.00")


@pytest.mark.asyncio
async def test_custom_without_days_rejected_on_edit(services, subscribe):
    sub = await subscribe()
    with pytest.raises(ValidationError) as exc:
        await services.subscriptions.update_slot(sub.id, SlotName.MORNING, {"frequency": Frequency.CUSTOM})
    assert exc.value.kind == ValidationError.DAYS_REQUIRED


@pytest.mark.asyncio
async def test_cannot_disable_last_enabled_slot(services, subscribe):
    sub = await subscribe()
    with pytest.raises(ValidationError) as exc:
        await services.subscriptions.update_slot(sub.id, SlotName.MORNING, {"enabled": False})
    assert exc.value.kind == ValidationError.NO_SLOT_ENABLED


@pytest.mark.asyncio
async def test_edit_does_not_touch_existing_skips(services, subscribe):
    sub = await subscribe()
    await services.skips.toggle(sub.id, WED, SlotName.MORNING)
    await services.subscriptions.update_slot(sub.id, SlotName.MORNING, {"quantity": Decimal("2.00")})
    overrides = await services.store.get_overrides(sub.id)
    assert [(o.date, o.slot_name, o.skipped) for o in overrides] == [(WED, SlotName.MORNING, True)]


@pytest.mark.asyncio
async def test_unknown_field_is_not_editable(services, subscribe):
    sub = await subscribe()
    with pytest.raises(ValueError):
        await services.subscriptions.update_slot(sub.id, SlotName.MORNING, {"status": SlotStatus.ACTIVE})


@pytest.mark.asyncio
async def test_set_auto_pay(services, subscribe):
    sub = await subscribe()
    updated = await services.subscriptions.set_auto_pay(sub.id, False)
    assert updated.auto_pay_enabled is False
    assert (await services.store.get(sub.id)).auto_pay_enabled is False


@pytest.mark.asyncio
async def test_null_changes_are_ignored(services, subscribe):
    sub = await subscribe()
    updated = await services.subscriptions.update_slot(
        sub.id, SlotName.MORNING, {"enabled": None, "quantity": None, "frequency": Frequency.CUSTOM,
                                   "active_days": [Weekday.TUE]}
    )
    assert updated.morning.enabled is True
    assert updated.morning.quantity == Decimal("1.00")
    assert updated.morning.active_days == [Weekday.TUE]
