# api/routes_user.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from core.singleton import Services, get_services
from core.response import ok
from models.schemas import (
    AutoPayUpdate,
    CancelRequest,
    SkipAllRequest,
    SkipToggleRequest,
    SlotUpdate,
    SubscriptionCreate,
)
from models.subscription import (
    CANCELLATION_REASONS,
    EVENING_WINDOWS,
    MORNING_WINDOWS,
    QUANTITIES,
    SLOT_ORDER,
    Frequency,
    SlotName,
    Weekday,
    default_slot,
)

router = APIRouter()


def _subscription_view(svc: Services, sub) -> dict:
    data = sub.model_dump(mode="json")
    data["weekly_cost"] = svc.costs.weekly_cost(sub)
    return data


@router.get("/plan-options")
async def plan_options(svc: Services = Depends(get_services)):
    """Everything the plan form offers: sizes, delivery windows, days, default slots, prices and cancel reasons."""
    return ok({
        "quantities": [str(q) for q in QUANTITIES],
        "delivery_windows": {
            SlotName.MORNING.value: [str(w) for w in MORNING_WINDOWS],
            SlotName.EVENING.value: [str(w) for w in EVENING_WINDOWS],
        },
        "frequencies": [f.value for f in Frequency],
        "weekdays": [d.value for d in Weekday],
        "defaults": {name.value: default_slot(name).model_dump(mode="json") for name in SLOT_ORDER},
        "prices": svc.pricing.as_dict(),
        "cancellation_reasons": list(CANCELLATION_REASONS),
    })


@router.post("/subscriptions")
async def create_subscription(payload: SubscriptionCreate, svc: Services = Depends(get_services)):
    """Checkout: create a subscription from the morning/evening slot forms."""
    sub = await svc.subscriptions.create_subscription(
        customer_id=payload.customer_id,
        morning=payload.morning.to_slot(),
        evening=payload.evening.to_slot(),
        delivery_address_id=payload.delivery_address_id,
        auto_pay_enabled=payload.auto_pay_enabled,
    )
    if payload.delivery_address_line:
        svc.areas.register(payload.delivery_address_id, payload.delivery_address_line)
    return ok(_subscription_view(svc, sub))


@router.get("/subscriptions")
async def list_subscriptions(customer_id: Optional[str] = None, svc: Services = Depends(get_services)):
    subs = await svc.subscriptions.list_subscriptions(customer_id=customer_id)
    return ok([_subscription_view(svc, s) for s in subs])


@router.get("/subscriptions/{subscription_id}")
async def get_subscription(subscription_id: str, svc: Services = Depends(get_services)):
    sub = await svc.subscriptions.get_subscription(subscription_id)
    return ok(_subscription_view(svc, sub))


@router.patch("/subscriptions/{subscription_id}/slots/{slot_name}")
async def update_slot(subscription_id: str, slot_name: SlotName, payload: SlotUpdate,
                      svc: Services = Depends(get_services)):
    """Modify plan: change quantity, milk type, window, frequency or days of one slot."""
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    sub = await svc.subscriptions.update_slot(subscription_id, slot_name, changes)
    return ok(_subscription_view(svc, sub))


@router.put("/subscriptions/{subscription_id}/auto-pay")
async def set_auto_pay(subscription_id: str, payload: AutoPayUpdate, svc: Services = Depends(get_services)):
    sub = await svc.subscriptions.set_auto_pay(subscription_id, payload.enabled)
    return ok(_subscription_view(svc, sub))


@router.get("/subscriptions/{subscription_id}/cost")
async def weekly_cost(subscription_id: str, svc: Services = Depends(get_services)):
    sub = await svc.subscriptions.get_subscription(subscription_id)
    return ok({
        "subscription_id": sub.id,
        "weekly_total": svc.costs.weekly_cost(sub),
        "slots": {name.value: cost for name, cost in svc.costs.breakdown(sub).items()},
        "prices": svc.pricing.as_dict(),
    })


@router.get("/subscriptions/{subscription_id}/schedule")
async def schedule(subscription_id: str, days: Optional[int] = Query(None, ge=1, le=31),
                   svc: Services = Depends(get_services)):
    """Next-K-days view, starting tomorrow."""
    sub = await svc.store.get(subscription_id)
    overrides = await svc.store.get_overrides(subscription_id)
    projection = svc.projector.project(sub, overrides, svc.clock.now(), days=days)
    return ok({
        "subscription_id": sub.id,
        "horizon_days": projection.days,
        "deliveries": [d.model_dump(mode="json") for d in projection],
    })


@router.post("/subscriptions/{subscription_id}/skips")
async def toggle_skip(subscription_id: str, payload: SkipToggleRequest, svc: Services = Depends(get_services)):
    """Skip a delivery, or resume it if it was already skipped."""
    result = await svc.skips.toggle(subscription_id, payload.date, payload.slot_name)
    return ok({
        "subscription_id": result.subscription_id,
        "date": result.date.isoformat(),
        "slot_name": result.slot_name.value,
        "skipped": result.skipped,
    })


@router.post("/subscriptions/{subscription_id}/skips/batch")
async def skip_all(subscription_id: str, payload: SkipAllRequest, svc: Services = Depends(get_services)):
    result = await svc.skips.skip_all(subscription_id, payload.date)
    return ok({
        "subscription_id": result.subscription_id,
        "date": result.date.isoformat(),
        "skipped": [s.value for s in result.skipped],
        "rejected": {s.value: code for s, code in result.rejected.items()},
    })


@router.post("/subscriptions/{subscription_id}/slots/{slot_name}/cancel")
async def cancel_slot(subscription_id: str, slot_name: SlotName, payload: CancelRequest,
                      svc: Services = Depends(get_services)):
    record = await svc.cancellations.cancel(subscription_id, slot_name, payload.reason, payload.free_text)
    return ok(record.model_dump(mode="json"))


@router.get("/subscriptions/{subscription_id}/cancellations")
async def list_cancellations(subscription_id: str, svc: Services = Depends(get_services)):
    records = await svc.store.get_cancellations(subscription_id)
    return ok([r.model_dump(mode="json") for r in records])


@router.post("/subscriptions/{subscription_id}/slots/{slot_name}/pause")
async def pause_slot(subscription_id: str, slot_name: SlotName, svc: Services = Depends(get_services)):
    sub = await svc.cancellations.pause(subscription_id, slot_name)
    return ok(_subscription_view(svc, sub))


@router.post("/subscriptions/{subscription_id}/slots/{slot_name}/resume")
async def resume_slot(subscription_id: str, slot_name: SlotName, svc: Services = Depends(get_services)):
    sub = await svc.cancellations.resume(subscription_id, slot_name)
    return ok(_subscription_view(svc, sub))
