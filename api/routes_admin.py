from fastapi import APIRouter, Depends
from core.response import ok
from core.singleton import Services, get_services
from services.route_aggregator import aggregate_routes

router = APIRouter()


@router.get("/routes")
async def route_overview(svc: Services = Depends(get_services)):
    """
    Admin: active subscriptions grouped by delivery area.

    Each area lists its subscription count, litres per delivery day, per-milk
    demand and member subscription ids. Read-only.
    """
    subs = await svc.store.list_subscriptions()
    routes = aggregate_routes(subs, svc.areas.area_key_of)
    return ok([summary.to_dict() for summary in routes.values()])


@router.get("/subscriptions")
async def subscriptions_overview(svc: Services = Depends(get_services)):
    """Admin: every subscription with slot statuses and weekly value."""
    subs = await svc.store.list_subscriptions()
    overview = []
    for sub in subs:
        overview.append({
            "subscription_id": sub.id,
            "customer_id": sub.customer_id,
            "delivery_address_id": sub.delivery_address_id,
            "area": svc.areas.area_key_of(sub.delivery_address_id),
            "slots": {name.value: slot.status.value for name, slot in sub.slots()},
            "auto_pay_enabled": sub.auto_pay_enabled,
            "weekly_cost": svc.costs.weekly_cost(sub),
        })
    return ok(overview)


@router.get("/pricing")
async def pricing(svc: Services = Depends(get_services)):
    return ok(svc.pricing.as_dict())
