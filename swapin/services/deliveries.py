import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from .. import policies
from ..auth import Identity
from ..enums import DeliveryMethod, DeliveryStatus
from ..errors import Forbidden, InvalidState, NotFound
from ..models import Delivery, Item
from ..schemas import (
    CancelDeliveryRequest,
    CreateDeliveryRequest,
    DeliveryCostRequest,
    UpdateDeliveryAddressRequest,
    UpdateDeliveryStatusRequest,
)
from .orders import load_order

logger = logging.getLogger(__name__)

DEFAULT_DELIVERY_DAYS = 7
HISTORY_LIMIT = 20

BASE_COST = {
    DeliveryMethod.STANDARD: 50,
    DeliveryMethod.PREMIUM: 100,
    DeliveryMethod.EXPRESS: 150,
}
ESTIMATED_DAYS = {
    DeliveryMethod.STANDARD: 7,
    DeliveryMethod.PREMIUM: 3,
    DeliveryMethod.EXPRESS: 1,
}
COST_PER_WEIGHT_UNIT = 10

FINAL_STATUSES = {DeliveryStatus.CANCELLED.value, DeliveryStatus.DELIVERED.value}


async def load_delivery(delivery_id: str, uid: str) -> Delivery:
    """Fetch a delivery the caller takes part in."""
    delivery = await Delivery.get(delivery_id)
    if delivery is None:
        raise NotFound("Delivery not found", code="DELIVERY_NOT_FOUND")
    if not policies.is_delivery_participant(delivery, uid):
        raise Forbidden("Not authorized", code="NOT_AUTHORIZED")
    return delivery


async def create_delivery(identity: Identity, request: CreateDeliveryRequest) -> Dict[str, Any]:
    order = await load_order(request.order_id)
    if not policies.is_order_participant(order, identity.uid):
        raise Forbidden("Not authorized", code="NOT_AUTHORIZED")

    delivery = Delivery(
        order_id=order.id,
        item_id=order.item_id,
        buyer_id=order.buyer_id,
        seller_id=order.seller_id,
        delivery_address=request.delivery_address,
        delivery_method=request.delivery_method,
        status=DeliveryStatus.PENDING,
        estimated_delivery=datetime.now(timezone.utc) + timedelta(days=DEFAULT_DELIVERY_DAYS),
    )
    await delivery.save()
    return {"success": True, "deliveryId": delivery.id, "message": "Delivery created successfully!"}


async def get_delivery(identity: Identity, delivery_id: str) -> Dict[str, Any]:
    delivery = await load_delivery(delivery_id, identity.uid)
    payload = delivery.to_api()
    if delivery.item_id:
        item = await Item.get(delivery.item_id)
        if item is not None:
            payload["itemDetails"] = item.to_api()
    return payload


async def get_delivery_status(identity: Identity, delivery_id: str) -> Dict[str, Any]:
    delivery = await load_delivery(delivery_id, identity.uid)
    view = delivery.to_api()
    return {
        key: view.get(key)
        for key in (
            "status",
            "trackingNumber",
            "estimatedDelivery",
            "deliveryAddress",
            "deliveryMethod",
        )
    }


async def update_delivery_status(identity: Identity, request: UpdateDeliveryStatusRequest) -> Dict[str, Any]:
    delivery = await load_delivery(request.delivery_id, identity.uid)
    changes = {"status": request.status}
    if request.tracking_number:
        changes["tracking_number"] = request.tracking_number
    await delivery.patch(Delivery.field_updates(**changes))
    logger.info(f"Delivery {delivery.id} moved to {request.status} by {identity.uid}")
    return {"success": True, "message": "Delivery status updated successfully!"}


async def update_delivery_address(identity: Identity, request: UpdateDeliveryAddressRequest) -> Dict[str, Any]:
    delivery = await load_delivery(request.delivery_id, identity.uid)
    await delivery.patch(Delivery.field_updates(address=request.address))
    return {"success": True}


async def cancel_delivery(identity: Identity, request: CancelDeliveryRequest) -> Dict[str, Any]:
    delivery = await load_delivery(request.delivery_id, identity.uid)
    if delivery.status in FINAL_STATUSES:
        raise InvalidState(f"Delivery is already {delivery.status}")
    await delivery.patch(Delivery.field_updates(
        status=DeliveryStatus.CANCELLED,
        cancellation_reason=request.reason,
        cancelled_at=SERVER_TIMESTAMP,
    ))
    logger.info(f"Delivery {delivery.id} cancelled by {identity.uid}")
    return {"success": True, "message": "Delivery cancelled successfully!"}


def _created_key(delivery: Delivery) -> float:
    return delivery.created_at.timestamp() if delivery.created_at else 0.0


async def get_delivery_history(identity: Identity) -> List[Dict[str, Any]]:
    """Deliveries I bought or am receiving from a swap, newest first."""
    newest = Delivery.created_at.desc()
    bought = await Delivery.find_all(
        [Delivery.buyer_id == identity.uid], order_by=newest, limit=HISTORY_LIMIT
    )
    received = await Delivery.find_all(
        [Delivery.to_user_id == identity.uid], order_by=newest, limit=HISTORY_LIMIT
    )
    deliveries = sorted(bought + received, key=_created_key, reverse=True)
    return [delivery.to_api() for delivery in deliveries[:HISTORY_LIMIT]]


def calculate_delivery_cost(request: DeliveryCostRequest) -> Dict[str, Any]:
    method = DeliveryMethod(request.delivery_method)
    base_cost = BASE_COST[method]
    weight_cost = request.item_weight * COST_PER_WEIGHT_UNIT
    return {
        "baseCost": base_cost,
        "weightCost": weight_cost,
        "totalCost": base_cost + weight_cost,
        "estimatedDays": ESTIMATED_DAYS[method],
    }
