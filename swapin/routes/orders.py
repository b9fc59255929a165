from fastapi import APIRouter, Depends, Query

from ..auth import Identity, current_identity
from ..notifications import NotificationDispatcher
from ..rate_limit import enforce_rate_limit
from ..schemas import (
    BuyNowRequest,
    CancelDeliveryRequest,
    CreateDeliveryRequest,
    DeliveryCostRequest,
    InitializePaymentRequest,
    RefundRequest,
    UpdateDeliveryAddressRequest,
    UpdateDeliveryStatusRequest,
    VerifyPaymentRequest,
)
from ..services import deliveries, orders
from .deps import get_dispatcher

router = APIRouter(tags=["orders"], dependencies=[Depends(enforce_rate_limit)])


# ── Orders and payments ──────────────────────────────────────────────────────


@router.post("/processBuyNow")
async def process_buy_now(
    body: BuyNowRequest,
    identity: Identity = Depends(current_identity),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    return await orders.process_buy_now(identity, body, dispatcher)


@router.post("/initializePayment")
async def initialize_payment(body: InitializePaymentRequest, identity: Identity = Depends(current_identity)):
    return await orders.initialize_payment(identity, body)


@router.post("/verifyPayment")
async def verify_payment(body: VerifyPaymentRequest, identity: Identity = Depends(current_identity)):
    return await orders.verify_payment(identity, body)


@router.get("/getPaymentStatus")
async def get_payment_status(
    payment_id: str = Query(..., alias="paymentId"),
    identity: Identity = Depends(current_identity),
):
    return await orders.get_payment_status(identity, payment_id)


@router.post("/processRefund")
async def process_refund(body: RefundRequest, identity: Identity = Depends(current_identity)):
    return await orders.process_refund(identity, body)


@router.get("/getPaymentHistory")
async def get_payment_history(identity: Identity = Depends(current_identity)):
    return await orders.get_payment_history(identity)


# ── Deliveries ───────────────────────────────────────────────────────────────


@router.post("/createDelivery")
async def create_delivery(body: CreateDeliveryRequest, identity: Identity = Depends(current_identity)):
    return await deliveries.create_delivery(identity, body)


@router.get("/getDelivery")
async def get_delivery(
    delivery_id: str = Query(..., alias="id"),
    identity: Identity = Depends(current_identity),
):
    return await deliveries.get_delivery(identity, delivery_id)


@router.get("/getDeliveryStatus")
async def get_delivery_status(
    delivery_id: str = Query(..., alias="deliveryId"),
    identity: Identity = Depends(current_identity),
):
    return await deliveries.get_delivery_status(identity, delivery_id)


@router.post("/updateDeliveryStatus")
async def update_delivery_status(
    body: UpdateDeliveryStatusRequest, identity: Identity = Depends(current_identity)
):
    return await deliveries.update_delivery_status(identity, body)


@router.put("/updateDeliveryAddress")
async def update_delivery_address(
    body: UpdateDeliveryAddressRequest, identity: Identity = Depends(current_identity)
):
    return await deliveries.update_delivery_address(identity, body)


@router.post("/cancelDelivery")
async def cancel_delivery(body: CancelDeliveryRequest, identity: Identity = Depends(current_identity)):
    return await deliveries.cancel_delivery(identity, body)


@router.get("/getDeliveryHistory")
async def get_delivery_history(identity: Identity = Depends(current_identity)):
    return await deliveries.get_delivery_history(identity)


@router.post("/calculateDeliveryCost")
async def calculate_delivery_cost(body: DeliveryCostRequest, identity: Identity = Depends(current_identity)):
    return deliveries.calculate_delivery_cost(body)
