"""
Buy-now orders and their payment records.

The payment gateway is not integrated: initialising and verifying a payment
only move the stored records through their states.
"""

import logging
from typing import Any, Dict, List

from google.api_core.exceptions import FailedPrecondition
from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from .. import policies
from ..auth import Identity
from ..enums import (
    BatchOperation,
    DeliveryStatus,
    NotificationType,
    OrderStatus,
    PaymentStatus,
)
from ..errors import Forbidden, InvalidState, NotFound, ValidationFailed
from ..models import Delivery, Notification, Order, Payment, Refund
from ..notifications import NotificationDispatcher
from ..schemas import BuyNowRequest, InitializePaymentRequest, RefundRequest, VerifyPaymentRequest
from .items import load_item

logger = logging.getLogger(__name__)

PAYMENT_HISTORY_LIMIT = 20


async def load_order(order_id: str) -> Order:
    order = await Order.get(order_id)
    if order is None:
        raise NotFound("Order not found", code="ORDER_NOT_FOUND")
    return order


async def load_payment(payment_id: str, uid: str) -> Payment:
    payment = await Payment.get(payment_id)
    if payment is None:
        raise NotFound("Payment not found", code="PAYMENT_NOT_FOUND")
    if not policies.is_payment_owner(payment, uid):
        raise Forbidden("Not authorized", code="NOT_AUTHORIZED")
    return payment


async def _commit_guarded(operations, message: str) -> None:
    try:
        await Order.batch_write(operations)
    except FailedPrecondition as exc:
        raise InvalidState(message) from exc


async def process_buy_now(
    identity: Identity, request: BuyNowRequest, dispatcher: NotificationDispatcher
) -> Dict[str, Any]:
    item = await load_item(request.item_id)
    if policies.owns_item(item, identity.uid):
        raise ValidationFailed("Cannot buy your own item", code="SELF_PURCHASE")
    if not policies.is_active(item):
        raise ValidationFailed("Item is not available", code="INACTIVE_ITEMS")

    order = Order(
        buyer_id=identity.uid,
        seller_id=item.owner_id,
        item_id=item.id,
        item_title=item.title,
        item_price=item.price,
        quantity=request.quantity,
        total_amount=item.price * request.quantity,
        delivery_address=request.delivery_address,
    )
    order.reserve_id()
    delivery = Delivery(
        order_id=order.id,
        item_id=item.id,
        buyer_id=identity.uid,
        seller_id=item.owner_id,
        status=DeliveryStatus.PENDING,
        delivery_address=request.delivery_address,
    )
    notification = Notification(
        type=NotificationType.NEW_ORDER,
        title="New Order Received!",
        message=f"Someone wants to buy your {item.title}",
        item_id=item.id,
        item_title=item.title,
        order_id=order.id,
        data={"orderId": order.id, "itemId": item.id},
    )
    operations = [(BatchOperation.CREATE, order), (BatchOperation.CREATE, delivery)]
    dispatcher.stage(operations, item.owner_id, notification)
    await Order.batch_write(operations)
    await dispatcher.deliver(item.owner_id, notification)

    logger.info(f"Order {order.id} placed by {identity.uid} for item {item.id}")
    return {"success": True, "orderId": order.id, "message": "Order placed successfully!"}


async def initialize_payment(identity: Identity, request: InitializePaymentRequest) -> Dict[str, Any]:
    order = await load_order(request.order_id)
    if not policies.is_order_buyer(order, identity.uid):
        raise Forbidden("Not authorized", code="NOT_AUTHORIZED")
    if order.status != OrderStatus.PENDING:
        raise InvalidState("Order is not awaiting payment")

    payment = Payment(
        order_id=order.id,
        buyer_id=identity.uid,
        amount=order.total_amount,
        payment_method=request.payment_method,
    )
    payment.reserve_id()
    await _commit_guarded([
        (BatchOperation.CREATE, payment),
        (BatchOperation.UPDATE_IF_UNCHANGED, order, Order.field_updates(
            status=OrderStatus.PAYMENT_PENDING, payment_id=payment.id
        )),
    ], "Order is not awaiting payment")

    logger.info(f"Payment gateway stub: initialised {payment.id} for order {order.id} ({payment.amount})")
    return {
        "success": True,
        "paymentId": payment.id,
        "amount": payment.amount,
        "status": PaymentStatus.PENDING.value,
    }


async def verify_payment(identity: Identity, request: VerifyPaymentRequest) -> Dict[str, Any]:
    payment = await load_payment(request.payment_id, identity.uid)
    if payment.status == PaymentStatus.COMPLETED and payment.transaction_id == request.transaction_id:
        return {"success": True, "message": "Payment already verified"}
    if payment.status != PaymentStatus.PENDING:
        raise InvalidState("Payment is not pending")

    order = await load_order(payment.order_id)
    delivery = await Delivery.find_one([Delivery.order_id == order.id])

    operations = [
        (BatchOperation.UPDATE_IF_UNCHANGED, payment, Payment.field_updates(
            status=PaymentStatus.COMPLETED,
            transaction_id=request.transaction_id,
            completed_at=SERVER_TIMESTAMP,
        )),
        (BatchOperation.UPDATE, order, Order.field_updates(status=OrderStatus.PAID)),
    ]
    if delivery is not None:
        operations.append(
            (BatchOperation.UPDATE, delivery, Delivery.field_updates(status=DeliveryStatus.CONFIRMED))
        )
    await _commit_guarded(operations, "Payment is not pending")

    logger.info(f"Payment {payment.id} verified with transaction {request.transaction_id}")
    return {"success": True, "message": "Payment verified successfully!"}


async def get_payment_status(identity: Identity, payment_id: str) -> Dict[str, Any]:
    payment = await load_payment(payment_id, identity.uid)
    view = payment.to_api()
    return {
        key: view.get(key)
        for key in ("status", "amount", "paymentMethod", "transactionId", "createdAt")
    }


async def process_refund(identity: Identity, request: RefundRequest) -> Dict[str, Any]:
    payment = await load_payment(request.payment_id, identity.uid)
    if payment.status != PaymentStatus.COMPLETED:
        raise InvalidState("Only completed payments can be refunded")

    refund = Refund(
        payment_id=payment.id,
        order_id=payment.order_id,
        buyer_id=identity.uid,
        amount=payment.amount,
        reason=request.reason,
    )
    refund.reserve_id()
    # The order and its delivery keep their state; refunds are settled offline.
    await _commit_guarded([
        (BatchOperation.CREATE, refund),
        (BatchOperation.UPDATE_IF_UNCHANGED, payment, Payment.field_updates(
            status=PaymentStatus.REFUND_PENDING
        )),
    ], "Only completed payments can be refunded")

    logger.info(f"Refund {refund.id} requested for payment {payment.id}")
    return {
        "success": True,
        "refundId": refund.id,
        "message": "Refund request submitted successfully!",
    }


async def get_payment_history(identity: Identity) -> List[Dict[str, Any]]:
    payments = await Payment.find_all(
        [Payment.buyer_id == identity.uid],
        order_by=Payment.created_at.desc(),
        limit=PAYMENT_HISTORY_LIMIT,
    )
    return [payment.to_api() for payment in payments]
