"""Capability checks: pure predicates over a loaded entity and the caller uid."""

from .enums import ItemStatus, SwapStatus
from .models import Delivery, Item, Order, Payment, Swap


def owns_item(item: Item, uid: str) -> bool:
    return item.owner_id == uid


def is_active(item: Item) -> bool:
    return item.status == ItemStatus.ACTIVE


def is_swap_receiver(swap: Swap, uid: str) -> bool:
    return swap.requested_from_user_id == uid


def is_pending(swap: Swap) -> bool:
    return swap.status == SwapStatus.PENDING


def can_accept_swap(swap: Swap, uid: str) -> bool:
    return is_swap_receiver(swap, uid) and is_pending(swap)


def can_decline_swap(swap: Swap, uid: str) -> bool:
    return is_swap_receiver(swap, uid) and is_pending(swap)


def is_delivery_participant(delivery: Delivery, uid: str) -> bool:
    parties = (
        delivery.from_user_id,
        delivery.to_user_id,
        delivery.buyer_id,
        delivery.seller_id,
    )
    return uid in [party for party in parties if party]


def is_order_buyer(order: Order, uid: str) -> bool:
    return order.buyer_id == uid


def is_order_participant(order: Order, uid: str) -> bool:
    return uid in (order.buyer_id, order.seller_id)


def is_payment_owner(payment: Payment, uid: str) -> bool:
    return payment.buyer_id == uid
