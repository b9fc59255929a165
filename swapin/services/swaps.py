"""
Swap proposals and their ``pending -> accepted | declined`` transitions.

Every transition is a single atomic batch guarded by the ``update_time`` the
swap (and, on accept, both items) was read with, so two racing transitions
cannot both commit. When the guard trips, the swap is read again: if it is no
longer pending the caller gets ``INVALID_STATUS``, otherwise the transition is
rebuilt from fresh reads and committed again.
"""

import logging
from typing import Any, Callable, Dict, List

from google.api_core.exceptions import FailedPrecondition
from google.cloud.firestore_v1 import SERVER_TIMESTAMP, Increment

from .. import policies
from ..auth import Identity
from ..enums import (
    AnalyticsEventType,
    BatchOperation,
    DeliveryStatus,
    ItemStatus,
    NotificationType,
    SwapStatus,
)
from ..errors import Forbidden, InvalidState, NotFound, ValidationFailed
from ..models import AnalyticsEvent, Delivery, Item, Notification, Swap, User
from ..notifications import NotificationDispatcher
from ..schemas import ProposeSwapRequest
from .items import load_item

logger = logging.getLogger(__name__)

# Commits attempted before a transition that keeps conflicting gives up.
TRANSITION_ATTEMPTS = 5


async def load_swap(swap_id: str) -> Swap:
    swap = await Swap.get(swap_id)
    if swap is None:
        raise NotFound("Swap not found", code="SWAP_NOT_FOUND")
    return swap


async def _load_for_transition(
    swap_id: str, uid: str, allowed: Callable[[Swap, str], bool]
) -> Swap:
    swap = await load_swap(swap_id)
    if not allowed(swap, uid):
        if not policies.is_swap_receiver(swap, uid):
            raise Forbidden(code="NOT_AUTHORIZED")
        raise InvalidState("Swap is not pending")
    return swap


async def propose_swap(
    identity: Identity, request: ProposeSwapRequest, dispatcher: NotificationDispatcher
) -> Dict[str, Any]:
    offered = await load_item(request.item_offered_id)
    requested = await load_item(request.item_requested_id)

    if not policies.owns_item(offered, identity.uid):
        raise Forbidden("You don't own the offered item", code="NOT_OWNER")
    if policies.owns_item(requested, identity.uid):
        raise ValidationFailed("Cannot swap with yourself", code="SELF_SWAP")
    if not (policies.is_active(offered) and policies.is_active(requested)):
        raise ValidationFailed("Items must be active", code="INACTIVE_ITEMS")

    swap = Swap(
        item_offered_id=offered.id,
        item_requested_id=requested.id,
        offered_by_user_id=identity.uid,
        requested_from_user_id=requested.owner_id,
        net_amount=requested.price - offered.price,
        message=request.message,
    )
    swap.reserve_id()

    notification = Notification(
        type=NotificationType.SWAP_PROPOSED,
        title="New Swap Offer",
        message=f'Someone wants to swap "{offered.title}" for your "{requested.title}"',
        item_id=requested.id,
        item_title=requested.title,
        swap_id=swap.id,
    )
    operations = [
        (BatchOperation.CREATE, swap),
        (BatchOperation.UPDATE, requested, Item.field_updates(touch=False, offers=Increment(1))),
        (BatchOperation.CREATE, AnalyticsEvent(
            type=AnalyticsEventType.SWAP_PROPOSED,
            swap_id=swap.id,
            offered_by_user_id=identity.uid,
            requested_from_user_id=requested.owner_id,
        )),
    ]
    dispatcher.stage(operations, requested.owner_id, notification)
    await Swap.batch_write(operations)
    await dispatcher.deliver(requested.owner_id, notification)

    logger.info(f"Swap {swap.id} proposed by {identity.uid} to {requested.owner_id}")
    return swap.to_api()


def _accept_operations(swap: Swap, offered: Item, requested: Item):
    offerer, receiver = swap.offered_by_user_id, swap.requested_from_user_id
    operations = [
        (BatchOperation.UPDATE_IF_UNCHANGED, swap, Swap.field_updates(
            status=SwapStatus.ACCEPTED, accepted_at=SERVER_TIMESTAMP
        )),
        (BatchOperation.UPDATE_IF_UNCHANGED, offered, Item.field_updates(status=ItemStatus.SWAPPED)),
        (BatchOperation.UPDATE_IF_UNCHANGED, requested, Item.field_updates(status=ItemStatus.SWAPPED)),
        (BatchOperation.CREATE, Delivery(
            swap_id=swap.id,
            item_id=offered.id,
            from_user_id=offerer,
            to_user_id=receiver,
            status=DeliveryStatus.PENDING,
        )),
        (BatchOperation.CREATE, Delivery(
            swap_id=swap.id,
            item_id=requested.id,
            from_user_id=receiver,
            to_user_id=offerer,
            status=DeliveryStatus.PENDING,
        )),
    ]
    for uid in (offerer, receiver):
        operations.append(
            (BatchOperation.SET, User(id=uid), User.field_updates(touch=False, total_swaps=Increment(1)))
        )
    return operations


def _accept_notices(swap: Swap, offered: Item, requested: Item) -> Dict[str, Notification]:
    return {
        swap.offered_by_user_id: Notification(
            type=NotificationType.SWAP_ACCEPTED,
            title="Swap Accepted!",
            message="Your swap offer has been accepted. Proceed with delivery.",
            item_id=offered.id,
            swap_id=swap.id,
        ),
        swap.requested_from_user_id: Notification(
            type=NotificationType.SWAP_ACCEPTED,
            title="Swap Accepted!",
            message="You accepted the swap offer. Proceed with delivery.",
            item_id=requested.id,
            swap_id=swap.id,
        ),
    }


async def accept_swap(
    identity: Identity, swap_id: str, dispatcher: NotificationDispatcher
) -> Dict[str, Any]:
    """
    Accept a pending swap: both items leave the market and a delivery is
    opened for each of them, all in one guarded batch.

    A concurrent write to the swap or to either item (a view, a like, another
    offer) trips the guard; the swap and items are then read again, so the
    status and activity checks always run against what gets committed.
    """
    for attempt in range(1, TRANSITION_ATTEMPTS + 1):
        swap = await _load_for_transition(swap_id, identity.uid, policies.can_accept_swap)
        offered = await load_item(swap.item_offered_id)
        requested = await load_item(swap.item_requested_id)
        if not (policies.is_active(offered) and policies.is_active(requested)):
            raise ValidationFailed("Items must be active", code="INACTIVE_ITEMS")

        operations = _accept_operations(swap, offered, requested)
        notices = _accept_notices(swap, offered, requested)
        for uid, notification in notices.items():
            dispatcher.stage(operations, uid, notification)

        try:
            await Swap.batch_write(operations)
        except FailedPrecondition as exc:
            logger.warning(f"Swap {swap.id} changed while being accepted (attempt {attempt}): {exc}")
            continue

        for uid, notification in notices.items():
            await dispatcher.deliver(uid, notification)
        logger.info(f"Swap {swap.id} accepted by {identity.uid}")
        return {"success": True}

    raise InvalidState("Swap is being changed concurrently, try again")


async def decline_swap(
    identity: Identity, swap_id: str, dispatcher: NotificationDispatcher
) -> Dict[str, Any]:
    for attempt in range(1, TRANSITION_ATTEMPTS + 1):
        swap = await _load_for_transition(swap_id, identity.uid, policies.can_decline_swap)

        notification = Notification(
            type=NotificationType.SWAP_DECLINED,
            title="Swap Declined",
            message="Your swap offer was declined.",
            item_id=swap.item_offered_id,
            swap_id=swap.id,
        )
        operations = [
            (BatchOperation.UPDATE_IF_UNCHANGED, swap, Swap.field_updates(
                status=SwapStatus.DECLINED, declined_at=SERVER_TIMESTAMP
            )),
        ]
        dispatcher.stage(operations, swap.offered_by_user_id, notification)

        try:
            await Swap.batch_write(operations)
        except FailedPrecondition as exc:
            logger.warning(f"Swap {swap.id} changed while being declined (attempt {attempt}): {exc}")
            continue

        await dispatcher.deliver(swap.offered_by_user_id, notification)
        return {"success": True}

    raise InvalidState("Swap is being changed concurrently, try again")


def _created_key(swap: Swap) -> float:
    return swap.created_at.timestamp() if swap.created_at else 0.0


async def get_user_swaps(identity: Identity) -> List[Dict[str, Any]]:
    """Swaps I offered plus swaps offered to me, newest first."""
    offered = await Swap.find_all([Swap.offered_by_user_id == identity.uid])
    received = await Swap.find_all([Swap.requested_from_user_id == identity.uid])
    swaps = sorted(offered + received, key=_created_key, reverse=True)
    return [swap.to_api() for swap in swaps]
