import logging
import math
from typing import Any, Dict, List, Optional

from google.cloud.firestore_v1 import Increment

from .. import policies
from ..auth import Identity
from ..enums import AnalyticsEventType, BatchOperation, ItemStatus, NotificationType, OrderByDirection
from ..errors import Forbidden, NotFound
from ..models import AnalyticsEvent, Item, Like, Notification, RecentView, User
from ..notifications import NotificationDispatcher
from ..schemas import ListItemRequest, UpdateItemRequest
from ..scoring import rank_by_popularity, text_search

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {"createdAt", "updatedAt", "price", "views", "likes", "offers", "title"}
RECENT_VIEWS_CONSIDERED = 10
MAX_PREFERRED_CATEGORIES = 5
RECOMMENDATION_CANDIDATES = 20
MAX_RECOMMENDATIONS = 10


async def load_item(item_id: str) -> Item:
    item = await Item.get(item_id)
    if item is None:
        raise NotFound("Item not found", code="ITEM_NOT_FOUND")
    return item


async def load_owned_item(item_id: str, uid: str) -> Item:
    item = await load_item(item_id)
    if not policies.owns_item(item, uid):
        raise Forbidden()
    return item


async def list_item(
    identity: Identity, request: ListItemRequest, dispatcher: NotificationDispatcher
) -> Dict[str, Any]:
    item = Item(
        owner_id=identity.uid,
        title=request.title,
        description=request.description,
        images=request.images,
        category=request.category,
        price=request.price,
        condition=request.condition,
        tags=request.tags,
        location=request.location,
        verification_required=request.verification_required,
    )
    item.reserve_id()
    operations = [(BatchOperation.CREATE, item)]
    notification = Notification(
        type=NotificationType.ITEM_LISTED,
        title="Item Listed Successfully",
        message=f'Your item "{item.title}" has been listed for ₹{item.price:,.0f}',
        item_id=item.id,
        item_title=item.title,
    )
    dispatcher.stage(operations, identity.uid, notification)
    await Item.batch_write(operations)
    await dispatcher.deliver(identity.uid, notification)
    logger.info(f"Item {item.id} listed by {identity.uid}")
    return item.to_api()


async def update_item(identity: Identity, request: UpdateItemRequest) -> Dict[str, Any]:
    item = await load_owned_item(request.item_id, identity.uid)
    changes = request.changes()
    if changes:
        await item.patch(Item.field_updates(**changes))
    return {"success": True}


async def delete_item(identity: Identity, item_id: str) -> Dict[str, Any]:
    item = await load_owned_item(item_id, identity.uid)
    await item.delete()
    return {"success": True}


async def get_item(item_id: str) -> Dict[str, Any]:
    item = await load_item(item_id)
    payload = item.to_api()
    owner = await User.get(item.owner_id)
    if owner is not None:
        payload["ownerName"] = owner.display_name or "Anonymous"
        payload["ownerPhoto"] = owner.photo_url
    return payload


async def get_items(owner_id: Optional[str] = None) -> List[Dict[str, Any]]:
    filters = [Item.owner_id == owner_id] if owner_id else []
    return [item.to_api() for item in await Item.find_all(filters)]


async def get_available_items(identity: Identity) -> List[Dict[str, Any]]:
    items = await Item.find_all([Item.status == ItemStatus.ACTIVE])
    return [item.to_api() for item in items if not policies.owns_item(item, identity.uid)]


async def get_user_items(identity: Identity) -> List[Dict[str, Any]]:
    items = await Item.find_all([
        Item.owner_id == identity.uid,
        Item.status == ItemStatus.ACTIVE,
    ])
    return [item.to_api() for item in items]


async def search_items(
    identity: Identity,
    q: Optional[str] = None,
    category: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    condition: Optional[str] = None,
    sort_by: str = "createdAt",
    sort_order: str = "desc",
    page: int = 1,
    limit: int = 20,
    verified_only: bool = False,
) -> Dict[str, Any]:
    """
    Store-side filters, then keyword relevance and popularity ranking, then
    pagination. ``total`` counts what the caller can actually page through.
    """
    filters = [Item.status == ItemStatus.ACTIVE]
    if category:
        filters.append(Item.category == category)
    if min_price is not None:
        filters.append(Item.price >= min_price)
    if max_price is not None:
        filters.append(Item.price <= max_price)
    if condition:
        filters.append(Item.condition == condition)
    if verified_only:
        filters.append(Item.is_verified == True)  # noqa: E712

    order_by = None
    if not q and sort_by in SORTABLE_FIELDS:
        direction = OrderByDirection.ASCENDING if sort_order == "asc" else OrderByDirection.DESCENDING
        order_by = (sort_by, direction)

    items = await Item.find_all(filters, order_by=order_by)
    if q:
        items = text_search(items, q)
    items = [item for item in items if not policies.owns_item(item, identity.uid)]

    total = len(items)
    start = (page - 1) * limit
    return {
        "items": [item.to_api() for item in items[start:start + limit]],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit) if limit else 0,
        },
    }


async def track_item_view(identity: Identity, item_id: str) -> Dict[str, Any]:
    item = await load_item(item_id)
    view = RecentView(id=item.id, item_id=item.id, category=item.category)
    view.with_parent(User.path_for(identity.uid))
    await Item.batch_write([
        (BatchOperation.UPDATE, item, Item.field_updates(touch=False, views=Increment(1))),
        (BatchOperation.CREATE, AnalyticsEvent(
            type=AnalyticsEventType.ITEM_VIEW, item_id=item.id, user_id=identity.uid
        )),
        (BatchOperation.SET, view),
    ])
    return {"success": True}


async def get_recommendations(identity: Identity, item_id: Optional[str] = None) -> List[Dict[str, Any]]:
    """Popular active items from the caller's recently viewed categories."""
    try:
        recent = await RecentView.find_all(
            parent=User.path_for(identity.uid),
            order_by=RecentView.timestamp.desc(),
            limit=RECENT_VIEWS_CONSIDERED,
        )
        categories = []
        for view in recent:
            if view.category and view.category not in categories:
                categories.append(view.category)

        filters = [Item.status == ItemStatus.ACTIVE]
        if categories:
            filters.append(Item.category.in_(categories[:MAX_PREFERRED_CATEGORIES]))
        candidates = await Item.find_all(filters, limit=RECOMMENDATION_CANDIDATES)
    except Exception:
        logger.exception(f"Error getting recommendations for {identity.uid}")
        return []

    candidates = [
        item for item in candidates
        if not policies.owns_item(item, identity.uid) and item.id != item_id
    ]
    return [item.to_api() for item in rank_by_popularity(candidates)[:MAX_RECOMMENDATIONS]]


async def like_item(identity: Identity, item_id: str) -> Dict[str, Any]:
    item = await load_item(item_id)
    like_id = f"{identity.uid}_{item.id}"
    if await Like.exists(like_id):
        return {"success": True, "liked": True}
    like = Like(
        id=like_id,
        user_id=identity.uid,
        item_id=item.id,
        target_user_id=item.owner_id,
        item_title=item.title,
    )
    await Item.batch_write([
        (BatchOperation.CREATE, like),
        (BatchOperation.UPDATE, item, Item.field_updates(touch=False, likes=Increment(1))),
    ])
    return {"success": True, "liked": True}


async def unlike_item(identity: Identity, item_id: str) -> Dict[str, Any]:
    item = await load_item(item_id)
    like = await Like.get(f"{identity.uid}_{item.id}")
    if like is None:
        return {"success": True, "liked": False}
    await Item.batch_write([
        (BatchOperation.DELETE, like),
        (BatchOperation.UPDATE, item, Item.field_updates(touch=False, likes=Increment(-1))),
    ])
    return {"success": True, "liked": False}
