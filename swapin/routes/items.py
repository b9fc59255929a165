from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..auth import Identity, current_identity
from ..notifications import NotificationDispatcher
from ..rate_limit import enforce_rate_limit
from ..schemas import ItemIdRequest, ListItemRequest, UpdateItemRequest
from ..services import items
from .deps import get_dispatcher

router = APIRouter(tags=["items"], dependencies=[Depends(enforce_rate_limit)])


@router.post("/listItem")
async def list_item(
    body: ListItemRequest,
    identity: Identity = Depends(current_identity),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    return await items.list_item(identity, body, dispatcher)


@router.post("/updateItem")
async def update_item(body: UpdateItemRequest, identity: Identity = Depends(current_identity)):
    return await items.update_item(identity, body)


@router.post("/deleteItem")
async def delete_item(body: ItemIdRequest, identity: Identity = Depends(current_identity)):
    return await items.delete_item(identity, body.item_id)


@router.get("/getItem")
async def get_item(item_id: str = Query(..., alias="id"), identity: Identity = Depends(current_identity)):
    return await items.get_item(item_id)


@router.get("/getItems")
async def get_items(
    owner_id: Optional[str] = Query(None, alias="ownerId"),
    identity: Identity = Depends(current_identity),
):
    return await items.get_items(owner_id)


@router.get("/getAvailableItems")
async def get_available_items(identity: Identity = Depends(current_identity)):
    return await items.get_available_items(identity)


@router.get("/getUserItems")
async def get_user_items(identity: Identity = Depends(current_identity)):
    return await items.get_user_items(identity)


@router.get("/searchItems")
async def search_items(
    q: Optional[str] = None,
    category: Optional[str] = None,
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    condition: Optional[str] = None,
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    verified_only: bool = Query(False, alias="verifiedOnly"),
    identity: Identity = Depends(current_identity),
):
    return await items.search_items(
        identity,
        q=q,
        category=category,
        min_price=min_price,
        max_price=max_price,
        condition=condition,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
        verified_only=verified_only,
    )


@router.post("/trackItemView")
async def track_item_view(body: ItemIdRequest, identity: Identity = Depends(current_identity)):
    return await items.track_item_view(identity, body.item_id)


@router.get("/getItemRecommendations")
async def get_item_recommendations(
    item_id: Optional[str] = Query(None, alias="itemId"),
    identity: Identity = Depends(current_identity),
):
    return await items.get_recommendations(identity, item_id)


@router.post("/likeItem")
async def like_item(body: ItemIdRequest, identity: Identity = Depends(current_identity)):
    return await items.like_item(identity, body.item_id)


@router.post("/unlikeItem")
async def unlike_item(body: ItemIdRequest, identity: Identity = Depends(current_identity)):
    return await items.unlike_item(identity, body.item_id)
