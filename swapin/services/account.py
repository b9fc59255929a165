"""Wishlist, cart and saved delivery locations kept under each user."""

import logging
from typing import Any, Dict, List

from ..auth import Identity
from ..errors import NotFound
from ..models import CartEntry, DeliveryLocation, Item, User, WishlistEntry
from ..schemas import CartRequest, LocationRequest
from ..subcollection_accessor import SubCollectionAccessor

logger = logging.getLogger(__name__)


def _home(identity: Identity, child_cls) -> SubCollectionAccessor:
    return User(id=identity.uid).subcollection(child_cls)


# --------------------------------------------------------------------------
# Wishlist
# --------------------------------------------------------------------------
async def add_to_wishlist(identity: Identity, item_id: str) -> Dict[str, Any]:
    await _home(identity, WishlistEntry).put(WishlistEntry(id=item_id, item_id=item_id))
    return {"success": True}


async def remove_from_wishlist(identity: Identity, item_id: str) -> Dict[str, Any]:
    await _home(identity, WishlistEntry).delete(WishlistEntry(id=item_id, item_id=item_id))
    return {"success": True}


async def get_wishlist(identity: Identity) -> List[Dict[str, Any]]:
    entries = await _home(identity, WishlistEntry).find_all()
    return [entry.to_api() for entry in entries]


# --------------------------------------------------------------------------
# Cart
# --------------------------------------------------------------------------
async def add_to_cart(identity: Identity, request: CartRequest) -> Dict[str, Any]:
    entry = CartEntry(id=request.item_id, item_id=request.item_id, quantity=request.quantity)
    await _home(identity, CartEntry).put(entry, merge=True)
    return {"success": True}


async def remove_from_cart(identity: Identity, item_id: str) -> Dict[str, Any]:
    await _home(identity, CartEntry).delete(CartEntry(id=item_id, item_id=item_id))
    return {"success": True}


async def get_cart(identity: Identity) -> List[Dict[str, Any]]:
    """Cart lines joined with the live item; lines whose item is gone are skipped."""
    cart = []
    for entry in await _home(identity, CartEntry).find_all():
        item = await Item.get(entry.item_id)
        if item is None:
            logger.debug(f"Cart of {identity.uid} references missing item {entry.item_id}")
            continue
        line = item.to_api()
        line["quantity"] = entry.quantity
        line["addedAt"] = entry.added_at
        cart.append(line)
    return cart


# --------------------------------------------------------------------------
# Delivery locations
# --------------------------------------------------------------------------
async def save_location(identity: Identity, request: LocationRequest) -> Dict[str, Any]:
    """Create a location, or merge the given fields into an existing one."""
    locations = _home(identity, DeliveryLocation)
    if request.location_id:
        existing = await locations.get(request.location_id)
        if existing is not None:
            await existing.patch(DeliveryLocation.field_updates(**request.fields()))
            return {"success": True, "locationId": existing.id}

    location = await locations.add(DeliveryLocation(id=request.location_id, **request.fields()))
    return {"success": True, "locationId": location.id}


async def get_locations(identity: Identity) -> List[Dict[str, Any]]:
    locations = await _home(identity, DeliveryLocation).find_all()
    return [location.to_api() for location in locations]


async def delete_location(identity: Identity, location_id: str) -> Dict[str, Any]:
    locations = _home(identity, DeliveryLocation)
    location = await locations.get(location_id)
    if location is None:
        raise NotFound("Location not found", code="LOCATION_NOT_FOUND")
    await locations.delete(location)
    return {"success": True}
