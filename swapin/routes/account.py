from fastapi import APIRouter, Depends

from ..auth import Identity, current_identity
from ..rate_limit import enforce_rate_limit
from ..schemas import CartRequest, ItemIdRequest, LocationIdRequest, LocationRequest
from ..services import account

router = APIRouter(tags=["account"], dependencies=[Depends(enforce_rate_limit)])


@router.post("/addToWishlist")
async def add_to_wishlist(body: ItemIdRequest, identity: Identity = Depends(current_identity)):
    return await account.add_to_wishlist(identity, body.item_id)


@router.post("/removeFromWishlist")
async def remove_from_wishlist(body: ItemIdRequest, identity: Identity = Depends(current_identity)):
    return await account.remove_from_wishlist(identity, body.item_id)


@router.get("/getWishlist")
async def get_wishlist(identity: Identity = Depends(current_identity)):
    return await account.get_wishlist(identity)


@router.post("/addToCart")
async def add_to_cart(body: CartRequest, identity: Identity = Depends(current_identity)):
    return await account.add_to_cart(identity, body)


@router.post("/removeFromCart")
async def remove_from_cart(body: ItemIdRequest, identity: Identity = Depends(current_identity)):
    return await account.remove_from_cart(identity, body.item_id)


@router.get("/getCart")
async def get_cart(identity: Identity = Depends(current_identity)):
    return await account.get_cart(identity)


@router.post("/saveLocation")
async def save_location(body: LocationRequest, identity: Identity = Depends(current_identity)):
    return await account.save_location(identity, body)


@router.get("/getLocations")
async def get_locations(identity: Identity = Depends(current_identity)):
    return await account.get_locations(identity)


@router.post("/deleteLocation")
async def delete_location(body: LocationIdRequest, identity: Identity = Depends(current_identity)):
    return await account.delete_location(identity, body.location_id)
