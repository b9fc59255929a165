from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..auth import Identity, current_identity
from ..rate_limit import enforce_rate_limit
from ..schemas import ProfileRequest, ReviewRequest, SettingsRequest
from ..services import profiles

router = APIRouter(tags=["profiles"], dependencies=[Depends(enforce_rate_limit)])


@router.post("/createUserProfile")
async def create_user_profile(body: ProfileRequest, identity: Identity = Depends(current_identity)):
    return await profiles.create_user_profile(identity, body)


@router.get("/getUserProfile")
async def get_user_profile(
    user_id: Optional[str] = Query(None, alias="userId"),
    identity: Identity = Depends(current_identity),
):
    return await profiles.get_user_profile(identity, user_id)


@router.post("/updateSettings")
async def update_settings(body: SettingsRequest, identity: Identity = Depends(current_identity)):
    return await profiles.update_settings(identity, body)


@router.get("/getUserStats")
async def get_user_stats(identity: Identity = Depends(current_identity)):
    return await profiles.get_user_stats(identity)


@router.get("/getUserActivity")
async def get_user_activity(identity: Identity = Depends(current_identity)):
    return await profiles.get_user_activity(identity)


@router.get("/getUserRatings")
async def get_user_ratings(
    user_id: Optional[str] = Query(None, alias="userId"),
    identity: Identity = Depends(current_identity),
):
    return await profiles.get_user_ratings(identity, user_id)


@router.post("/submitReview")
async def submit_review(body: ReviewRequest, identity: Identity = Depends(current_identity)):
    return await profiles.submit_review(identity, body)


@router.post("/deleteAccount")
async def delete_account(identity: Identity = Depends(current_identity)):
    return await profiles.delete_account(identity)
