"""
User profiles and the statistics derived from them.

Statistics are not materialised: every request re-counts the underlying
collections, one query per metric.
"""

import logging
from typing import Any, Dict, List, Optional

from google.api_core.exceptions import FailedPrecondition
from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from ..auth import Identity
from ..enums import AnalyticsEventType, BatchOperation, SwapStatus
from ..errors import InvalidState, NotFound, ValidationFailed
from ..models import (
    AnalyticsEvent,
    CartEntry,
    Delivery,
    Item,
    Like,
    Order,
    Review,
    Swap,
    User,
    UserVerification,
)
from ..schemas import ProfileRequest, ReviewRequest, SettingsRequest

logger = logging.getLogger(__name__)

PROFILE_RECENT_LIMIT = 5
ACTIVITY_SWAPS = 10
ACTIVITY_OTHERS = 5
ACTIVITY_LIMIT = 10
RATINGS_LIMIT = 10

# Initialised once when a profile is created, never reset afterwards.
REPUTATION_FIELDS = (
    "rating",
    "total_ratings",
    "total_swaps",
    "is_verified",
    "verification_status",
    "trust_score",
)


async def load_user(uid: str) -> User:
    user = await User.get(uid)
    if user is None:
        raise NotFound("User not found", code="USER_NOT_FOUND")
    return user


async def create_user_profile(identity: Identity, request: ProfileRequest) -> Dict[str, Any]:
    """
    Create the caller's profile, or refresh it from the verified identity.

    Reputation fields (rating, swap count, verification, trust score) are
    only initialised on creation; later calls never reset them. A user
    document that only holds counters (a swap accepted before the profile was
    created) is completed as a new profile, keeping those counters.
    """
    profile = {
        "uid": identity.uid,
        "display_name": identity.display_name,
        "email": identity.email,
        "photo_url": identity.photo_url,
        **request.model_dump(exclude_none=True),
    }

    existing = await User.get(identity.uid)
    if existing is None:
        user = User(id=identity.uid, **profile)
        await User.batch_write([
            (BatchOperation.CREATE, user),
            (BatchOperation.SET, user, User.field_updates(touch=False, last_active=SERVER_TIMESTAMP)),
        ])
        logger.info(f"Profile created for {identity.uid}")
        return {"success": True, "user": user.to_api()}

    if existing.created_at is None:
        kept = {
            name: getattr(existing, name)
            for name in REPUTATION_FIELDS
            if name in existing.model_fields_set
        }
        user = User(id=identity.uid, **profile, **kept)
        document = user.to_document()
        for name in kept:
            document.pop(User.model_fields[name].alias or name, None)
        document["lastActive"] = SERVER_TIMESTAMP
        await User.batch_write([(BatchOperation.SET, user, document)])
        logger.info(f"Profile created for {identity.uid} over existing counters {sorted(kept)}")
        return {"success": True, "user": user.to_api()}

    changes = {key: value for key, value in profile.items() if value is not None}
    await existing.patch(User.field_updates(last_active=SERVER_TIMESTAMP, **changes))
    updated = existing.model_copy(update=changes)
    return {"success": True, "user": updated.to_api()}


async def get_user_profile(identity: Identity, user_id: Optional[str] = None) -> Dict[str, Any]:
    uid = user_id or identity.uid
    user = await load_user(uid)

    recent_items = await Item.find_all(
        [Item.owner_id == uid], order_by=Item.created_at.desc(), limit=PROFILE_RECENT_LIMIT
    )
    recent_swaps = await Swap.find_all(
        [Swap.offered_by_user_id == uid], order_by=Swap.created_at.desc(), limit=PROFILE_RECENT_LIMIT
    )
    verification = await UserVerification.find_one(
        [UserVerification.user_id == uid], order_by=UserVerification.verified_at.desc()
    )

    if uid != identity.uid:
        await AnalyticsEvent(
            type=AnalyticsEventType.PROFILE_VIEW,
            user_id=uid,
            viewer_id=identity.uid,
            viewer_name=identity.display_name,
        ).save()

    payload = user.to_api()
    payload["recentItems"] = [item.to_api() for item in recent_items]
    payload["recentSwaps"] = [swap.to_api() for swap in recent_swaps]
    payload["verification"] = verification.to_api() if verification else None
    return payload


async def update_settings(identity: Identity, request: SettingsRequest) -> Dict[str, Any]:
    user = await load_user(identity.uid)
    await user.patch(User.field_updates(settings=request.settings))
    return {"success": True}


async def count_accepted_swaps(uid: str) -> int:
    accepted = Swap.status == SwapStatus.ACCEPTED
    offered = await Swap.count([Swap.offered_by_user_id == uid, accepted])
    received = await Swap.count([Swap.requested_from_user_id == uid, accepted])
    return offered + received


async def get_user_stats(identity: Identity) -> Dict[str, Any]:
    uid = identity.uid
    user = await load_user(uid)

    reviews = await Review.find_all([Review.target_user_id == uid])
    ratings = [review.rating for review in reviews]

    return {
        "totalItems": await Item.count([Item.owner_id == uid]),
        "totalSwaps": await count_accepted_swaps(uid),
        "totalViews": await AnalyticsEvent.count([
            AnalyticsEvent.user_id == uid,
            AnalyticsEvent.type == AnalyticsEventType.PROFILE_VIEW,
        ]),
        "totalLikes": await Like.count([Like.target_user_id == uid]),
        "rating": sum(ratings) / len(ratings) if ratings else 0,
        "totalReviews": len(ratings),
        "memberSince": user.created_at or user.last_active,
        "lastActive": user.last_active,
    }


def _activity(entry_id: str, kind: str, description: str, timestamp) -> Dict[str, Any]:
    return {"id": entry_id, "type": kind, "description": description, "timestamp": timestamp}


async def get_user_activity(identity: Identity) -> List[Dict[str, Any]]:
    """Recent swaps, likes received and profile views, newest first."""
    uid = identity.uid
    newest_swaps = Swap.created_at.desc()
    swaps = await Swap.find_all(
        [Swap.offered_by_user_id == uid], order_by=newest_swaps, limit=ACTIVITY_SWAPS
    )
    swaps += await Swap.find_all(
        [Swap.requested_from_user_id == uid], order_by=newest_swaps, limit=ACTIVITY_SWAPS
    )
    likes = await Like.find_all(
        [Like.target_user_id == uid], order_by=Like.created_at.desc(), limit=ACTIVITY_OTHERS
    )
    views = await AnalyticsEvent.find_all(
        [
            AnalyticsEvent.user_id == uid,
            AnalyticsEvent.type == AnalyticsEventType.PROFILE_VIEW,
        ],
        order_by=AnalyticsEvent.timestamp.desc(),
        limit=ACTIVITY_OTHERS,
    )

    activities = [
        _activity(swap.id, "swap", f"Swap {swap.status}: {swap.item_offered_id} ↔ {swap.item_requested_id}", swap.created_at)
        for swap in swaps
    ]
    activities += [
        _activity(like.id, "like", f"Received like on {like.item_title}", like.created_at)
        for like in likes
    ]
    activities += [
        _activity(view.id, "view", f"Profile viewed by {view.viewer_name or 'Anonymous'}", view.timestamp)
        for view in views
    ]
    activities.sort(
        key=lambda entry: entry["timestamp"].timestamp() if entry["timestamp"] else 0.0,
        reverse=True,
    )
    return activities[:ACTIVITY_LIMIT]


async def get_user_ratings(identity: Identity, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
    reviews = await Review.find_all(
        [Review.target_user_id == (user_id or identity.uid)],
        order_by=Review.created_at.desc(),
        limit=RATINGS_LIMIT,
    )
    return [review.to_api() for review in reviews]


async def submit_review(identity: Identity, request: ReviewRequest) -> Dict[str, Any]:
    if request.target_user_id == identity.uid:
        raise ValidationFailed("Cannot review yourself", code="SELF_REVIEW")
    target = await load_user(request.target_user_id)

    review = Review(
        target_user_id=target.id,
        reviewer_id=identity.uid,
        rating=request.rating,
        comment=request.comment,
        swap_id=request.swap_id,
    )
    total = target.total_ratings + 1
    average = (target.rating * target.total_ratings + request.rating) / total
    try:
        await Review.batch_write([
            (BatchOperation.CREATE, review),
            (BatchOperation.UPDATE_IF_UNCHANGED, target, User.field_updates(
                rating=average, total_ratings=total
            )),
        ])
    except FailedPrecondition as exc:
        raise InvalidState("Profile changed while reviewing, try again", code="CONFLICT") from exc
    return {"success": True, "reviewId": review.id, "rating": average}


async def _count_references(uid: str) -> int:
    queries = [
        (Swap, Swap.offered_by_user_id),
        (Swap, Swap.requested_from_user_id),
        (Delivery, Delivery.from_user_id),
        (Delivery, Delivery.to_user_id),
        (Delivery, Delivery.buyer_id),
        (Delivery, Delivery.seller_id),
        (Order, Order.buyer_id),
        (Order, Order.seller_id),
    ]
    total = 0
    for model, field in queries:
        total += await model.count([field == uid])
    return total


async def delete_account(identity: Identity) -> Dict[str, Any]:
    """
    Delete the profile, the caller's items and their cart. Swaps, deliveries
    and orders that reference the caller are kept for the other party.
    """
    uid = identity.uid
    items = await Item.find_all([Item.owner_id == uid])
    cart = await CartEntry.find_all(parent=User.path_for(uid))
    deleted = await User.batch_delete([User(id=uid), *items, *cart])

    orphans = await _count_references(uid)
    logger.info(f"Account {uid} deleted ({deleted} documents); {orphans} swap/delivery/order records keep referencing it")
    return {"success": True, "message": "Account deleted successfully"}
