"""
Document models for the marketplace collections.

Top-level collections: users, items, swaps, deliveries, orders, payments,
refunds, analytics, reviews, likes, userVerifications, rateLimits.
Per-user subcollections: notifications, wishlist, cart, deliveryLocations,
recentViews.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from .enums import (
    ItemStatus,
    OrderStatus,
    PaymentStatus,
    SwapStatus,
)
from .firestore_model import BaseFirestoreModel


class TimestampedModel(BaseFirestoreModel):
    """Documents carrying server-set ``createdAt`` / ``updatedAt``."""

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ── Top-level collections ─────────────────────────────────────────────────────


class User(TimestampedModel):
    class Settings:
        name = "users"
        timestamps = True

    uid: Optional[str] = None
    display_name: Optional[str] = None
    email: Optional[str] = None
    photo_url: Optional[str] = Field(default=None, alias="photoURL")
    phone_number: Optional[str] = None
    address: Optional[Any] = None
    preferences: Dict[str, Any] = {}
    fcm_token: Optional[str] = None
    verification_documents: List[Any] = []
    rating: float = 0
    total_ratings: int = 0
    total_swaps: int = 0
    is_verified: bool = False
    verification_status: str = "pending"
    # Static reputation value; nothing recomputes it.
    trust_score: int = 100
    settings: Optional[Dict[str, Any]] = None
    last_active: Optional[datetime] = None


class Item(TimestampedModel):
    class Settings:
        name = "items"
        timestamps = True

    owner_id: str
    title: str
    description: Optional[str] = None
    images: List[str] = []
    category: str
    price: float
    condition: str = "good"
    tags: List[str] = []
    location: Optional[Any] = None
    verification_required: bool = False
    is_verified: bool = False
    verification_status: str = "pending"
    status: ItemStatus = ItemStatus.ACTIVE
    views: int = 0
    likes: int = 0
    offers: int = 0


class Swap(TimestampedModel):
    class Settings:
        name = "swaps"
        timestamps = True

    item_offered_id: str
    item_requested_id: str
    offered_by_user_id: str
    requested_from_user_id: str
    net_amount: float
    message: str = ""
    status: SwapStatus = SwapStatus.PENDING
    accepted_at: Optional[datetime] = None
    declined_at: Optional[datetime] = None


class Delivery(TimestampedModel):
    """
    Physical hand-off of one item. Swap deliveries carry ``from_user_id`` /
    ``to_user_id``; order deliveries carry ``buyer_id`` / ``seller_id``.
    """

    class Settings:
        name = "deliveries"
        timestamps = True

    swap_id: Optional[str] = None
    order_id: Optional[str] = None
    item_id: Optional[str] = None
    from_user_id: Optional[str] = None
    to_user_id: Optional[str] = None
    buyer_id: Optional[str] = None
    seller_id: Optional[str] = None
    # Free text: pending, confirmed, cancelled, delivered, or a carrier status.
    status: str = "pending"
    address: Optional[Any] = None
    delivery_address: Optional[Any] = None
    delivery_method: Optional[str] = None
    tracking_number: Optional[str] = None
    estimated_delivery: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None


class Order(TimestampedModel):
    class Settings:
        name = "orders"
        timestamps = True

    buyer_id: str
    seller_id: str
    item_id: str
    item_title: Optional[str] = None
    item_price: float
    quantity: int = 1
    total_amount: float
    status: OrderStatus = OrderStatus.PENDING
    delivery_address: Optional[Any] = None
    payment_id: Optional[str] = None


class Payment(TimestampedModel):
    class Settings:
        name = "payments"
        timestamps = True

    order_id: str
    buyer_id: str
    amount: float
    payment_method: Optional[str] = None
    status: PaymentStatus = PaymentStatus.PENDING
    transaction_id: Optional[str] = None
    completed_at: Optional[datetime] = None


class Refund(TimestampedModel):
    class Settings:
        name = "refunds"
        timestamps = True

    payment_id: str
    order_id: str
    buyer_id: str
    amount: float
    reason: Optional[str] = None
    status: str = "pending"


class AnalyticsEvent(BaseFirestoreModel):
    """Append-only event log entry."""

    class Settings:
        name = "analytics"
        stamp = "timestamp"

    type: str
    item_id: Optional[str] = None
    user_id: Optional[str] = None
    viewer_id: Optional[str] = None
    viewer_name: Optional[str] = None
    swap_id: Optional[str] = None
    offered_by_user_id: Optional[str] = None
    requested_from_user_id: Optional[str] = None
    timestamp: Optional[datetime] = None


class Review(TimestampedModel):
    class Settings:
        name = "reviews"
        timestamps = True

    target_user_id: str
    reviewer_id: str
    rating: int
    comment: Optional[str] = None
    swap_id: Optional[str] = None


class Like(TimestampedModel):
    class Settings:
        name = "likes"
        timestamps = True

    user_id: str
    item_id: str
    target_user_id: str
    item_title: Optional[str] = None


class UserVerification(BaseFirestoreModel):
    class Settings:
        name = "userVerifications"

    user_id: str
    status: str = "pending"
    document_type: Optional[str] = None
    verified_at: Optional[datetime] = None


class RateLimitWindow(BaseFirestoreModel):
    class Settings:
        name = "rateLimits"

    hits: List[float] = []


# ── Per-user subcollections ──────────────────────────────────────────────────


class Notification(BaseFirestoreModel):
    class Settings:
        name = "notifications"
        parent = User
        stamp = "timestamp"

    type: str
    title: str
    message: str
    item_id: Optional[str] = None
    item_title: Optional[str] = None
    swap_id: Optional[str] = None
    order_id: Optional[str] = None
    priority: str = "medium"
    data: Optional[Dict[str, Any]] = None
    is_read: bool = False
    timestamp: Optional[datetime] = None


class RecentView(BaseFirestoreModel):
    """One marker per viewed item; repeat views overwrite the timestamp."""

    class Settings:
        name = "recentViews"
        parent = User
        stamp = "timestamp"

    item_id: str
    category: Optional[str] = None
    timestamp: Optional[datetime] = None


class WishlistEntry(BaseFirestoreModel):
    class Settings:
        name = "wishlist"
        parent = User
        stamp = "addedAt"

    item_id: str
    added_at: Optional[datetime] = None


class CartEntry(BaseFirestoreModel):
    class Settings:
        name = "cart"
        parent = User
        stamp = "addedAt"

    item_id: str
    quantity: int = 1
    added_at: Optional[datetime] = None


class DeliveryLocation(TimestampedModel):
    class Settings:
        name = "deliveryLocations"
        parent = User
        timestamps = True

    label: Optional[str] = None
    recipient_name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    is_default: bool = False


ALL_MODELS = [
    User,
    Item,
    Swap,
    Delivery,
    Order,
    Payment,
    Refund,
    AnalyticsEvent,
    Review,
    Like,
    UserVerification,
    RateLimitWindow,
    Notification,
    RecentView,
    WishlistEntry,
    CartEntry,
    DeliveryLocation,
]
