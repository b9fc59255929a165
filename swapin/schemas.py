"""
Request bodies, validated before any handler runs.

Validators raise ``PydanticCustomError`` whose type is the domain error code
(``INVALID_PRICE``); the error handler turns it into the response ``code``.
Fields are declared in the order their checks must be reported.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from .config import get_settings
from .enums import DeliveryMethod, ItemCondition, ItemStatus

MIN_TITLE_LENGTH = 3


def _required(value: Any, code: str, message: str) -> Any:
    if value is None or value == "":
        raise PydanticCustomError(code, message)
    return value


def _check_title(value: Optional[str]) -> str:
    if not value or len(value.strip()) < MIN_TITLE_LENGTH:
        raise PydanticCustomError("INVALID_TITLE", "Title must be at least 3 characters")
    return value


def _check_price(value: Any) -> float:
    try:
        price = float(value)
    except (TypeError, ValueError):
        price = None
    minimum = get_settings().min_item_price
    if price is None or price < minimum:
        raise PydanticCustomError(
            "INVALID_PRICE", "Price must be at least {minimum}", {"minimum": int(minimum)}
        )
    return price


def _check_quantity(value: Any) -> int:
    try:
        quantity = int(value)
    except (TypeError, ValueError):
        quantity = 0
    if quantity < 1:
        raise PydanticCustomError("INVALID_QUANTITY", "Quantity must be at least 1")
    return quantity


class RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


# ── Items ────────────────────────────────────────────────────────────────────


class ListItemRequest(RequestModel):
    title: Optional[str] = Field(default=None, validate_default=True)
    price: Optional[float] = Field(default=None, validate_default=True)
    category: Optional[str] = Field(default=None, validate_default=True)
    description: Optional[str] = None
    images: List[str] = []
    condition: ItemCondition = ItemCondition.GOOD
    tags: List[str] = []
    location: Optional[Any] = None
    verification_required: bool = False

    @field_validator("title")
    @classmethod
    def validate_title(cls, value):
        return _check_title(value)

    @field_validator("price", mode="before")
    @classmethod
    def validate_price(cls, value):
        return _check_price(value)

    @field_validator("category")
    @classmethod
    def validate_category(cls, value):
        return _required(value, "MISSING_CATEGORY", "Category is required")


class UpdateItemRequest(RequestModel):
    item_id: Optional[str] = Field(default=None, validate_default=True)
    title: Optional[str] = None
    price: Optional[float] = None
    category: Optional[str] = None
    description: Optional[str] = None
    images: Optional[List[str]] = None
    condition: Optional[ItemCondition] = None
    tags: Optional[List[str]] = None
    location: Optional[Any] = None
    status: Optional[ItemStatus] = None

    @field_validator("item_id")
    @classmethod
    def validate_item_id(cls, value):
        return _required(value, "MISSING_ITEM_ID", "itemId is required")

    @field_validator("title")
    @classmethod
    def validate_title(cls, value):
        return None if value is None else _check_title(value)

    @field_validator("price", mode="before")
    @classmethod
    def validate_price(cls, value):
        return None if value is None else _check_price(value)

    @field_validator("category")
    @classmethod
    def validate_category(cls, value):
        if value is not None and not value:
            raise PydanticCustomError("MISSING_CATEGORY", "Category is required")
        return value

    @field_validator("status")
    @classmethod
    def validate_status(cls, value):
        # Only the swap workflow may mark an item as swapped.
        if value == ItemStatus.SWAPPED:
            raise PydanticCustomError("INVALID_STATUS", "Items become swapped only through a swap")
        return value

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"item_id"}, exclude_none=True)


class ItemIdRequest(RequestModel):
    item_id: Optional[str] = Field(default=None, validate_default=True)

    @field_validator("item_id")
    @classmethod
    def validate_item_id(cls, value):
        return _required(value, "MISSING_ITEM_ID", "itemId is required")


class CartRequest(ItemIdRequest):
    quantity: int = 1

    @field_validator("quantity", mode="before")
    @classmethod
    def validate_quantity(cls, value):
        return _check_quantity(value)


# ── Swaps ────────────────────────────────────────────────────────────────────


class ProposeSwapRequest(RequestModel):
    item_offered_id: Optional[str] = Field(default=None, validate_default=True)
    item_requested_id: Optional[str] = Field(default=None, validate_default=True)
    message: str = ""

    @field_validator("item_offered_id", "item_requested_id")
    @classmethod
    def validate_ids(cls, value):
        return _required(value, "MISSING_ITEMS", "Missing item IDs")


class SwapIdRequest(RequestModel):
    swap_id: Optional[str] = Field(default=None, validate_default=True)

    @field_validator("swap_id")
    @classmethod
    def validate_swap_id(cls, value):
        return _required(value, "MISSING_SWAP_ID", "swapId is required")


# ── Profile ──────────────────────────────────────────────────────────────────


class ProfileRequest(RequestModel):
    phone_number: Optional[str] = None
    address: Optional[Any] = None
    preferences: Optional[Dict[str, Any]] = None
    fcm_token: Optional[str] = None
    verification_documents: Optional[List[Any]] = None


class SettingsRequest(RequestModel):
    settings: Dict[str, Any] = {}


class NotificationSettings(RequestModel):
    email_notifications: bool = True
    push_notifications: bool = True
    sms_notifications: bool = False
    exchange_offers: bool = True
    likes: bool = True
    messages: bool = True


class NotificationSettingsRequest(RequestModel):
    settings: NotificationSettings


class FcmTokenRequest(RequestModel):
    fcm_token: Optional[str] = Field(default=None, validate_default=True)

    @field_validator("fcm_token")
    @classmethod
    def validate_token(cls, value):
        return _required(value, "MISSING_FCM_TOKEN", "fcmToken is required")


class ReviewRequest(RequestModel):
    target_user_id: Optional[str] = Field(default=None, validate_default=True)
    rating: int = Field(default=0, validate_default=True)
    comment: Optional[str] = None
    swap_id: Optional[str] = None

    @field_validator("target_user_id")
    @classmethod
    def validate_target(cls, value):
        return _required(value, "MISSING_USER_ID", "targetUserId is required")

    @field_validator("rating", mode="before")
    @classmethod
    def validate_rating(cls, value):
        try:
            rating = int(value)
        except (TypeError, ValueError):
            rating = 0
        if not 1 <= rating <= 5:
            raise PydanticCustomError("INVALID_RATING", "Rating must be between 1 and 5")
        return rating


# ── Notifications ────────────────────────────────────────────────────────────


class SendNotificationRequest(RequestModel):
    user_id: Optional[str] = Field(default=None, validate_default=True)
    type: str = "custom"
    title: str = ""
    message: str = ""
    item_id: Optional[str] = None
    item_title: Optional[str] = None
    priority: str = "medium"
    data: Optional[Dict[str, Any]] = None

    @field_validator("user_id")
    @classmethod
    def validate_user_id(cls, value):
        return _required(value, "MISSING_USER_ID", "userId is required")


class EmailNotificationRequest(RequestModel):
    user_id: Optional[str] = Field(default=None, validate_default=True)
    subject: str = ""
    body: str = ""

    @field_validator("user_id")
    @classmethod
    def validate_user_id(cls, value):
        return _required(value, "MISSING_USER_ID", "userId is required")


class SmsNotificationRequest(RequestModel):
    user_id: Optional[str] = Field(default=None, validate_default=True)
    message: str = ""

    @field_validator("user_id")
    @classmethod
    def validate_user_id(cls, value):
        return _required(value, "MISSING_USER_ID", "userId is required")


class NotificationIdRequest(RequestModel):
    notification_id: Optional[str] = Field(default=None, validate_default=True)

    @field_validator("notification_id")
    @classmethod
    def validate_notification_id(cls, value):
        return _required(value, "MISSING_NOTIFICATION_ID", "notificationId is required")


# ── Delivery locations ───────────────────────────────────────────────────────


class LocationRequest(RequestModel):
    location_id: Optional[str] = None
    label: Optional[str] = None
    recipient_name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    is_default: Optional[bool] = None

    def fields(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"location_id"}, exclude_none=True)


class LocationIdRequest(RequestModel):
    location_id: Optional[str] = Field(default=None, validate_default=True)

    @field_validator("location_id")
    @classmethod
    def validate_location_id(cls, value):
        return _required(value, "MISSING_LOCATION_ID", "locationId is required")


# ── Orders, payments, deliveries ─────────────────────────────────────────────


class BuyNowRequest(ItemIdRequest):
    quantity: int = 1
    delivery_address: Optional[Any] = None

    @field_validator("quantity", mode="before")
    @classmethod
    def validate_quantity(cls, value):
        return _check_quantity(value)


class InitializePaymentRequest(RequestModel):
    order_id: Optional[str] = Field(default=None, validate_default=True)
    payment_method: Optional[str] = None

    @field_validator("order_id")
    @classmethod
    def validate_order_id(cls, value):
        return _required(value, "MISSING_ORDER_ID", "orderId is required")


class VerifyPaymentRequest(RequestModel):
    payment_id: Optional[str] = Field(default=None, validate_default=True)
    transaction_id: Optional[str] = Field(default=None, validate_default=True)

    @field_validator("payment_id")
    @classmethod
    def validate_payment_id(cls, value):
        return _required(value, "MISSING_PAYMENT_ID", "paymentId is required")

    @field_validator("transaction_id")
    @classmethod
    def validate_transaction_id(cls, value):
        return _required(value, "MISSING_TRANSACTION_ID", "transactionId is required")


class RefundRequest(RequestModel):
    payment_id: Optional[str] = Field(default=None, validate_default=True)
    reason: Optional[str] = None

    @field_validator("payment_id")
    @classmethod
    def validate_payment_id(cls, value):
        return _required(value, "MISSING_PAYMENT_ID", "paymentId is required")


class CreateDeliveryRequest(RequestModel):
    order_id: Optional[str] = Field(default=None, validate_default=True)
    delivery_address: Optional[Any] = None
    delivery_method: DeliveryMethod = DeliveryMethod.STANDARD

    @field_validator("order_id")
    @classmethod
    def validate_order_id(cls, value):
        return _required(value, "MISSING_ORDER_ID", "orderId is required")


class DeliveryIdRequest(RequestModel):
    delivery_id: Optional[str] = Field(default=None, validate_default=True)

    @field_validator("delivery_id")
    @classmethod
    def validate_delivery_id(cls, value):
        return _required(value, "MISSING_DELIVERY_ID", "deliveryId is required")


class UpdateDeliveryStatusRequest(DeliveryIdRequest):
    status: Optional[str] = Field(default=None, validate_default=True)
    tracking_number: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, value):
        return _required(value, "MISSING_STATUS", "status is required")


class CancelDeliveryRequest(DeliveryIdRequest):
    reason: Optional[str] = None


class UpdateDeliveryAddressRequest(DeliveryIdRequest):
    address: Optional[Any] = None


class DeliveryCostRequest(RequestModel):
    from_address: Optional[Any] = None
    to_address: Optional[Any] = None
    item_weight: float = 0
    delivery_method: DeliveryMethod = DeliveryMethod.STANDARD

    @field_validator("item_weight")
    @classmethod
    def validate_weight(cls, value):
        if value < 0:
            raise PydanticCustomError("INVALID_WEIGHT", "itemWeight cannot be negative")
        return value
