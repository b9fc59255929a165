from enum import Enum


class BatchOperation(str, Enum):
    CREATE = "create"
    SET = "set"
    UPDATE = "update"
    UPDATE_IF_UNCHANGED = "update_if_unchanged"
    DELETE = "delete"


class FirestoreOperators(str, Enum):
    LT = "<"
    LTE = "<="
    EQ = "=="
    NE = "!="
    GT = ">"
    GTE = ">="
    IN = "in"
    NOT_IN = "not-in"
    ARRAY_CONTAINS = "array_contains"
    ARRAY_CONTAINS_ANY = "array_contains_any"


class OrderByDirection(str, Enum):
    DESCENDING = "DESCENDING"
    ASCENDING = "ASCENDING"

    def __str__(self):
        return self.value


# --------------------------------------------------------------------------
# Marketplace states
# --------------------------------------------------------------------------
class ItemStatus(str, Enum):
    ACTIVE = "active"
    SWAPPED = "swapped"
    CANCELLED = "cancelled"


class ItemCondition(str, Enum):
    NEW = "new"
    LIKE_NEW = "like-new"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class SwapStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PAYMENT_PENDING = "payment_pending"
    PAID = "paid"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    REFUND_PENDING = "refund_pending"


class DeliveryStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    DELIVERED = "delivered"


class NotificationType(str, Enum):
    ITEM_LISTED = "item_listed"
    SWAP_PROPOSED = "swap_proposed"
    SWAP_ACCEPTED = "swap_accepted"
    SWAP_DECLINED = "swap_declined"
    NEW_ORDER = "new_order"
    CUSTOM = "custom"


class AnalyticsEventType(str, Enum):
    ITEM_VIEW = "item_view"
    PROFILE_VIEW = "profile_view"
    SWAP_PROPOSED = "swap_proposed"


class DeliveryMethod(str, Enum):
    STANDARD = "standard"
    PREMIUM = "premium"
    EXPRESS = "express"
