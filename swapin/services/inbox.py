"""Per-user notification inbox, push registration and channel preferences."""

import logging
from typing import Any, Dict

from ..auth import Identity
from ..enums import BatchOperation
from ..errors import NotFound
from ..firestore_model import MAX_BATCH_WRITES
from ..models import Notification, User
from ..notifications import NotificationDispatcher
from ..schemas import (
    EmailNotificationRequest,
    FcmTokenRequest,
    NotificationSettings,
    NotificationSettingsRequest,
    SendNotificationRequest,
    SmsNotificationRequest,
)
from .profiles import load_user

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20


async def send_notification(
    identity: Identity, request: SendNotificationRequest, dispatcher: NotificationDispatcher
) -> Dict[str, Any]:
    notification = Notification(
        type=request.type,
        title=request.title,
        message=request.message,
        item_id=request.item_id,
        item_title=request.item_title,
        priority=request.priority,
        data=request.data,
    )
    await dispatcher.send(request.user_id, notification)
    logger.info(f"Notification {notification.id} sent by {identity.uid} to {request.user_id}")
    return {"success": True, "notificationId": notification.id}


async def get_notifications(
    identity: Identity, page: int = 1, limit: int = DEFAULT_PAGE_SIZE, unread_only: bool = False
) -> Dict[str, Any]:
    inbox = User.path_for(identity.uid)
    unread = [Notification.is_read == False]  # noqa: E712
    notifications = await Notification.find_all(
        unread if unread_only else [],
        order_by=Notification.timestamp.desc(),
        limit=limit,
        offset=(page - 1) * limit,
        parent=inbox,
    )
    return {
        "notifications": [notification.to_api() for notification in notifications],
        "unreadCount": await Notification.count(unread, parent=inbox),
        "pagination": {"page": page, "limit": limit},
    }


async def mark_notification_read(identity: Identity, notification_id: str) -> Dict[str, Any]:
    notification = await Notification.get(notification_id, parent=User.path_for(identity.uid))
    if notification is None:
        raise NotFound("Notification not found", code="NOTIFICATION_NOT_FOUND")
    await notification.patch(Notification.field_updates(is_read=True))
    return {"success": True}


async def mark_all_notifications_read(identity: Identity) -> Dict[str, Any]:
    """Flip exactly the unread notifications; already read ones are not rewritten."""
    unread = await Notification.find_all(
        [Notification.is_read == False],  # noqa: E712
        parent=User.path_for(identity.uid),
    )
    changes = Notification.field_updates(is_read=True)
    operations = [(BatchOperation.UPDATE, notification, changes) for notification in unread]
    for start in range(0, len(operations), MAX_BATCH_WRITES):
        await Notification.batch_write(operations[start:start + MAX_BATCH_WRITES])
    return {"success": True, "updated": len(unread)}


async def send_email_notification(
    request: EmailNotificationRequest, dispatcher: NotificationDispatcher
) -> Dict[str, Any]:
    user = await load_user(request.user_id)
    await dispatcher.send_email(user, request.subject, request.body)
    return {"success": True}


async def send_sms_notification(
    request: SmsNotificationRequest, dispatcher: NotificationDispatcher
) -> Dict[str, Any]:
    user = await load_user(request.user_id)
    await dispatcher.send_sms(user, request.message)
    return {"success": True}


async def update_fcm_token(identity: Identity, request: FcmTokenRequest) -> Dict[str, Any]:
    user = await load_user(identity.uid)
    await user.patch(User.field_updates(fcm_token=request.fcm_token))
    return {"success": True}


async def get_notification_settings(identity: Identity) -> Dict[str, Any]:
    user = await load_user(identity.uid)
    settings = NotificationSettings.model_validate(user.settings or {})
    return settings.model_dump(by_alias=True)


async def update_notification_settings(
    identity: Identity, request: NotificationSettingsRequest
) -> Dict[str, Any]:
    user = await load_user(identity.uid)
    await user.patch(User.field_updates(settings=request.settings.model_dump(by_alias=True)))
    return {"success": True}
