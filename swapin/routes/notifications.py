from fastapi import APIRouter, Depends, Query

from ..auth import Identity, current_identity
from ..notifications import NotificationDispatcher
from ..rate_limit import enforce_rate_limit
from ..schemas import (
    EmailNotificationRequest,
    FcmTokenRequest,
    NotificationIdRequest,
    NotificationSettingsRequest,
    SendNotificationRequest,
    SmsNotificationRequest,
)
from ..services import inbox
from .deps import get_dispatcher

router = APIRouter(tags=["notifications"], dependencies=[Depends(enforce_rate_limit)])


@router.post("/sendNotification")
async def send_notification(
    body: SendNotificationRequest,
    identity: Identity = Depends(current_identity),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    return await inbox.send_notification(identity, body, dispatcher)


@router.get("/getNotifications")
async def get_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    unread_only: bool = Query(False, alias="unreadOnly"),
    identity: Identity = Depends(current_identity),
):
    return await inbox.get_notifications(identity, page=page, limit=limit, unread_only=unread_only)


@router.post("/markNotificationRead")
async def mark_notification_read(body: NotificationIdRequest, identity: Identity = Depends(current_identity)):
    return await inbox.mark_notification_read(identity, body.notification_id)


@router.post("/markAllNotificationsRead")
async def mark_all_notifications_read(identity: Identity = Depends(current_identity)):
    return await inbox.mark_all_notifications_read(identity)


@router.post("/sendEmailNotification")
async def send_email_notification(
    body: EmailNotificationRequest,
    identity: Identity = Depends(current_identity),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    return await inbox.send_email_notification(body, dispatcher)


@router.post("/sendSMSNotification")
async def send_sms_notification(
    body: SmsNotificationRequest,
    identity: Identity = Depends(current_identity),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    return await inbox.send_sms_notification(body, dispatcher)


@router.post("/updateFCMToken")
async def update_fcm_token(body: FcmTokenRequest, identity: Identity = Depends(current_identity)):
    return await inbox.update_fcm_token(identity, body)


@router.get("/getNotificationSettings")
async def get_notification_settings(identity: Identity = Depends(current_identity)):
    return await inbox.get_notification_settings(identity)


@router.post("/updateNotificationSettings")
async def update_notification_settings(
    body: NotificationSettingsRequest, identity: Identity = Depends(current_identity)
):
    return await inbox.update_notification_settings(identity, body)
