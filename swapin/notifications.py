import logging
from typing import List, Optional

from firebase_admin import messaging
from starlette.concurrency import run_in_threadpool

from .enums import BatchOperation
from .firestore_model import WriteOperation
from .models import Notification, User

logger = logging.getLogger(__name__)


class FirebasePushSender:
    """Delivers push messages through Firebase Cloud Messaging."""

    def __init__(self, app=None):
        self._app = app

    async def send(self, token: str, title: str, body: str, data: dict) -> str:
        message = messaging.Message(
            token=token,
            notification=messaging.Notification(title=title, body=body),
            data=data,
        )
        return await run_in_threadpool(messaging.send, message, False, self._app)


class NotificationDispatcher:
    """
    Persists notifications under the recipient and pushes them to the
    recipient's device. Persisting never depends on the push succeeding.
    """

    def __init__(self, push_sender=None, push_enabled: bool = True):
        self.push_sender = push_sender
        self.push_enabled = push_enabled

    def stage(
        self, operations: List[WriteOperation], user_id: str, notification: Notification
    ) -> Notification:
        """Queue the notification create on a batch the caller will commit."""
        notification.is_read = False
        notification.with_parent(User.path_for(user_id))
        operations.append((BatchOperation.CREATE, notification))
        return notification

    async def send(self, user_id: str, notification: Notification) -> Notification:
        operations: List[WriteOperation] = []
        self.stage(operations, user_id, notification)
        await Notification.batch_write(operations)
        await self.deliver(user_id, notification)
        return notification

    async def deliver(self, user_id: str, notification: Notification) -> Optional[str]:
        """Best-effort push; failures are logged, never raised."""
        if not self.push_enabled or self.push_sender is None:
            return None
        try:
            user = await User.get(user_id)
            if user is None or not user.fcm_token:
                return None
            data = {
                "type": notification.type,
                "itemId": notification.item_id or "",
                "swapId": notification.swap_id or "",
            }
            return await self.push_sender.send(
                user.fcm_token, notification.title, notification.message, data
            )
        except Exception:
            logger.exception(f"Error sending push notification to {user_id}")
            return None

    async def send_email(self, user: User, subject: str, body: str) -> None:
        # No e-mail gateway is wired in; the message is only logged.
        logger.info(f"Email to {user.email}: {subject} - {body}")

    async def send_sms(self, user: User, message: str) -> None:
        # No SMS gateway is wired in; the message is only logged.
        logger.info(f"SMS to {user.phone_number}: {message}")
