from fastapi import Request

from ..notifications import NotificationDispatcher


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.dispatcher
