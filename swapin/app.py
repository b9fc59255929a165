"""
Application factory.

Collaborators (store handle, token verifier, push sender, rate limiter) can
be passed in; anything omitted is built from :class:`~swapin.config.Settings`.
"""

import logging
from typing import Optional

import firebase_admin
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import init_firestore_odm
from .auth import FirebaseTokenVerifier
from .config import Settings, get_settings
from .errors import install_error_handlers
from .firestore_client import FirestoreDB
from .models import ALL_MODELS
from .notifications import FirebasePushSender, NotificationDispatcher
from .rate_limit import SlidingWindowRateLimiter, build_rate_limiter
from .routes import api_router

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def firebase_app(settings: Settings) -> firebase_admin.App:
    """Return the default Firebase app, initialising it on first use."""
    if not firebase_admin._apps:
        logger.info(f"Initialising Firebase app for project {settings.project_id}")
        return firebase_admin.initialize_app(options={"projectId": settings.project_id})
    return firebase_admin.get_app()


def create_app(
    settings: Optional[Settings] = None,
    db: Optional[FirestoreDB] = None,
    token_verifier=None,
    push_sender=None,
    rate_limiter: Optional[SlidingWindowRateLimiter] = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    db = db or FirestoreDB.from_settings(settings)
    init_firestore_odm(db, ALL_MODELS)

    if token_verifier is None or push_sender is None:
        fb_app = firebase_app(settings)
        token_verifier = token_verifier or FirebaseTokenVerifier(fb_app)
        push_sender = push_sender or FirebasePushSender(fb_app)

    app = FastAPI(title="Swapin API")
    app.state.settings = settings
    app.state.db = db
    app.state.token_verifier = token_verifier
    app.state.dispatcher = NotificationDispatcher(push_sender, push_enabled=settings.push_enabled)
    app.state.rate_limiter = rate_limiter or build_rate_limiter(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app, expose_details=settings.is_development)

    @app.get("/health", tags=["health"])
    async def health():
        return {"status": "ok", "emulated": db.is_emulated}

    app.include_router(api_router)
    return app
