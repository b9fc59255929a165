import logging
from typing import Any, Dict, Optional

from fastapi import Header, Request
from firebase_admin import auth as fb_auth
from firebase_admin import exceptions as fb_exceptions
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from .errors import AuthRequired, InvalidToken

logger = logging.getLogger(__name__)


class Identity(BaseModel):
    """Caller identity decoded from a verified ID token."""

    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = None

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "Identity":
        return cls(
            uid=claims["uid"],
            email=claims.get("email"),
            display_name=claims.get("name"),
            photo_url=claims.get("picture"),
        )


class FirebaseTokenVerifier:
    """Checks Firebase ID tokens with the Admin SDK."""

    def __init__(self, app=None, check_revoked: bool = False):
        self._app = app
        self._check_revoked = check_revoked

    async def verify(self, token: str) -> Identity:
        try:
            claims = await run_in_threadpool(
                fb_auth.verify_id_token, token, self._app, self._check_revoked
            )
        except (ValueError, fb_exceptions.FirebaseError) as exc:
            logger.warning(f"Token verification failed: {exc}")
            raise InvalidToken() from exc
        return Identity.from_claims(claims)


def bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthRequired()
    token = authorization[len("Bearer "):].strip()
    if not token:
        raise AuthRequired()
    return token


async def current_identity(
    request: Request, authorization: Optional[str] = Header(None)
) -> Identity:
    """FastAPI dependency: verify the bearer token on every request."""
    token = bearer_token(authorization)
    identity = await request.app.state.token_verifier.verify(token)
    request.state.identity = identity
    return identity
