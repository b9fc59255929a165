"""
Per-caller sliding-window request limiting.

The in-memory store only sees the requests of its own process. The
Firestore store keeps each caller's window in ``rateLimits/{key}`` and
updates it with guarded writes, so the ceiling holds across instances.
"""

import logging
import time
from collections import defaultdict
from typing import Callable, Dict, List, Optional

from fastapi import Depends, Request
from google.api_core.exceptions import AlreadyExists, FailedPrecondition

from .auth import Identity, current_identity
from .enums import BatchOperation
from .errors import RateLimitExceeded
from .models import RateLimitWindow

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60.0
DEFAULT_REQUESTS_PER_MINUTE = 60


class InMemoryWindowStore:
    def __init__(self):
        self._hits: Dict[str, List[float]] = defaultdict(list)

    async def hit(self, key: str, now: float, window: float, limit: int) -> bool:
        """Record a request at ``now`` unless ``limit`` is already reached."""
        recent = [t for t in self._hits[key] if t > now - window]
        if len(recent) >= limit:
            self._hits[key] = recent
            return False
        recent.append(now)
        self._hits[key] = recent
        return True

    def reset(self) -> None:
        self._hits.clear()


class FirestoreWindowStore:
    def __init__(self, max_attempts: int = 3):
        self.max_attempts = max_attempts

    async def hit(self, key: str, now: float, window: float, limit: int) -> bool:
        for attempt in range(1, self.max_attempts + 1):
            stored = await RateLimitWindow.get(key)
            recent = [t for t in (stored.hits if stored else []) if t > now - window]
            if len(recent) >= limit:
                return False
            recent.append(now)
            try:
                if stored is None:
                    await RateLimitWindow.batch_write(
                        [(BatchOperation.CREATE, RateLimitWindow(id=key, hits=recent))]
                    )
                else:
                    await RateLimitWindow.batch_write(
                        [(BatchOperation.UPDATE_IF_UNCHANGED, stored, RateLimitWindow.field_updates(hits=recent))]
                    )
                return True
            except (AlreadyExists, FailedPrecondition):
                logger.debug(f"Rate window for {key} changed concurrently (attempt {attempt})")
        logger.warning(f"Rate window for {key} stayed contended; rejecting request")
        return False


class SlidingWindowRateLimiter:
    def __init__(
        self,
        requests_per_minute: int = DEFAULT_REQUESTS_PER_MINUTE,
        window_seconds: float = WINDOW_SECONDS,
        store=None,
        clock: Callable[[], float] = time.time,
    ):
        self.limit = requests_per_minute
        self.window = window_seconds
        self.store = store if store is not None else InMemoryWindowStore()
        self.clock = clock

    async def check(self, key: str) -> None:
        """Count one request for ``key`` or raise :class:`RateLimitExceeded`."""
        allowed = await self.store.hit(key, self.clock(), self.window, self.limit)
        if not allowed:
            logger.warning(f"Rate limit exceeded for {key}")
            raise RateLimitExceeded()


def build_rate_limiter(settings) -> SlidingWindowRateLimiter:
    if settings.rate_limit_backend == "firestore":
        store = FirestoreWindowStore()
    else:
        store = InMemoryWindowStore()
    return SlidingWindowRateLimiter(
        requests_per_minute=settings.rate_limit_per_minute,
        window_seconds=settings.rate_limit_window_seconds,
        store=store,
    )


def _caller_key(request: Request, identity: Optional[Identity]) -> str:
    if identity is not None:
        return identity.uid
    return request.client.host if request.client else "anonymous"


async def enforce_rate_limit(
    request: Request, identity: Identity = Depends(current_identity)
) -> None:
    """FastAPI dependency, runs after the auth guard."""
    await request.app.state.rate_limiter.check(_caller_key(request, identity))
