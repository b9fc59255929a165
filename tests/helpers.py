from datetime import datetime, timezone

from swapin.auth import Identity
from swapin.errors import InvalidToken

TOKEN_PREFIX = "uid:"

# Earlier than any commit time of the in-memory store.
SEEDED_AT = datetime(2023, 6, 1, tzinfo=timezone.utc)


class FakeTokenVerifier:
    """Accepts ``uid:<uid>`` tokens; anything else is an invalid token."""

    def __init__(self):
        self.verified = []

    async def verify(self, token: str) -> Identity:
        if not token.startswith(TOKEN_PREFIX):
            raise InvalidToken()
        uid = token[len(TOKEN_PREFIX):]
        self.verified.append(uid)
        return Identity(uid=uid, email=f"{uid}@example.com", display_name=uid.title())


class FakePushSender:
    def __init__(self):
        self.sent = []
        self.fail = False

    async def send(self, token, title, body, data):
        if self.fail:
            raise RuntimeError("push gateway unavailable")
        self.sent.append({"token": token, "title": title, "body": body, "data": data})
        return f"message-{len(self.sent)}"


def auth(uid: str) -> dict:
    return {"Authorization": f"Bearer {TOKEN_PREFIX}{uid}"}


def seed_user(store, uid, **fields):
    data = {
        "uid": uid,
        "displayName": uid.title(),
        "rating": 0,
        "totalRatings": 0,
        "totalSwaps": 0,
        "createdAt": SEEDED_AT,
    }
    data.update(fields)
    store.seed(f"users/{uid}", data)
    return uid


def seed_item(store, item_id, owner_id, **fields):
    data = {
        "ownerId": owner_id,
        "title": f"Item {item_id}",
        "category": "misc",
        "price": 1500.0,
        "condition": "good",
        "status": "active",
        "views": 0,
        "likes": 0,
        "offers": 0,
        "tags": [],
        "createdAt": SEEDED_AT,
    }
    data.update(fields)
    store.seed(f"items/{item_id}", data)
    return item_id
