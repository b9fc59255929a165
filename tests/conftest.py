import pytest
from fastapi.testclient import TestClient

from swapin import init_firestore_odm
from swapin.app import create_app
from swapin.config import Settings
from swapin.models import ALL_MODELS
from swapin.rate_limit import SlidingWindowRateLimiter

from fake_firestore import FakeFirestore, FakeFirestoreDB
from helpers import FakePushSender, FakeTokenVerifier


@pytest.fixture
def store():
    return FakeFirestore()


@pytest.fixture
def fake_db(store):
    db = FakeFirestoreDB(store)
    init_firestore_odm(db, ALL_MODELS)
    return db


@pytest.fixture
def settings():
    return Settings(project_id="test-project", environment="development", rate_limit_per_minute=1000)


@pytest.fixture
def push_sender():
    return FakePushSender()


@pytest.fixture
def token_verifier():
    return FakeTokenVerifier()


@pytest.fixture
def app(settings, fake_db, token_verifier, push_sender):
    return create_app(settings, db=fake_db, token_verifier=token_verifier, push_sender=push_sender)


@pytest.fixture
def client(app):
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def clock():
    return {"now": 1000.0}


@pytest.fixture
def limited_client(settings, fake_db, token_verifier, push_sender, clock):
    """Client of an app allowing 60 requests per minute, timed by ``clock``."""
    limiter = SlidingWindowRateLimiter(requests_per_minute=60, clock=lambda: clock["now"])
    app = create_app(
        settings,
        db=fake_db,
        token_verifier=token_verifier,
        push_sender=push_sender,
        rate_limiter=limiter,
    )
    return TestClient(app)
