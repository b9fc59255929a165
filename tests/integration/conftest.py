"""
Fixtures for the integration tests.

They run against the Firestore emulator when ``FIRESTORE_EMULATOR_HOST`` is
set, against real Firestore when ``GOOGLE_APPLICATION_CREDENTIALS`` points at
a service account, and are skipped otherwise.

Emulator mode:  FIRESTORE_EMULATOR_HOST=localhost:8080  (fast, no creds)
Real mode:      GOOGLE_APPLICATION_CREDENTIALS=sa.json
"""

import json
import logging
import os
import warnings

import httpx
import pytest
import pytest_asyncio

from swapin import FirestoreDB, init_firestore_odm
from swapin.models import ALL_MODELS

logger = logging.getLogger(__name__)

# ── Environment detection ────────────────────────────────────────────────────

EMULATOR_HOST = os.environ.get("FIRESTORE_EMULATOR_HOST", "").strip()
DATABASE = os.environ.get("DATABASE", None) or None
CREDENTIALS_PATH = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS", "")

IS_EMULATOR = bool(EMULATOR_HOST)

# An unset CI secret arrives as "", so fall through on any falsy value.
PROJECT_ID = os.environ.get("GOOGLE_CLOUD_PROJECT") or ""

if not PROJECT_ID and not IS_EMULATOR and CREDENTIALS_PATH:
    try:
        with open(CREDENTIALS_PATH) as _f:
            PROJECT_ID = json.load(_f).get("project_id", "") or ""
    except (OSError, ValueError) as _exc:
        logger.warning("Could not read project_id from SA file: %s", _exc)

if not PROJECT_ID:
    PROJECT_ID = "swapin-test"

# Top-level collections the tests write to; user subcollections go with users.
TEST_COLLECTIONS = ["users", "items", "swaps", "deliveries", "analytics", "rateLimits"]


@pytest.fixture()
def firestore_db():
    """
    FirestoreDB pointing to the emulator or real Firestore.

    Function-scoped so each test gets a fresh AsyncClient bound to the
    current event loop.
    """
    if IS_EMULATOR:
        return FirestoreDB(project_id=PROJECT_ID, emulator_host=EMULATOR_HOST)
    if not CREDENTIALS_PATH:
        pytest.skip("needs FIRESTORE_EMULATOR_HOST or GOOGLE_APPLICATION_CREDENTIALS")

    from google.oauth2.service_account import Credentials

    credentials = Credentials.from_service_account_file(CREDENTIALS_PATH)
    return FirestoreDB(project_id=PROJECT_ID, database=DATABASE, credentials=credentials)


@pytest.fixture()
def raw_client(firestore_db):
    """Raw AsyncClient pointing to the same backend as the models."""
    return firestore_db.client


@pytest_asyncio.fixture(autouse=True)
async def clean_firestore(firestore_db):
    """Wipe all data before and after each test."""
    await _perform_cleanup(firestore_db)
    yield
    await _perform_cleanup(firestore_db)


async def _perform_cleanup(firestore_db):
    if IS_EMULATOR:
        db_name = DATABASE or "(default)"
        url = (
            f"http://{EMULATOR_HOST}/emulator/v1/projects/"
            f"{PROJECT_ID}/databases/{db_name}/documents"
        )
        async with httpx.AsyncClient() as client:
            await client.delete(url)
        return

    try:
        await _cleanup_real_firestore(firestore_db.client, TEST_COLLECTIONS)
    except Exception as exc:  # noqa: BLE001
        # A teardown error would turn a passing test into FAILED+ERROR.
        warnings.warn(f"[conftest] Firestore cleanup error: {exc}", stacklevel=1)


async def _cleanup_real_firestore(client, collections: list):
    """Delete every document of ``collections`` and one level of subcollections."""
    for col_name in collections:
        docs = [doc async for doc in client.collection(col_name).stream()]
        for start in range(0, len(docs), 500):
            batch = client.batch()
            for doc in docs[start:start + 500]:
                async for subcollection in doc.reference.collections():
                    async for subdoc in subcollection.stream():
                        await subdoc.reference.delete()
                batch.delete(doc.reference)
            await batch.commit()


@pytest_asyncio.fixture
async def initialized_models(firestore_db):
    """Register every marketplace model with the database."""
    init_firestore_odm(firestore_db, ALL_MODELS)
    return {cls.__name__: cls for cls in ALL_MODELS}
