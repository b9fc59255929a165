"""Integration tests: per-user subcollections."""

import pytest

from swapin import BatchOperation
from swapin.models import CartEntry, Notification, User

pytestmark = pytest.mark.asyncio


async def test_notification_lands_under_its_user(initialized_models, raw_client):
    user = await User(id="alice", display_name="Alice").save()
    note = await Notification(type="custom", title="Hi", message="Hello").save(parent=user)

    doc = await raw_client.document(f"users/alice/notifications/{note.id}").get()
    assert doc.exists
    assert doc.to_dict()["timestamp"] is not None
    assert note.document_path == f"users/alice/notifications/{note.id}"


async def test_subcollections_are_isolated(initialized_models):
    for uid in ("alice", "bob"):
        await Notification(type="custom", title=f"For {uid}", message="").save(parent=User.path_for(uid))

    alice = await Notification.find_all(parent="users/alice")
    assert [note.title for note in alice] == ["For alice"]


async def test_accessor_queries_and_counts(initialized_models):
    user = User(id="alice")
    inbox = user.subcollection(Notification)
    await inbox.add(Notification(type="custom", title="one", message=""))
    await inbox.add(Notification(type="custom", title="two", message="", is_read=True))

    assert await inbox.count([Notification.is_read == False]) == 1  # noqa: E712
    unread = await inbox.find_all([Notification.is_read == False])  # noqa: E712
    assert [note.title for note in unread] == ["one"]


async def test_batch_update_keeps_parent_path(initialized_models, raw_client):
    home = User.path_for("alice")
    await CartEntry(id="bike", item_id="bike").upsert(parent=home)
    entry = await CartEntry.get("bike", parent=home)

    await CartEntry.batch_write([(BatchOperation.UPDATE, entry, CartEntry.field_updates(quantity=3))])
    doc = await raw_client.document("users/alice/cart/bike").get()
    assert doc.to_dict()["quantity"] == 3
