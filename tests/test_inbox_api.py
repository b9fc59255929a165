from datetime import datetime, timedelta, timezone

import pytest

from helpers import auth, seed_user

START = datetime(2024, 2, 1, tzinfo=timezone.utc)


def _seed_notifications(store, uid, unread, read):
    """Seed unread (u0, u1, ...) then read (r0, ...) notifications, one minute apart."""
    minute = 0
    for prefix, count, is_read in (("u", unread, False), ("r", read, True)):
        for index in range(count):
            store.seed(f"users/{uid}/notifications/{prefix}{index}", {
                "type": "custom",
                "title": f"{prefix}{index}",
                "message": "",
                "isRead": is_read,
                "timestamp": START + timedelta(minutes=minute),
            })
            minute += 1


def test_send_notification_persists_and_pushes(client, store, push_sender):
    seed_user(store, "bob", fcmToken="bob-device")
    response = client.post(
        "/sendNotification",
        json={"userId": "bob", "title": "Hi", "message": "Still available?", "itemId": "i1"},
        headers=auth("alice"),
    )
    body = response.json()
    assert body["success"] is True
    stored = store.get_data(f"users/bob/notifications/{body['notificationId']}")
    assert (stored["title"], stored["isRead"], stored["priority"]) == ("Hi", False, "medium")
    assert stored["timestamp"] is not None
    assert push_sender.sent[0]["data"] == {"type": "custom", "itemId": "i1", "swapId": ""}


def test_send_notification_needs_a_recipient(client):
    response = client.post("/sendNotification", json={"title": "Hi"}, headers=auth("alice"))
    assert response.json()["code"] == "MISSING_USER_ID"


def test_get_notifications_paginates_newest_first(client, store):
    for title in ("first", "second", "third"):
        client.post("/sendNotification", json={"userId": "alice", "title": title}, headers=auth("bob"))

    body = client.get("/getNotifications?limit=2", headers=auth("alice")).json()
    assert [n["title"] for n in body["notifications"]] == ["third", "second"]
    assert body["unreadCount"] == 3
    assert body["pagination"] == {"page": 1, "limit": 2}

    page_two = client.get("/getNotifications?limit=2&page=2", headers=auth("alice")).json()
    assert [n["title"] for n in page_two["notifications"]] == ["first"]


def test_get_unread_notifications_only(client, store):
    _seed_notifications(store, "alice", unread=2, read=1)

    body = client.get("/getNotifications?unreadOnly=true", headers=auth("alice")).json()
    assert [n["id"] for n in body["notifications"]] == ["u1", "u0"]
    assert body["unreadCount"] == 2


def test_mark_notification_read(client, store):
    _seed_notifications(store, "alice", unread=1, read=0)
    response = client.post("/markNotificationRead", json={"notificationId": "u0"}, headers=auth("alice"))
    assert response.json() == {"success": True}
    assert store.get_data("users/alice/notifications/u0")["isRead"] is True

    missing = client.post("/markNotificationRead", json={"notificationId": "u0"}, headers=auth("bob"))
    assert missing.status_code == 404
    assert missing.json()["code"] == "NOTIFICATION_NOT_FOUND"


def test_mark_all_read_touches_only_unread(client, store):
    _seed_notifications(store, "alice", unread=5, read=2)
    read_before = {
        doc_id: store.update_times[("users/alice/notifications", doc_id)] for doc_id in ("r0", "r1")
    }

    response = client.post("/markAllNotificationsRead", headers=auth("alice"))
    assert response.json() == {"success": True, "updated": 5}
    assert all(n["isRead"] for n in store.documents("users/alice/notifications").values())
    for doc_id, update_time in read_before.items():
        assert store.update_times[("users/alice/notifications", doc_id)] == update_time

    again = client.post("/markAllNotificationsRead", headers=auth("alice"))
    assert again.json() == {"success": True, "updated": 0}


def test_mark_all_read_commits_in_batches_of_at_most_500(client, store):
    _seed_notifications(store, "alice", unread=501, read=0)
    commits_before = store.commits
    response = client.post("/markAllNotificationsRead", headers=auth("alice"))
    assert response.json()["updated"] == 501
    assert store.commits - commits_before == 2


@pytest.mark.parametrize(
    "path, payload",
    [
        ("/sendEmailNotification", {"userId": "bob", "subject": "Hi", "body": "Hello"}),
        ("/sendSMSNotification", {"userId": "bob", "message": "Hello"}),
    ],
)
def test_email_and_sms_are_logged(client, store, path, payload, caplog):
    seed_user(store, "bob", email="bob@example.com", phoneNumber="+91999")
    with caplog.at_level("INFO", logger="swapin.notifications"):
        response = client.post(path, json=payload, headers=auth("alice"))
    assert response.json() == {"success": True}
    assert "Hello" in caplog.text


def test_email_to_unknown_user(client):
    response = client.post("/sendEmailNotification", json={"userId": "ghost"}, headers=auth("alice"))
    assert response.json()["code"] == "USER_NOT_FOUND"


def test_update_fcm_token(client, store):
    seed_user(store, "alice")
    client.post("/updateFCMToken", json={"fcmToken": "device-2"}, headers=auth("alice"))
    assert store.get_data("users/alice")["fcmToken"] == "device-2"
    response = client.post("/updateFCMToken", json={}, headers=auth("alice"))
    assert response.json()["code"] == "MISSING_FCM_TOKEN"


def test_notification_settings_round_trip(client, store):
    seed_user(store, "alice")
    defaults = client.get("/getNotificationSettings", headers=auth("alice")).json()
    assert defaults["pushNotifications"] is True
    assert defaults["smsNotifications"] is False

    client.post(
        "/updateNotificationSettings",
        json={"settings": {"pushNotifications": False, "likes": False}},
        headers=auth("alice"),
    )
    updated = client.get("/getNotificationSettings", headers=auth("alice")).json()
    assert updated["pushNotifications"] is False
    assert updated["likes"] is False
    assert updated["emailNotifications"] is True
