from datetime import datetime, timezone

import pytest

from helpers import auth, seed_item


@pytest.fixture
def guitar(store):
    return seed_item(store, "guitar", "bob", title="Guitar", price=4000)


def _buy(client, uid="alice", item_id="guitar", **extra):
    return client.post("/processBuyNow", json={"itemId": item_id, **extra}, headers=auth(uid))


def _order_and_payment(client):
    order_id = _buy(client, quantity=2, deliveryAddress={"city": "Pune"}).json()["orderId"]
    payment = client.post(
        "/initializePayment", json={"orderId": order_id, "paymentMethod": "card"}, headers=auth("alice")
    ).json()
    return order_id, payment["paymentId"]


# ── Buy now ──────────────────────────────────────────────────────────────────


def test_buy_now_creates_order_delivery_and_notification(client, store, guitar):
    response = _buy(client, quantity=2, deliveryAddress={"city": "Pune"})
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Order placed successfully!"

    order = store.get_data(f"orders/{body['orderId']}")
    assert (order["buyerId"], order["sellerId"], order["itemId"]) == ("alice", "bob", "guitar")
    assert order["totalAmount"] == 8000
    assert order["status"] == "pending"

    deliveries = list(store.documents("deliveries").values())
    assert len(deliveries) == 1
    assert deliveries[0]["orderId"] == body["orderId"]
    assert (deliveries[0]["buyerId"], deliveries[0]["sellerId"]) == ("alice", "bob")

    notifications = list(store.documents("users/bob/notifications").values())
    assert [(n["type"], n["orderId"]) for n in notifications] == [("new_order", body["orderId"])]


def test_cannot_buy_own_item(client, store, guitar):
    response = _buy(client, uid="bob")
    assert response.status_code == 400
    assert response.json()["code"] == "SELF_PURCHASE"
    assert store.documents("orders") == {}


def test_cannot_buy_inactive_item(client, store):
    seed_item(store, "guitar", "bob", status="swapped")
    assert _buy(client).json()["code"] == "INACTIVE_ITEMS"


def test_buy_missing_item(client):
    response = _buy(client, item_id="ghost")
    assert response.status_code == 404
    assert response.json()["code"] == "ITEM_NOT_FOUND"


# ── Payments ─────────────────────────────────────────────────────────────────


def test_initialize_payment(client, store, guitar):
    order_id = _buy(client).json()["orderId"]
    response = client.post("/initializePayment", json={"orderId": order_id}, headers=auth("alice"))
    body = response.json()
    assert body["success"] is True
    assert (body["amount"], body["status"]) == (4000, "pending")

    order = store.get_data(f"orders/{order_id}")
    assert order["status"] == "payment_pending"
    assert order["paymentId"] == body["paymentId"]
    assert store.get_data(f"payments/{body['paymentId']}")["buyerId"] == "alice"


def test_only_the_buyer_initializes_payment(client, store, guitar):
    order_id = _buy(client).json()["orderId"]
    response = client.post("/initializePayment", json={"orderId": order_id}, headers=auth("bob"))
    assert response.status_code == 403
    assert response.json()["code"] == "NOT_AUTHORIZED"


def test_payment_cannot_be_initialized_twice(client, store, guitar):
    order_id, _ = _order_and_payment(client)
    response = client.post("/initializePayment", json={"orderId": order_id}, headers=auth("alice"))
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_STATUS"
    assert len(store.documents("payments")) == 1


def test_initialize_payment_for_missing_order(client):
    response = client.post("/initializePayment", json={"orderId": "ghost"}, headers=auth("alice"))
    assert response.status_code == 404
    assert response.json()["code"] == "ORDER_NOT_FOUND"


def test_verify_payment_completes_the_chain(client, store, guitar):
    order_id, payment_id = _order_and_payment(client)
    response = client.post(
        "/verifyPayment", json={"paymentId": payment_id, "transactionId": "tx-1"}, headers=auth("alice")
    )
    assert response.json() == {"success": True, "message": "Payment verified successfully!"}

    payment = store.get_data(f"payments/{payment_id}")
    assert (payment["status"], payment["transactionId"]) == ("completed", "tx-1")
    assert payment["completedAt"] is not None
    assert store.get_data(f"orders/{order_id}")["status"] == "paid"
    delivery = next(iter(store.documents("deliveries").values()))
    assert delivery["status"] == "confirmed"


def test_verify_payment_is_idempotent_for_the_same_transaction(client, store, guitar):
    _, payment_id = _order_and_payment(client)
    payload = {"paymentId": payment_id, "transactionId": "tx-1"}
    client.post("/verifyPayment", json=payload, headers=auth("alice"))
    again = client.post("/verifyPayment", json=payload, headers=auth("alice"))
    assert again.json() == {"success": True, "message": "Payment already verified"}

    other = client.post(
        "/verifyPayment", json={"paymentId": payment_id, "transactionId": "tx-2"}, headers=auth("alice")
    )
    assert other.json()["code"] == "INVALID_STATUS"
    assert store.get_data(f"payments/{payment_id}")["transactionId"] == "tx-1"


def test_verify_needs_a_transaction_id(client, store, guitar):
    _, payment_id = _order_and_payment(client)
    response = client.post("/verifyPayment", json={"paymentId": payment_id}, headers=auth("alice"))
    assert response.json()["code"] == "MISSING_TRANSACTION_ID"


def test_payment_status_and_access(client, store, guitar):
    _, payment_id = _order_and_payment(client)
    body = client.get(f"/getPaymentStatus?paymentId={payment_id}", headers=auth("alice")).json()
    assert body["status"] == "pending"
    assert body["amount"] == 8000
    assert body["paymentMethod"] == "card"
    assert body["transactionId"] is None

    response = client.get(f"/getPaymentStatus?paymentId={payment_id}", headers=auth("bob"))
    assert response.status_code == 403

    missing = client.get("/getPaymentStatus?paymentId=ghost", headers=auth("alice"))
    assert missing.json()["code"] == "PAYMENT_NOT_FOUND"


def test_refund_only_after_completion(client, store, guitar):
    order_id, payment_id = _order_and_payment(client)
    early = client.post("/processRefund", json={"paymentId": payment_id}, headers=auth("alice"))
    assert early.json()["code"] == "INVALID_STATUS"

    client.post("/verifyPayment", json={"paymentId": payment_id, "transactionId": "tx-1"}, headers=auth("alice"))
    response = client.post(
        "/processRefund", json={"paymentId": payment_id, "reason": "Damaged"}, headers=auth("alice")
    )
    body = response.json()
    assert body["success"] is True
    refund = store.get_data(f"refunds/{body['refundId']}")
    assert (refund["amount"], refund["reason"], refund["status"]) == (8000, "Damaged", "pending")
    assert store.get_data(f"payments/{payment_id}")["status"] == "refund_pending"
    assert store.get_data(f"orders/{order_id}")["status"] == "paid"


def test_payment_history_is_mine_newest_first(client, store, guitar):
    seed_item(store, "drum", "bob", price=2000)
    _, first = _order_and_payment(client)
    order_id = _buy(client, item_id="drum").json()["orderId"]
    second = client.post("/initializePayment", json={"orderId": order_id}, headers=auth("alice")).json()["paymentId"]

    body = client.get("/getPaymentHistory", headers=auth("alice")).json()
    assert [payment["id"] for payment in body] == [second, first]
    assert client.get("/getPaymentHistory", headers=auth("bob")).json() == []


# ── Deliveries ───────────────────────────────────────────────────────────────


def _order_delivery_id(store):
    return next(iter(store.documents("deliveries")))


def test_create_delivery_for_an_order(client, store, guitar):
    order_id = _buy(client).json()["orderId"]
    response = client.post(
        "/createDelivery",
        json={"orderId": order_id, "deliveryMethod": "express", "deliveryAddress": "12 Main St"},
        headers=auth("bob"),
    )
    body = response.json()
    assert body["success"] is True
    delivery = store.get_data(f"deliveries/{body['deliveryId']}")
    assert delivery["deliveryMethod"] == "express"
    assert delivery["estimatedDelivery"] is not None

    stranger = client.post("/createDelivery", json={"orderId": order_id}, headers=auth("carol"))
    assert stranger.json()["code"] == "NOT_AUTHORIZED"


def test_get_delivery_includes_item_details(client, store, guitar):
    _buy(client)
    delivery_id = _order_delivery_id(store)
    body = client.get(f"/getDelivery?id={delivery_id}", headers=auth("bob")).json()
    assert body["id"] == delivery_id
    assert body["itemDetails"]["id"] == "guitar"

    response = client.get(f"/getDelivery?id={delivery_id}", headers=auth("carol"))
    assert response.status_code == 403
    missing = client.get("/getDelivery?id=ghost", headers=auth("bob"))
    assert missing.json()["code"] == "DELIVERY_NOT_FOUND"


def test_update_delivery_status_and_address(client, store, guitar):
    _buy(client)
    delivery_id = _order_delivery_id(store)
    client.post(
        "/updateDeliveryStatus",
        json={"deliveryId": delivery_id, "status": "in_transit", "trackingNumber": "TRK1"},
        headers=auth("bob"),
    )
    client.put(
        "/updateDeliveryAddress",
        json={"deliveryId": delivery_id, "address": {"city": "Goa"}},
        headers=auth("alice"),
    )

    status = client.get(f"/getDeliveryStatus?deliveryId={delivery_id}", headers=auth("alice")).json()
    assert status["status"] == "in_transit"
    assert status["trackingNumber"] == "TRK1"
    assert store.get_data(f"deliveries/{delivery_id}")["address"] == {"city": "Goa"}


def test_update_delivery_status_needs_a_status(client, store, guitar):
    _buy(client)
    response = client.post(
        "/updateDeliveryStatus", json={"deliveryId": _order_delivery_id(store)}, headers=auth("bob")
    )
    assert response.json()["code"] == "MISSING_STATUS"


def test_cancel_delivery(client, store, guitar):
    _buy(client)
    delivery_id = _order_delivery_id(store)
    response = client.post(
        "/cancelDelivery", json={"deliveryId": delivery_id, "reason": "Changed my mind"}, headers=auth("alice")
    )
    assert response.json()["success"] is True
    delivery = store.get_data(f"deliveries/{delivery_id}")
    assert delivery["status"] == "cancelled"
    assert delivery["cancellationReason"] == "Changed my mind"

    again = client.post("/cancelDelivery", json={"deliveryId": delivery_id}, headers=auth("alice"))
    assert again.status_code == 400
    assert again.json()["code"] == "INVALID_STATUS"


def test_delivery_history_covers_purchases_and_swaps(client, store, guitar):
    _buy(client)
    earlier = datetime(2023, 1, 1, tzinfo=timezone.utc)
    store.seed("deliveries/swap-leg", {"toUserId": "alice", "fromUserId": "bob", "createdAt": earlier})
    store.seed("deliveries/other", {"toUserId": "carol", "createdAt": earlier})
    body = client.get("/getDeliveryHistory", headers=auth("alice")).json()
    assert len(body) == 2
    assert body[0]["buyerId"] == "alice"
    assert body[1]["id"] == "swap-leg"


@pytest.mark.parametrize(
    "method, weight, total, days",
    [("standard", 2, 70, 7), ("premium", 0, 100, 3), ("express", 1.5, 165, 1)],
)
def test_calculate_delivery_cost(client, method, weight, total, days):
    body = client.post(
        "/calculateDeliveryCost", json={"deliveryMethod": method, "itemWeight": weight}, headers=auth("alice")
    ).json()
    assert body["totalCost"] == total
    assert body["estimatedDays"] == days
    assert body["baseCost"] + body["weightCost"] == total
