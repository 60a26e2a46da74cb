import pytest


CREATE_URL = "/api/create-payment-intent"
UPDATE_URL = "/api/update-payment-intent"
WEBHOOK_URL = "/api/webhook"


def _create(client, **overrides):
    body = {"amount": 276000, "userId": 3, "productId": 2, "currency": "eur", "country": "DE"}
    body.update(overrides)
    return client.post(CREATE_URL, json=body)


def test_create_payment_intent(client, provider):
    resp = _create(client)
    assert resp.status_code == 200
    data = resp.json()

    assert data["id"] == "pi_test_1"
    assert data["clientSecret"] == "pi_test_1_secret"
    assert data["amount"] == 276000
    assert data["taxAmount"] == 52440
    assert data["totalWithTax"] == 328440
    assert data["taxRate"] == pytest.approx(0.19)
    assert data["unitPrice"] == 276000
    assert data["currency"] == "eur"
    assert data["tax"] == {"amount": 52440, "rate": pytest.approx(0.19), "label": "MwSt. 19%", "display": "19%"}
    assert provider.intents["pi_test_1"].amount == 328440


def test_create_uses_query_country_as_fallback(client):
    resp = client.post(
        CREATE_URL + "?country=FR",
        json={"amount": 10000, "userId": 3, "productId": 1, "currency": "eur"},
    )
    assert resp.status_code == 200
    assert resp.json()["taxAmount"] == 2000


@pytest.mark.parametrize(
    "body",
    [
        {"amount": 100.5, "userId": 3, "productId": 2},
        {"amount": "100", "userId": 3, "productId": 2},
        {"userId": 3, "productId": 2},
    ],
)
def test_create_rejects_malformed_body(client, provider, body):
    resp = client.post(CREATE_URL, json=body)
    assert resp.status_code == 400
    payload = resp.json()
    assert payload["error"]["type"] == "ValidationError"
    assert provider.create_calls == []


@pytest.mark.parametrize(
    "overrides, status",
    [
        ({"amount": 0}, 400),
        ({"currency": "jpy"}, 400),
        ({"userId": 999}, 404),
        ({"productId": 999}, 404),
    ],
)
def test_create_business_errors(client, overrides, status):
    resp = _create(client, **overrides)
    assert resp.status_code == status
    assert resp.json()["error"]["request_id"]


def test_update_payment_intent(client):
    created = _create(client, amount=30000, productId=1, quantity=3).json()

    resp = client.post(UPDATE_URL, json={"paymentIntentId": created["id"], "quantity": 1, "userId": 3})

    assert resp.status_code == 200
    assert resp.json() == {
        "id": created["id"],
        "clientSecret": created["clientSecret"],
        "amount": 10000,
        "taxAmount": 1900,
        "totalAmount": 11900,
        "quantity": 1,
    }


def test_update_unknown_intent_is_404(client):
    resp = client.post(UPDATE_URL, json={"paymentIntentId": "pi_missing", "quantity": 1, "userId": 3})
    assert resp.status_code == 404


def test_update_by_other_user_is_403(client):
    created = _create(client, amount=30000, productId=1, quantity=3).json()
    resp = client.post(UPDATE_URL, json={"paymentIntentId": created["id"], "quantity": 1, "userId": 2})
    assert resp.status_code == 403


def test_update_superseded_intent_points_to_replacement(client, provider):
    created = _create(client, amount=30000, productId=1, quantity=3).json()
    provider.set_status(created["id"], "requires_action")
    replaced = client.post(UPDATE_URL, json={"paymentIntentId": created["id"], "quantity": 2, "userId": 3}).json()
    assert replaced["id"] != created["id"]

    resp = client.post(UPDATE_URL, json={"paymentIntentId": created["id"], "quantity": 1, "userId": 3})
    assert resp.status_code == 404
    assert resp.json()["error"]["details"]["superseded_by"] == replaced["id"]


# ---------------------------------------------------------------------------
# webhook
# ---------------------------------------------------------------------------

def test_webhook_completes_order(client, make_event, signed_headers, notifier, drain_notifications):
    created = _create(client).json()

    resp = client.post(WEBHOOK_URL, content=make_event("payment_intent.succeeded", created["id"]), headers=signed_headers)
    drain_notifications()

    assert resp.status_code == 200
    assert resp.json() == {"received": True}
    order = client.get(f"/api/orders/{created['orderId']}").json()
    assert order["status"] == "completed"
    assert notifier.pushes == [(3, created["orderId"], "completed")]


def test_webhook_stripe_alias(client, make_event, signed_headers):
    created = _create(client).json()
    resp = client.post(
        "/api/webhook/stripe",
        content=make_event("payment_intent.payment_failed", created["id"]),
        headers=signed_headers,
    )
    assert resp.status_code == 200
    assert client.get(f"/api/orders/{created['orderId']}").json()["status"] == "failed"


def test_webhook_failed_after_completed_is_acknowledged(client, make_event, signed_headers):
    created = _create(client).json()
    client.post(WEBHOOK_URL, content=make_event("payment_intent.succeeded", created["id"]), headers=signed_headers)

    resp = client.post(WEBHOOK_URL, content=make_event("payment_intent.payment_failed", created["id"]), headers=signed_headers)

    assert resp.status_code == 200
    assert client.get(f"/api/orders/{created['orderId']}").json()["status"] == "completed"


def test_webhook_bad_signature_is_400(client, make_event):
    created = _create(client).json()
    resp = client.post(
        WEBHOOK_URL,
        content=make_event("payment_intent.succeeded", created["id"]),
        headers={"Stripe-Signature": "t=1,v1=forged"},
    )
    assert resp.status_code == 400
    assert client.get(f"/api/orders/{created['orderId']}").json()["status"] == "pending"


def test_webhook_malformed_body_is_400(client, signed_headers):
    resp = client.post(WEBHOOK_URL, content=b"{not json", headers=signed_headers)
    assert resp.status_code == 400


def test_webhook_unknown_intent_is_acknowledged(client, make_event, signed_headers):
    resp = client.post(WEBHOOK_URL, content=make_event("payment_intent.succeeded", "pi_unknown"), headers=signed_headers)
    assert resp.status_code == 200


# ---------------------------------------------------------------------------
# recovery
# ---------------------------------------------------------------------------

def test_recover_returns_existing_order(client):
    created = _create(client).json()
    resp = client.post(f"/api/payment-intents/{created['id']}/recover")
    assert resp.status_code == 200
    data = resp.json()
    assert data["id"] == created["orderId"]
    assert data["stripePaymentId"] == created["id"]
    assert data["totalAmount"] == 328440


def test_recover_unknown_intent_is_provider_error(client):
    resp = client.post("/api/payment-intents/pi_nope/recover")
    assert resp.status_code == 500
    assert resp.json()["error"]["details"]["provider"] == "stub"


def test_update_after_payment_is_refused(client, provider, make_event, signed_headers):
    created = _create(client, amount=30000, productId=1, quantity=3).json()
    provider.set_status(created["id"], "succeeded")
    client.post(WEBHOOK_URL, content=make_event("payment_intent.succeeded", created["id"]), headers=signed_headers)

    resp = client.post(UPDATE_URL, json={"paymentIntentId": created["id"], "quantity": 1, "userId": 3})

    assert resp.status_code == 409
    assert resp.json()["error"]["type"] == "OrderAlreadySettled"
    assert len(provider.create_calls) == 1
    order = client.get(f"/api/orders/{created['orderId']}").json()
    assert order["status"] == "completed"
    assert order["stripePaymentId"] == created["id"]
    assert order["totalAmount"] == 35700
