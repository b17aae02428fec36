import asyncio


def test_checkout_returns_stripe_url_for_retailer(client, gateway):
    res = client.post(
        "/api/create-checkout-session",
        json={"items": [{"productId": "P1", "qty": 2}]},
        headers={"Authorization": "Bearer tok-retailer", "x-forwarded-host": "shop.example.com"},
    )
    assert res.status_code == 200
    assert res.json() == {"ok": True, "url": "https://checkout.stripe.test/pay"}
    assert res.headers["cache-control"] == "no-store"
    params = gateway.created[0]
    assert params.line_items[0]["price_data"]["unit_amount"] == 900
    assert params.success_url.startswith("https://shop.example.com/success.html")


def test_checkout_empty_cart(client):
    res = client.post("/api/create-checkout-session", json={"items": []}, headers={"Authorization": "Bearer tok-customer"})
    assert res.status_code == 400
    assert res.json() == {"ok": False, "error": "Empty cart"}


def test_checkout_missing_items_is_empty_cart(client):
    res = client.post("/api/create-checkout-session", json={"guest_email": "g@example.com"})
    assert res.status_code == 400
    assert res.json()["error"] == "Empty cart"


def test_checkout_invalid_json(client):
    res = client.post(
        "/api/create-checkout-session",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert res.status_code == 400
    assert res.json()["ok"] is False


def test_checkout_guest_without_email_is_401(client, gateway):
    res = client.post("/api/create-checkout-session", json={"items": [{"productId": "P1", "qty": 1}]})
    assert res.status_code == 401
    assert gateway.created == []


def test_checkout_unconfirmed_email_is_403(client):
    res = client.post(
        "/api/create-checkout-session",
        json={"items": [{"productId": "P1", "qty": 1}]},
        headers={"Authorization": "Bearer tok-unconfirmed"},
    )
    assert res.status_code == 403
    assert res.json()["error"] == "Email not confirmed"


def test_checkout_only_inactive_products_is_400(client):
    res = client.post(
        "/api/create-checkout-session",
        json={"items": [{"productId": "P3", "qty": 1}], "guest_email": "g@example.com"},
    )
    assert res.status_code == 400


def test_checkout_stripe_failure_is_500(client, gateway):
    from storefront.errors import PaymentProviderError

    def _fail(params):
        raise PaymentProviderError(details={"type": "APIConnectionError", "message": "Stripe request failed"})

    gateway.create_session = _fail
    res = client.post(
        "/api/create-checkout-session",
        json={"items": [{"productId": "P1", "qty": 1}], "guest_email": "g@example.com"},
    )
    assert res.status_code == 500
    assert res.json()["error"] == "Payment provider error"


def test_checkout_session_is_created_off_the_event_loop(client, monkeypatch):
    from storefront.payments.models import CheckoutSessionResult

    seen = {}

    def _create(db, gateway, **kwargs):
        try:
            asyncio.get_running_loop()
            seen["in_event_loop"] = True
        except RuntimeError:
            seen["in_event_loop"] = False
        return CheckoutSessionResult(id="cs_test_x", url="https://checkout.stripe.test/x")

    monkeypatch.setattr("storefront.payments.views.create_checkout_session", _create)
    res = client.post(
        "/api/create-checkout-session",
        json={"items": [{"productId": "P1", "qty": 1}], "guest_email": "g@example.com"},
    )

    assert res.status_code == 200
    assert seen == {"in_event_loop": False}
