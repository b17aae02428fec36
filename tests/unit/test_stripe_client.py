import json
import time

import pytest

from storefront.errors import ClientInputError, ConfigurationError, WebhookSignatureError
from storefront.payments.stripe_client import PaymentGateway, line_item_from_stripe


def test_parse_event_accepts_valid_signature(gateway, signed_webhook):
    payload, header = signed_webhook(event_id="evt_ok")
    event = gateway.parse_event(payload, header)
    assert event.id == "evt_ok"
    assert event.type == "checkout.session.completed"
    assert event.data_object["id"] == "cs_test_1"


def test_parse_event_rejects_tampered_body(gateway, signed_webhook):
    payload, header = signed_webhook()
    tampered = payload.replace(b'"amount_total": 1800', b'"amount_total": 1')
    assert tampered != payload
    with pytest.raises(WebhookSignatureError) as exc:
        gateway.parse_event(tampered, header)
    assert exc.value.status_code == 400


def test_parse_event_rejects_wrong_secret(gateway, signed_webhook):
    payload, header = signed_webhook(secret="whsec_other")
    with pytest.raises(WebhookSignatureError):
        gateway.parse_event(payload, header)


def test_parse_event_rejects_stale_signature(gateway, signed_webhook, sign):
    payload, _ = signed_webhook()
    stale = sign(payload, timestamp=int(time.time()) - 3600)
    with pytest.raises(WebhookSignatureError) as exc:
        gateway.parse_event(payload, stale)
    assert exc.value.status_code == 400


def test_parse_event_requires_signature_header(gateway, signed_webhook):
    payload, _ = signed_webhook()
    with pytest.raises(WebhookSignatureError):
        gateway.parse_event(payload, None)


def test_parse_event_without_webhook_secret_is_misconfiguration(signed_webhook):
    payload, header = signed_webhook()
    with pytest.raises(ConfigurationError):
        PaymentGateway("sk_test", "").parse_event(payload, header)


def test_parse_event_requires_id_and_type(gateway, sign):
    payload = json.dumps({"object": "event", "data": {}}).encode()
    with pytest.raises(ClientInputError):
        gateway.parse_event(payload, sign(payload))


def test_require_stripe_without_key_is_misconfiguration():
    with pytest.raises(ConfigurationError):
        PaymentGateway("", "whsec").require_stripe()


def test_line_item_from_stripe_reads_expanded_product_metadata():
    li = {
        "description": "Olio extravergine 1L",
        "quantity": 2,
        "currency": "eur",
        "amount_total": 1800,
        "price": {"unit_amount": 900, "product": {"id": "prod_x", "metadata": {"product_id": "P1"}}},
    }
    item = line_item_from_stripe(li)
    assert (item.product_id, item.description, item.unit_amount_cents, item.quantity, item.currency) == (
        "P1", "Olio extravergine 1L", 900, 2, "eur",
    )


def test_line_item_from_stripe_without_product_metadata():
    item = line_item_from_stripe({"quantity": 3, "amount_total": 300, "price": {"product": "prod_x"}})
    assert item.product_id is None
    assert item.unit_amount_cents == 100
    assert item.description == "Prodotto"
