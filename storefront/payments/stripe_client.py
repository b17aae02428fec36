"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.

- create_session: crée la session Checkout hébergée
- list_line_items: relit les lignes d'une session (source de vérité pour order_items)
- parse_event: vérifie la signature du webhook sur les octets bruts reçus

Les objets du SDK ne sortent jamais d'ici: ils sont convertis en types internes.
"""
import json
import logging
from typing import Any, Dict, List, Optional

import stripe

from storefront.config import STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET, EXTERNAL_TIMEOUT_SECONDS
from storefront.errors import ClientInputError, ConfigurationError, PaymentProviderError, WebhookSignatureError
from storefront.payments.models import (
    CheckoutRequestParams,
    CheckoutSessionResult,
    PaymentEvent,
    ProcessorLineItem,
)

logger = logging.getLogger(__name__)

LINE_ITEMS_PAGE_SIZE = 100

# module storefront.payments.stripe_client
def _provider_error(exc: Exception) -> PaymentProviderError:
    """Erreur Stripe -> PaymentProviderError sans fuite de secrets (message utilisateur Stripe uniquement)."""
    return PaymentProviderError(details={
        "type": type(exc).__name__,
        "message": getattr(exc, "user_message", None) or "Stripe request failed",
    })

def line_item_from_stripe(li: Dict[str, Any]) -> ProcessorLineItem:
    """
    Convertit une ligne Stripe (price.product éventuellement développé) en ProcessorLineItem.
    product_id provient de product.metadata.product_id posé à la création de session.
    """
    price = li.get("price") or {}
    product = price.get("product")
    product_id: Optional[str] = None
    if isinstance(product, dict):
        product_id = (product.get("metadata") or {}).get("product_id") or None

    qty = int(li.get("quantity") or 1)
    unit_amount = price.get("unit_amount")
    if unit_amount is None:
        total = int(li.get("amount_total") or 0)
        unit_amount = total // qty if qty else 0

    return ProcessorLineItem(
        product_id=product_id,
        description=str(li.get("description") or "Prodotto"),
        unit_amount_cents=int(unit_amount),
        quantity=qty,
        currency=(li.get("currency") or price.get("currency") or None),
    )


class PaymentGateway:
    def __init__(self, secret_key: str, webhook_secret: str, timeout: float = 10.0):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.timeout = timeout
        self._configured = False

    def require_stripe(self):
        """
        Prépare le module stripe pour les appels réseau.
        - ConfigurationError si STRIPE_SECRET_KEY est absent
        - client HTTP avec timeout (une seule fois par process)
        """
        if not self.secret_key:
            raise ConfigurationError("Server misconfigured (Stripe env missing)")
        if not self._configured:
            stripe.default_http_client = stripe.RequestsClient(timeout=self.timeout)
            self._configured = True
        return stripe

    def create_session(self, params: CheckoutRequestParams) -> CheckoutSessionResult:
        """Crée une session Stripe Checkout (mode payment) et renvoie {id, url}."""
        self.require_stripe()
        kwargs: Dict[str, Any] = {
            "mode": "payment",
            "line_items": params.line_items,
            "success_url": params.success_url,
            "cancel_url": params.cancel_url,
            "metadata": params.metadata,
            "shipping_address_collection": {"allowed_countries": params.allowed_countries},
            "phone_number_collection": {"enabled": params.collect_phone},
        }
        if params.client_reference_id:
            kwargs["client_reference_id"] = params.client_reference_id
        if params.customer_email:
            kwargs["customer_email"] = params.customer_email

        try:
            session = stripe.checkout.Session.create(api_key=self.secret_key, **kwargs)
        except stripe.StripeError as e:
            logger.warning("stripe.checkout.Session.create failed: %s", type(e).__name__)
            raise _provider_error(e) from e

        url = session.get("url")
        if not url:
            raise PaymentProviderError(details={"type": "MissingUrl", "message": "Stripe session without url"})
        return CheckoutSessionResult(id=session.get("id"), url=url)

    def list_line_items(self, session_id: str) -> List[ProcessorLineItem]:
        """Lignes de la session, produit développé pour lire metadata.product_id."""
        self.require_stripe()
        try:
            page = stripe.checkout.Session.list_line_items(
                session_id,
                limit=LINE_ITEMS_PAGE_SIZE,
                expand=["data.price.product"],
                api_key=self.secret_key,
            )
            return [line_item_from_stripe(li) for li in page.auto_paging_iter()]
        except stripe.StripeError as e:
            logger.warning("stripe list_line_items failed session=%s: %s", session_id, type(e).__name__)
            raise _provider_error(e) from e

    def parse_event(self, payload: bytes, sig_header: Optional[str]) -> PaymentEvent:
        """
        Vérifie un webhook Stripe signé.
        - payload: corps brut EXACT de la requête (aucun parsing préalable)
        - sig_header: en-tête Stripe-Signature
        Soulève WebhookSignatureError (400) si l'en-tête manque ou si la signature est invalide.
        """
        if not self.webhook_secret:
            raise ConfigurationError("Server misconfigured (webhook secret missing)")
        if not sig_header:
            raise WebhookSignatureError(details="Missing Stripe-Signature header")
        try:
            stripe.Webhook.construct_event(payload, sig_header, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.warning("Webhook signature verification failed: %s", type(e).__name__)
            raise WebhookSignatureError() from e

        data = json.loads(payload)
        if not isinstance(data, dict) or not data.get("id") or not data.get("type"):
            raise ClientInputError("Malformed event payload")
        return PaymentEvent(id=str(data["id"]), type=str(data["type"]), payload=data)


_gateway: Optional[PaymentGateway] = None

def get_payment_gateway() -> PaymentGateway:
    """Gateway Stripe partagée par le process (injectée via Depends)."""
    global _gateway
    if _gateway is None:
        _gateway = PaymentGateway(STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET, timeout=EXTERNAL_TIMEOUT_SECONDS)
    return _gateway
