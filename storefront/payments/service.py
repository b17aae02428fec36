"""
Cas d'usage 'payments': orchestre identité, catalogue, panier et Stripe.

Aucune écriture en base ici: seule une confirmation de paiement (webhook)
crée une commande durable.
"""
import logging
from typing import Any, Optional

from supabase import Client

from storefront import config
from storefront.auth.service import resolve_caller
from . import cart as cart_logic
from .models import CheckoutRequestParams, CheckoutSessionResult
from .repository import get_products_map
from .stripe_client import PaymentGateway

logger = logging.getLogger(__name__)

def build_return_urls(base_url: str):
    base = base_url.rstrip("/")
    return f"{base}{config.CHECKOUT_SUCCESS_PATH}", f"{base}{config.CHECKOUT_CANCEL_PATH}"

def create_checkout_session(
    db: Client,
    gateway: PaymentGateway,
    *,
    items: Any,
    token: Optional[str],
    guest_email: Optional[str],
    base_url: str,
) -> CheckoutSessionResult:
    """
    Prépare et crée la session Stripe Checkout.
    Étapes:
      1) Normaliser le panier (400 si vide)
      2) Résoudre l'acheteur (401/403, invité seulement avec email valide)
      3) Charger les produits (source de vérité), ignorer inactifs/absents (400 si plus rien)
      4) Appliquer le prix par rôle
      5) Créer la session Stripe avec metadata (role, user_id, customer_email, is_guest)
    """
    lines = cart_logic.normalize_cart(items)
    caller = resolve_caller(db, token, guest_email)

    products = get_products_map(db, cart_logic.distinct_ids(lines))
    priced = cart_logic.price_lines(lines, products, caller.role)

    success_url, cancel_url = build_return_urls(base_url)
    params = CheckoutRequestParams(
        line_items=cart_logic.to_line_items(priced),
        success_url=success_url,
        cancel_url=cancel_url,
        metadata=cart_logic.make_metadata(caller),
        allowed_countries=list(config.SHIPPING_ALLOWED_COUNTRIES),
        collect_phone=config.COLLECT_PHONE_NUMBER,
        client_reference_id=caller.user_id,
        customer_email=caller.email,
    )
    session = gateway.create_session(params)
    logger.info(
        "checkout session created id=%s role=%s guest=%s lines=%s total=%s",
        session.id, caller.role, caller.is_guest, len(priced), cart_logic.cart_total(priced),
    )
    return session
