"""
Module 'payments' (feature-first): point d'entrée public.
Réunit règle de prix, panier, adaptateur Stripe, catalogue et création de session.
"""

from .pricing import price_for_role
from .cart import normalize_cart, price_lines, to_line_items, make_metadata
from .stripe_client import PaymentGateway, get_payment_gateway
from .service import create_checkout_session

__all__ = [
    # pricing
    "price_for_role",
    # cart
    "normalize_cart",
    "price_lines",
    "to_line_items",
    "make_metadata",
    # stripe
    "PaymentGateway",
    "get_payment_gateway",
    # services
    "create_checkout_session",
]
