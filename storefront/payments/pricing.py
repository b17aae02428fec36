"""
Règle de prix par rôle (pure, sans Stripe ni DB).

Les montants sont toujours des entiers en centimes.
"""
from storefront.auth.models import RETAILER_ROLE

RETAILER_PERCENT = 90  # 10% de remise

# module storefront.payments.pricing
def price_for_role(base_cents: int, role: str) -> int:
    """
    Prix unitaire facturé pour un rôle.
    - retailer: round(base * 90 / 100), arrondi au demi supérieur sur la valeur exacte
      (15 -> 14, 25 -> 23, 101 -> 91)
    - tout autre rôle: base inchangée
    Soulève ValueError si base n'est pas un entier positif ou nul.
    """
    if isinstance(base_cents, bool) or not isinstance(base_cents, int):
        raise ValueError(f"base_cents must be an integer, got {base_cents!r}")
    if base_cents < 0:
        raise ValueError(f"base_cents must be >= 0, got {base_cents}")
    if role == RETAILER_ROLE:
        return (base_cents * RETAILER_PERCENT + 50) // 100
    return base_cents
