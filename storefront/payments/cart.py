"""
Logique panier pure (pas de Stripe, pas de DB).
"""
import math
from typing import Any, Dict, List

from storefront.errors import EmptyCart, NoPurchasableItems
from storefront.auth.models import Caller
from storefront.payments.models import CartLine, PricedLine, Product
from storefront.payments.pricing import price_for_role

MAX_QTY = 99

# module storefront.payments.cart
def coerce_qty(value: Any) -> int:
    """
    Quantité client -> entier dans [0, 99].
    - nombres (ou chaînes numériques) arrondis à l'entier inférieur puis bornés
    - entiers JSON arbitrairement grands bornés sans conversion en float
    - tout le reste (None, booléens, texte, NaN/inf) vaut 0
    """
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int):
        return max(0, min(MAX_QTY, value))
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    return max(0, min(MAX_QTY, math.floor(number)))

def normalize_cart(items: Any) -> List[CartLine]:
    """
    Normalise un panier brut [{productId, qty}, ...].
    - Ignore les lignes sans productId et celles dont la quantité bornée est <= 0.
    - Fusionne les doublons par SOMME des quantités (plafonnée à 99), ordre de première apparition.
    - Soulève EmptyCart (400) si aucune ligne valide ne reste.
    """
    if not isinstance(items, list) or not items:
        raise EmptyCart()

    quantities: Dict[str, int] = {}
    for it in items:
        if not isinstance(it, dict):
            continue
        product_id = str(it.get("productId") or "").strip()
        qty = coerce_qty(it.get("qty"))
        if not product_id or qty <= 0:
            continue
        quantities[product_id] = min(MAX_QTY, quantities.get(product_id, 0) + qty)

    if not quantities:
        raise EmptyCart("Empty cart (no valid items)")
    return [CartLine(product_id=pid, qty=qty) for pid, qty in quantities.items()]

def price_lines(lines: List[CartLine], products_by_id: Dict[str, Product], role: str) -> List[PricedLine]:
    """
    Applique le prix par rôle aux lignes dont le produit existe et est actif.
    - Soulève NoPurchasableItems (400) si aucune ligne n'est achetable.
    """
    priced: List[PricedLine] = []
    for line in lines:
        product = products_by_id.get(line.product_id)
        if not product or not product.active:
            continue
        priced.append(PricedLine(
            product=product,
            qty=line.qty,
            unit_amount_cents=price_for_role(product.price_cents, role),
        ))
    if not priced:
        raise NoPurchasableItems()
    return priced

def to_line_items(priced: List[PricedLine]) -> List[Dict[str, Any]]:
    """
    Construit les line_items Stripe (price_data).
    L'id produit interne voyage dans product_data.metadata.product_id: c'est le seul
    moyen de le retrouver dans le webhook (list_line_items).
    """
    return [
        {
            "quantity": line.qty,
            "price_data": {
                "currency": line.product.currency,
                "unit_amount": line.unit_amount_cents,
                "product_data": {
                    "name": line.product.name,
                    "metadata": {"product_id": line.product.id},
                },
            },
        }
        for line in priced
    ]

def make_metadata(caller: Caller) -> Dict[str, str]:
    """Métadonnées de session Stripe: role, user_id?, customer_email?, is_guest."""
    metadata: Dict[str, str] = {"role": caller.role}
    if caller.user_id:
        metadata["user_id"] = str(caller.user_id)
    if caller.email:
        metadata["customer_email"] = str(caller.email)
    metadata["is_guest"] = "true" if caller.is_guest else "false"
    return metadata

def cart_total(priced: List[PricedLine]) -> int:
    return sum(line.total_cents for line in priced)

def distinct_ids(lines: List[CartLine]) -> List[str]:
    return list(dict.fromkeys(line.product_id for line in lines))
