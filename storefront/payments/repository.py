"""
Accès aux données pour la feature 'payments' (catalogue produits).
"""
from typing import Dict, List
import logging

from supabase import Client

from storefront.errors import PersistenceError
from storefront.payments.models import Product

logger = logging.getLogger(__name__)

# module storefront.payments.repository
def fetch_products_by_ids(db: Client, ids: List[str]) -> List[dict]:
    """
    Récupère les produits par leurs IDs (table 'products').
    - Retourne [] si ids vide.
    - PersistenceError si la requête échoue (le checkout ne peut pas deviner les prix).
    """
    if not ids:
        return []
    try:
        res = (
            db.table("products")
            .select("id, name, price_cents, currency, active")
            .in_("id", [str(i) for i in ids])
            .execute()
        )
        return res.data or []
    except Exception as e:
        logger.exception("payments.repository.fetch_products_by_ids failed ids=%s", ids)
        raise PersistenceError("Products query failed") from e

def get_products_map(db: Client, ids: List[str]) -> Dict[str, Product]:
    """Retourne un dict {id: Product} à partir d'une liste d'IDs."""
    products = (Product.from_row(row) for row in fetch_products_by_ids(db, ids))
    return {p.id: p for p in products if p.id}
