"""
Types internes de la feature 'payments'.
Les objets renvoyés par Stripe/Supabase sont convertis vers ces types dès la frontière.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class CartLine:
    product_id: str
    qty: int


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    price_cents: int
    currency: str = "eur"
    active: bool = False

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Product":
        try:
            price = int(row.get("price_cents") or 0)
        except (TypeError, ValueError):
            price = 0
        return cls(
            id=str(row.get("id") or ""),
            name=str(row.get("name") or "Prodotto"),
            price_cents=max(price, 0),
            currency=str(row.get("currency") or "EUR").lower(),
            active=row.get("active") is True,
        )



@dataclass(frozen=True)
class PricedLine:
    product: Product
    qty: int
    unit_amount_cents: int

    @property
    def total_cents(self) -> int:
        return self.unit_amount_cents * self.qty


@dataclass(frozen=True)
class CheckoutSessionResult:
    id: str
    url: str


@dataclass
class CheckoutRequestParams:
    """Paramètres envoyés à stripe.checkout.Session.create (hors clé API)."""
    line_items: List[Dict[str, Any]]
    success_url: str
    cancel_url: str
    metadata: Dict[str, str]
    allowed_countries: List[str] = field(default_factory=lambda: ["IT"])
    collect_phone: bool = True
    client_reference_id: Optional[str] = None
    customer_email: Optional[str] = None



@dataclass(frozen=True)
class PaymentEvent:
    """Événement Stripe vérifié (construit à partir des octets signés)."""
    id: str
    type: str
    payload: Dict[str, Any]

    @property
    def data_object(self) -> Dict[str, Any]:
        obj = (self.payload.get("data") or {}).get("object")
        return obj if isinstance(obj, dict) else {}


@dataclass(frozen=True)
class ProcessorLineItem:
    """Ligne de session Stripe (list_line_items) ramenée à nos champs."""
    product_id: Optional[str]
    description: str
    unit_amount_cents: int
    quantity: int
    currency: Optional[str]
