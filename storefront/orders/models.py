# module storefront.orders.models
"""Règles pures de la réconciliation (pas de DB, pas de Stripe).
- Mapping total payment_status/type d'événement -> statut de commande.
- Extraction de l'email client, des adresses et du payload 'orders' depuis une session Stripe.
- Construction des lignes 'order_items' (snapshots nom/prix).
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from storefront.auth.models import normalize_role
from storefront.payments.models import ProcessorLineItem
from storefront.utils.validators import is_valid_email

ORDER_CREATED = "created"
ORDER_PAID = "paid"
ORDER_FAILED = "failed"

SESSION_COMPLETED = "checkout.session.completed"
ASYNC_PAYMENT_SUCCEEDED = "checkout.session.async_payment_succeeded"
ASYNC_PAYMENT_FAILED = "checkout.session.async_payment_failed"

RECONCILED_EVENT_TYPES = frozenset({SESSION_COMPLETED, ASYNC_PAYMENT_SUCCEEDED, ASYNC_PAYMENT_FAILED})
FAILURE_EVENT_TYPES = frozenset({ASYNC_PAYMENT_FAILED})
TERMINAL_STATUSES = frozenset({ORDER_PAID, ORDER_FAILED})

ADDRESS_FIELDS = ("line1", "line2", "city", "postal_code", "state", "country")


@dataclass(frozen=True)
class ReconcileResult:
    duplicate: bool = False
    handled: bool = False
    order_id: Optional[str] = None
    status: Optional[str] = None


def order_status_for(event_type: str, payment_status: Optional[str]) -> str:
    """
    Statut interne de la commande.
    - événement d'échec -> failed
    - payment_status == "paid" -> paid
    - toute autre valeur (unpaid, no_payment_required, None, ...) -> created
    """
    if event_type in FAILURE_EVENT_TYPES:
        return ORDER_FAILED
    if payment_status == "paid":
        return ORDER_PAID
    return ORDER_CREATED

def merge_order_update(payload: Dict[str, Any], current_status: Optional[str]) -> Dict[str, Any]:
    """
    Payload d'update pour une commande existante.
    Une commande paid/failed ne change plus de statut: un événement arrivé en retard
    ne met à jour que les autres colonnes (email, adresses, ...).
    """
    if current_status in TERMINAL_STATUSES and payload.get("status") != current_status:
        return {k: v for k, v in payload.items() if k not in ("status", "payment_status")}
    return payload

def _valid_email(value) -> Optional[str]:
    email = str(value or "").strip()
    return email if is_valid_email(email) else None

def session_customer_email(session: Dict[str, Any]) -> Optional[str]:
    """
    Email client par priorité: email saisi au checkout (customer_details.email),
    customer_email de la session, puis metadata.customer_email.
    Le repli sur le fournisseur d'identité est fait par le service.
    """
    details = session.get("customer_details") or {}
    metadata = session.get("metadata") or {}
    for candidate in (details.get("email"), session.get("customer_email"), metadata.get("customer_email")):
        email = _valid_email(candidate)
        if email:
            return email
    return None

def _shipping_details(session: Dict[str, Any]) -> Dict[str, Any]:
    collected = session.get("collected_information") or {}
    return collected.get("shipping_details") or session.get("shipping_details") or session.get("shipping") or {}

def address_snapshot(prefix: str, details: Dict[str, Any]) -> Dict[str, Optional[str]]:
    """Colonnes <prefix>_name, <prefix>_line1, ... à partir d'un bloc {name, address{...}}."""
    address = (details or {}).get("address") or {}
    snapshot: Dict[str, Optional[str]] = {f"{prefix}_name": (details or {}).get("name") or None}
    for key in ADDRESS_FIELDS:
        snapshot[f"{prefix}_{key}"] = address.get(key) or None
    return snapshot

def build_order_payload(
    session: Dict[str, Any],
    event_type: str,
    customer_email: Optional[str],
    updated_at: str,
) -> Dict[str, Any]:
    """Payload 'orders' (clé d'idempotence: stripe_session_id)."""
    metadata = session.get("metadata") or {}
    details = session.get("customer_details") or {}
    payment_status = session.get("payment_status") or None

    payload: Dict[str, Any] = {
        "stripe_session_id": session.get("id"),
        "stripe_payment_intent": session.get("payment_intent") or None,
        "user_id": metadata.get("user_id") or None,
        "role": normalize_role(metadata.get("role")),
        "customer_email": customer_email,
        "customer_phone": details.get("phone") or None,
        "amount_total_cents": int(session.get("amount_total") or 0),
        "currency": str(session.get("currency") or "eur").upper(),
        "payment_status": payment_status,
        "status": order_status_for(event_type, payment_status),
        "updated_at": updated_at,
    }
    payload.update(address_snapshot("shipping", _shipping_details(session)))
    payload.update(address_snapshot("billing", details))
    return payload

def build_item_rows(order_id: str, items: List[ProcessorLineItem], session_currency: Optional[str]) -> List[Dict[str, Any]]:
    """Une ligne 'order_items' par ligne Stripe, avec snapshot nom/prix unitaire."""
    default_currency = str(session_currency or "eur").upper()
    return [
        {
            "order_id": order_id,
            "product_id": li.product_id,
            "name_snapshot": li.description or "Prodotto",
            "unit_amount_cents": li.unit_amount_cents,
            "qty": li.quantity or 1,
            "currency": str(li.currency or default_currency).upper(),
        }
        for li in items
    ]
