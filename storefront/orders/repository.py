from typing import Any, Dict, List, Optional, Tuple
import logging

from postgrest.exceptions import APIError
from supabase import Client

from storefront.errors import PersistenceError
from storefront.infra.supabase_client import first_row, is_missing_column, is_unique_violation
from .models import merge_order_update

logger = logging.getLogger(__name__)

ORDER_STATUS_COLUMNS = "id, stripe_session_id, amount_total_cents, currency, status, payment_status, created_at"

# --- stripe_events: ensemble des événements déjà traités ---

def event_exists(db: Client, event_id: str) -> bool:
    try:
        res = db.table("stripe_events").select("id").eq("id", event_id).limit(1).execute()
    except Exception as e:
        logger.exception("orders.repository.event_exists failed event_id=%s", event_id)
        raise PersistenceError("stripe_events query failed") from e
    return first_row(res) is not None

def record_event(db: Client, event_id: str, event_type: str) -> bool:
    """
    Enregistre l'événement avant tout traitement.
    Retourne False si l'id existe déjà (23505: livraison concurrente du même événement).
    """
    try:
        db.table("stripe_events").insert({"id": event_id, "type": event_type}).execute()
        return True
    except APIError as e:
        if is_unique_violation(e):
            logger.warning("stripe_events insert conflict event_id=%s (concurrent delivery)", event_id)
            return False
        logger.exception("orders.repository.record_event failed event_id=%s", event_id)
        raise PersistenceError("stripe_events insert failed") from e
    except Exception as e:
        logger.exception("orders.repository.record_event failed event_id=%s", event_id)
        raise PersistenceError("stripe_events insert failed") from e

def release_event(db: Client, event_id: str) -> None:
    """Retire l'événement pour que la relivraison Stripe soit retraitée (best-effort)."""
    try:
        db.table("stripe_events").delete().eq("id", event_id).execute()
    except Exception:
        logger.exception("orders.repository.release_event failed event_id=%s", event_id)

# --- orders ---

def insert_order(db: Client, payload: Dict[str, Any]) -> Optional[str]:
    """Insert; retourne l'id créé, ou None si la session existe déjà (23505)."""
    try:
        res = db.table("orders").insert(payload).execute()
    except APIError as e:
        if is_unique_violation(e):
            return None
        raise PersistenceError("orders insert failed") from e
    except Exception as e:
        raise PersistenceError("orders insert failed") from e
    row = first_row(res)
    if not row or not row.get("id"):
        raise PersistenceError("orders insert returned no row")
    return str(row["id"])

def find_order_by_session(db: Client, session_id: str) -> Dict[str, Any]:
    """{id, status} de la commande de la session (relue après un conflit d'insertion)."""
    try:
        res = db.table("orders").select("id, status").eq("stripe_session_id", session_id).limit(1).execute()
    except Exception as e:
        raise PersistenceError("orders select failed") from e
    row = first_row(res)
    if not row:
        raise PersistenceError(f"order for session {session_id} not found after conflict")
    return row

def update_order(db: Client, order_id: str, payload: Dict[str, Any]) -> None:
    try:
        db.table("orders").update(payload).eq("id", order_id).execute()
    except Exception as e:
        raise PersistenceError("orders update failed") from e

def upsert_order(db: Client, payload: Dict[str, Any]) -> Tuple[str, Optional[str]]:
    """
    Crée ou met à jour la commande (clé unique stripe_session_id).
    Insert d'abord; sur conflit, relecture puis update par la même clé.
    Retourne (order_id, statut effectif): un statut paid/failed déjà en base est conservé.
    """
    order_id = insert_order(db, payload)
    if order_id:
        return order_id, payload.get("status")
    existing = find_order_by_session(db, payload["stripe_session_id"])
    order_id = str(existing["id"])
    update = merge_order_update(payload, existing.get("status"))
    update_order(db, order_id, update)
    return order_id, update.get("status", existing.get("status"))

# --- order_items ---

def order_has_items(db: Client, order_id: str) -> bool:
    try:
        res = db.table("order_items").select("id").eq("order_id", order_id).limit(1).execute()
    except Exception as e:
        raise PersistenceError("order_items select failed") from e
    return first_row(res) is not None

def insert_order_items(db: Client, rows: List[Dict[str, Any]]) -> None:
    if not rows:
        return
    try:
        db.table("order_items").insert(rows).execute()
    except Exception as e:
        raise PersistenceError("order_items insert failed") from e

# --- notifications ---

def claim_email_slot(db: Client, order_id: str, column: str, sent_at: str) -> Optional[bool]:
    """
    Réserve l'envoi d'un email (update conditionnel <column> is null -> sent_at).
    - True: réservation obtenue, l'appelant envoie
    - False: déjà envoyé (ou échec DB: on n'envoie pas)
    - None: colonne absente du schéma, l'idempotence repose sur stripe_events
    """
    try:
        res = (
            db.table("orders")
            .update({column: sent_at})
            .eq("id", order_id)
            .is_(column, "null")
            .execute()
        )
    except APIError as e:
        if is_missing_column(e):
            logger.warning("orders.%s missing: email idempotency relies on stripe_events only", column)
            return None
        logger.exception("orders.repository.claim_email_slot failed order_id=%s column=%s", order_id, column)
        return False
    except Exception:
        logger.exception("orders.repository.claim_email_slot failed order_id=%s column=%s", order_id, column)
        return False
    return first_row(res) is not None

# --- lecture client ---

def fetch_order_for_user(db: Client, session_id: str, user_id: str) -> Optional[dict]:
    try:
        res = (
            db.table("orders")
            .select(ORDER_STATUS_COLUMNS)
            .eq("stripe_session_id", session_id)
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.exception("orders.repository.fetch_order_for_user failed session_id=%s", session_id)
        raise PersistenceError("Query failed") from e
    return first_row(res)
