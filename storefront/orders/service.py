"""Réconciliation des événements Stripe en commandes durables.

Garanties:
- un événement (event.id) n'est traité qu'une fois: stripe_events est écrit AVANT tout effet
- une session (stripe_session_id) donne au plus une commande: upsert par clé unique
- les lignes order_items ne sont insérées que si la commande n'en a encore aucune
- les emails partent au plus une fois (réservation *_email_sent_at)
Si la persistance ou Stripe échoue, l'événement est retiré de stripe_events et l'erreur
remonte (500): Stripe relivrera et le traitement reprendra.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from supabase import Client

from storefront.auth.repository import get_user_email_by_id
from storefront.errors import ClientInputError
from storefront.infra.mailer import Mailer
from storefront.payments.models import PaymentEvent
from storefront.payments.stripe_client import PaymentGateway
from . import notifications, repository
from .models import (
    ORDER_PAID,
    RECONCILED_EVENT_TYPES,
    ReconcileResult,
    build_item_rows,
    build_order_payload,
    session_customer_email,
)

logger = logging.getLogger(__name__)

def resolve_customer_email(db: Client, session: dict) -> Optional[str]:
    email = session_customer_email(session)
    if email:
        return email
    user_id = (session.get("metadata") or {}).get("user_id")
    return get_user_email_by_id(db, user_id) if user_id else None

def reconcile_event(
    db: Client,
    gateway: PaymentGateway,
    mailer: Mailer,
    event: PaymentEvent,
    now: Optional[datetime] = None,
) -> ReconcileResult:
    """
    Applique un événement vérifié.
    1) déjà vu (ou conflit d'insertion concurrent) -> duplicate, aucun effet
    2) enregistré puis, pour les types gérés: upsert commande, items, emails
    Les autres types sont seulement enregistrés (handled=False).
    """
    if repository.event_exists(db, event.id):
        logger.info("stripe event already processed id=%s type=%s", event.id, event.type)
        return ReconcileResult(duplicate=True)
    if not repository.record_event(db, event.id, event.type):
        return ReconcileResult(duplicate=True)

    if event.type not in RECONCILED_EVENT_TYPES:
        logger.info("stripe event ignored id=%s type=%s", event.id, event.type)
        return ReconcileResult()

    session = event.data_object
    try:
        updated_at = (now or datetime.now(timezone.utc)).isoformat()
        payload = build_order_payload(session, event.type, resolve_customer_email(db, session), updated_at)
        if not payload["stripe_session_id"]:
            raise ClientInputError("Malformed checkout session (missing id)")

        order_id, status = repository.upsert_order(db, payload)
        line_items = gateway.list_line_items(payload["stripe_session_id"])
        if repository.order_has_items(db, order_id):
            logger.info("order items already present order_id=%s", order_id)
        else:
            repository.insert_order_items(db, build_item_rows(order_id, line_items, session.get("currency")))
    except Exception:
        logger.exception("stripe event processing failed id=%s type=%s", event.id, event.type)
        repository.release_event(db, event.id)
        raise

    logger.info(
        "order reconciled id=%s session=%s status=%s items=%s",
        order_id, payload["stripe_session_id"], status, len(line_items),
    )
    if status == ORDER_PAID:
        notifications.notify_paid_order(db, mailer, order_id, payload, line_items)

    return ReconcileResult(handled=True, order_id=order_id, status=status)
