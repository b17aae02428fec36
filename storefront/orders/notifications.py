"""
Emails de commande (best-effort, au plus une fois par commande et par destinataire).

L'envoi est précédé d'une réservation en base (colonne *_email_sent_at) pour
qu'une relivraison du webhook ne renvoie pas le même email.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from supabase import Client

from storefront import config
from storefront.infra.mailer import Mailer
from storefront.payments.models import ProcessorLineItem
from storefront.utils.templates import render_email
from . import repository

logger = logging.getLogger(__name__)

TEAM_EMAIL_COLUMN = "team_email_sent_at"
CUSTOMER_EMAIL_COLUMN = "customer_email_sent_at"

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

def _email_context(order_id: str, order: Dict[str, Any], items: List[ProcessorLineItem]) -> Dict[str, Any]:
    currency = order.get("currency") or "EUR"
    return {
        "order_id": order_id,
        "order": order,
        "currency": currency,
        "items": [
            {
                "name": li.description,
                "qty": li.quantity,
                "unit_amount_cents": li.unit_amount_cents,
                "total_cents": li.unit_amount_cents * li.quantity,
            }
            for li in items
        ],
    }

def _send_once(db: Client, mailer: Mailer, order_id: str, column: str, **message) -> bool:
    claim = repository.claim_email_slot(db, order_id, column, _now_iso())
    if claim is False:
        logger.info("order email already sent order_id=%s column=%s", order_id, column)
        return False
    sent = mailer.send(**message)
    if not sent and claim:
        # libère la réservation pour qu'une relivraison puisse réessayer
        try:
            repository.update_order(db, order_id, {column: None})
        except Exception:
            logger.exception("order email slot release failed order_id=%s column=%s", order_id, column)
    return sent

def notify_paid_order(
    db: Client,
    mailer: Mailer,
    order_id: str,
    order: Dict[str, Any],
    items: List[ProcessorLineItem],
) -> Dict[str, bool]:
    """
    Email interne (équipe) + confirmation client pour une commande payée.
    Ne lève jamais: un échec d'envoi est journalisé et ne bloque pas le webhook.
    """
    result = {"team": False, "customer": False}
    try:
        context = _email_context(order_id, order, items)
        if config.ORDERS_TEAM_EMAIL:
            result["team"] = _send_once(
                db, mailer, order_id, TEAM_EMAIL_COLUMN,
                to=config.ORDERS_TEAM_EMAIL,
                subject=f"Nuovo ordine pagato - {order.get('amount_total_cents', 0) / 100:.2f} {context['currency']}",
                html=render_email("order_team.html", **context),
                from_email=config.ORDERS_FROM_EMAIL,
                reply_to=order.get("customer_email") or None,
            )
        else:
            logger.warning("ORDERS_TEAM_EMAIL not set: team notification skipped order_id=%s", order_id)

        customer_email = order.get("customer_email")
        if customer_email:
            result["customer"] = _send_once(
                db, mailer, order_id, CUSTOMER_EMAIL_COLUMN,
                to=customer_email,
                subject=f"{config.STORE_NAME} - conferma del tuo ordine",
                html=render_email("order_customer.html", **context),
                from_email=config.ORDERS_FROM_EMAIL,
            )
        else:
            logger.warning("No customer email: confirmation skipped order_id=%s", order_id)
    except Exception:
        logger.exception("order notifications failed order_id=%s", order_id)
    return result
