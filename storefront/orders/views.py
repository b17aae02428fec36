import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from supabase import Client

from storefront.auth.service import authenticate
from storefront.errors import ClientInputError, NotFoundError
from storefront.infra.mailer import Mailer, get_mailer
from storefront.infra.supabase_client import get_service_supabase
from storefront.payments.stripe_client import PaymentGateway, get_payment_gateway
from storefront.utils.security import bearer_token
from . import repository
from .service import reconcile_event

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["Orders API"])

# module storefront.orders.views
@router.post("/stripe-webhook", include_in_schema=False)
async def stripe_webhook(
    request: Request,
    db: Client = Depends(get_service_supabase),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    mailer: Mailer = Depends(get_mailer),
):
    """
    Webhook Stripe.
    - La signature est vérifiée sur le corps brut (jamais re-sérialisé): 400 si invalide
    - 200 {ok, received} (duplicate: true si l'événement a déjà été traité)
    - 500 si la persistance échoue: Stripe relivrera
    """
    payload = await request.body()
    event = gateway.parse_event(payload, request.headers.get("stripe-signature"))
    result = await run_in_threadpool(reconcile_event, db, gateway, mailer, event)
    body = {"ok": True, "received": True}
    if result.duplicate:
        body["duplicate"] = True
    return JSONResponse(body)

@router.get("/order-status")
def order_status(
    request: Request,
    session_id: Optional[str] = None,
    db: Client = Depends(get_service_supabase),
):
    """
    Statut d'une commande pour l'utilisateur connecté (page de succès).
    - 400 sans session_id, 401 sans token valide
    - 404 tant que le webhook n'a pas créé la commande (le client réessaie)
    """
    session_id = (session_id or "").strip()
    if not session_id:
        raise ClientInputError("Missing session_id")
    user = authenticate(db, bearer_token(request))
    order = repository.fetch_order_for_user(db, session_id, user.id)
    if not order:
        raise NotFoundError("Order not found yet")
    return {"ok": True, "order": order}
