import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from supabase import Client

from storefront.errors import ClientInputError
from storefront.infra.supabase_client import get_service_supabase
from storefront.utils.rate_limit import optional_rate_limit
from storefront.utils.security import bearer_token, build_base_url
from .service import create_checkout_session
from .stripe_client import PaymentGateway, get_payment_gateway

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["Checkout API"])

# module storefront.payments.views
@router.post("/create-checkout-session", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def api_create_checkout_session(
    request: Request,
    db: Client = Depends(get_service_supabase),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """
    Crée une session Checkout Stripe et renvoie l'URL de la page de paiement hébergée.
    - Entrée JSON: { "items": [ { "productId": "<uuid>", "qty": <int> }, ... ], "guest_email"?: "<email>" }
    - Authorization: Bearer <token> optionnel (sinon guest_email obligatoire)
    - Réponses: 200 {ok, url}; 400 panier vide/invalide; 401; 403 email non confirmé; 500
    """
    try:
        body = await request.json()
    except ValueError as e:
        raise ClientInputError("Invalid JSON body") from e
    if not isinstance(body, dict):
        raise ClientInputError("Invalid JSON body")

    session = await run_in_threadpool(
        create_checkout_session,
        db,
        gateway,
        items=body.get("items"),
        token=bearer_token(request),
        guest_email=body.get("guest_email"),
        base_url=build_base_url(request),
    )
    return JSONResponse({"ok": True, "url": session.url})
