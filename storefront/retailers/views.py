from fastapi import APIRouter, Depends, Request
from supabase import Client

from storefront.infra.mailer import Mailer, get_mailer
from storefront.infra.supabase_client import get_service_supabase
from storefront.utils.rate_limit import optional_rate_limit
from storefront.utils.security import bearer_token, build_base_url
from .models import RetailerApplicationForm
from .service import apply_for_retailer
from .vies import VatChecker, get_vat_checker

router = APIRouter(prefix="/api", tags=["Retailers API"])

# module storefront.retailers.views
@router.post("/retailer-apply", dependencies=[Depends(optional_rate_limit(times=5, seconds=60))])
def retailer_apply(
    request: Request,
    form: RetailerApplicationForm,
    db: Client = Depends(get_service_supabase),
    vat_checker: VatChecker = Depends(get_vat_checker),
    mailer: Mailer = Depends(get_mailer),
):
    """
    Demande d'accès rivenditore (Authorization: Bearer requis).
    Réponses: 200 {ok, status, reason}; 400 champs invalides; 401; 409 demande en attente; 500
    """
    decision = apply_for_retailer(
        db,
        vat_checker,
        mailer,
        token=bearer_token(request),
        form=form,
        base_url=build_base_url(request),
    )
    return {"ok": True, "status": decision.status, "reason": decision.reason}
