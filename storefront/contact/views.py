from fastapi import APIRouter, Depends
from supabase import Client

from storefront.infra.mailer import Mailer, get_mailer
from storefront.infra.supabase_client import get_service_supabase
from storefront.utils.rate_limit import optional_rate_limit
from .models import ContactForm
from .service import submit_contact_message

router = APIRouter(prefix="/api", tags=["Contact API"])

@router.post("/contact", dependencies=[Depends(optional_rate_limit(times=5, seconds=60))])
def contact(
    form: ContactForm,
    db: Client = Depends(get_service_supabase),
    mailer: Mailer = Depends(get_mailer),
):
    return submit_contact_message(db, mailer, form)
