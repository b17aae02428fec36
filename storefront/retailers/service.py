"""Couche service de la demande d'accès rivenditore.
Rôles:
- Valider la session et bloquer la ré-soumission tant qu'une demande est « pending ».
- Enregistrer la demande (upsert par user_id) puis vérifier la TVA via VIES.
- Promouvoir le profil en « retailer » uniquement si la demande est approuvée.
- Prévenir le demandeur et l'équipe par email (best-effort).
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging

from supabase import Client

from storefront import config
from storefront.auth.models import RETAILER_ROLE, AuthUser
from storefront.auth.repository import set_profile_role
from storefront.auth.service import authenticate
from storefront.errors import ConflictError, InvalidField
from storefront.infra.mailer import Mailer
from storefront.utils.templates import render_email
from storefront.utils.validators import clean_text, optional_text
from . import repository
from .models import (
    OPTIONAL_FIELDS,
    STATUS_APPROVED,
    STATUS_PENDING,
    RetailerApplicationForm,
    RetailerDecision,
    decide_status,
    is_eu_vat_country,
    normalize_iso2,
    normalize_vat,
    parse_vat,
)
from .vies import VatChecker

logger = logging.getLogger(__name__)

APPLICANT_TEMPLATES = {
    "approved": ("retailer_approved.html", "Accesso Rivenditori attivato"),
    "rejected": ("retailer_rejected.html", "Richiesta Rivenditori rifiutata"),
    "pending": ("retailer_pending.html", "Richiesta Rivenditori in verifica"),
}

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

def build_application_payload(user_id: str, form: RetailerApplicationForm) -> Dict[str, Any]:
    """Valide le formulaire et construit la ligne retailer_applications (statut pending)."""
    company_name = clean_text(form.company_name)
    vat_number = normalize_vat(form.vat_number)
    billing_country = normalize_iso2(form.billing_country or "IT")

    if not company_name:
        raise InvalidField("Missing company_name")
    if not vat_number:
        raise InvalidField("Invalid vat_number")
    if not billing_country:
        raise InvalidField("Invalid billing_country (ISO2)")

    payload: Dict[str, Any] = {
        "user_id": user_id,
        "company_name": company_name,
        "vat_number": vat_number,
        "billing_country": billing_country,
    }
    for field in OPTIONAL_FIELDS:
        payload[field] = optional_text(getattr(form, field))
    payload.update({"status": STATUS_PENDING, "approved_at": None, "notes": None, "updated_at": _now_iso()})
    return payload

def verify_vat(vat_checker: VatChecker, vat_number: str, billing_country: str) -> RetailerDecision:
    parsed = parse_vat(vat_number, billing_country)
    check = None
    if parsed and is_eu_vat_country(parsed[0]):
        check = vat_checker.check(*parsed)
    return decide_status(check, config.AUTO_APPROVE_UNVERIFIED)

def notify_application(
    mailer: Mailer,
    user: AuthUser,
    payload: Dict[str, Any],
    decision: RetailerDecision,
    area_url: str,
) -> None:
    """Emails demandeur (un modèle par statut) + récapitulatif équipe; n'échoue jamais."""
    context = {
        "company_name": payload["company_name"],
        "vat_number": payload["vat_number"],
        "status": decision.status,
        "reason": decision.reason,
        "area_url": area_url,
        "user_id": user.id,
        "user_email": user.email,
    }
    try:
        template, subject = APPLICANT_TEMPLATES[decision.status]
        if user.email:
            mailer.send(
                to=user.email,
                subject=f"{subject} - {config.STORE_NAME}",
                html=render_email(template, **context),
                from_email=config.RETAILER_FROM_EMAIL,
            )
        if config.RETAILER_TEAM_EMAIL:
            mailer.send(
                to=config.RETAILER_TEAM_EMAIL,
                subject=f"Rivenditore: {decision.status.upper()} - {payload['company_name']}",
                html=render_email("retailer_team.html", **context),
                from_email=config.RETAILER_FROM_EMAIL,
                reply_to=user.email or None,
            )
    except Exception:
        logger.exception("retailer notifications failed user_id=%s", user.id)

def apply_for_retailer(
    db: Client,
    vat_checker: VatChecker,
    mailer: Mailer,
    *,
    token: Optional[str],
    form: RetailerApplicationForm,
    base_url: str,
) -> RetailerDecision:
    """
    Traite une demande rivenditore:
      1) session valide (401), pas de demande « pending » en cours (409)
      2) validation des champs (400) puis upsert en « pending »
      3) vérification TVA (VIES pour les pays UE) -> approved/rejected/pending
      4) mise à jour du statut; rôle retailer seulement si approved
      5) emails best-effort
    """
    user = authenticate(db, token)
    if repository.fetch_application_status(db, user.id) == STATUS_PENDING:
        raise ConflictError("Application pending (resubmission disabled)", details={"status": STATUS_PENDING})

    payload = build_application_payload(user.id, form)
    repository.upsert_application(db, payload)

    decision = verify_vat(vat_checker, payload["vat_number"], payload["billing_country"])
    now = _now_iso()
    repository.update_application_status(db, user.id, {
        "status": decision.status,
        "notes": decision.reason,
        "approved_at": now if decision.status == STATUS_APPROVED else None,
        "updated_at": now,
    })
    if decision.status == STATUS_APPROVED:
        set_profile_role(db, user.id, RETAILER_ROLE)

    logger.info("retailer application user_id=%s status=%s", user.id, decision.status)
    notify_application(mailer, user, payload, decision, f"{base_url.rstrip('/')}/area-rivenditori.html")
    return decision
