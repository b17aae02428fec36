# module storefront.retailers.models
"""Règles pures de la demande rivenditore: normalisation TVA/pays et décision de statut."""
import re
from dataclasses import dataclass
from typing import Optional, Tuple

from pydantic import BaseModel

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"

VAT_RE = re.compile(r"^(?:[A-Z]{2})?[A-Z0-9]{8,20}$")
VAT_WITH_PREFIX_RE = re.compile(r"^([A-Z]{2})([A-Z0-9]{6,})$")
ISO2_RE = re.compile(r"^[A-Z]{2}$")

# Codes pays VIES (la Grèce est EL côté VIES)
EU_VAT_COUNTRIES = frozenset({
    "AT", "BE", "BG", "CY", "CZ", "DE", "DK", "EE", "EL", "ES", "FI", "FR", "HR", "HU",
    "IE", "IT", "LT", "LU", "LV", "MT", "NL", "PL", "PT", "RO", "SE", "SI", "SK",
})
VIES_COUNTRY_ALIASES = {"GR": "EL"}

REASON_VERIFIED = "VAT verificata (VIES)."
REASON_INVALID = "VAT non valida (VIES)."
REASON_VIES_DOWN = "Verifica VAT temporaneamente non disponibile (VIES)."
REASON_AUTO_APPROVED = "Auto-approvato (VAT non verificabile automaticamente)."
REASON_UNVERIFIABLE = (
    "VAT non verificabile automaticamente: inserisci prefisso paese UE "
    "(es. IT, DE, FR) oppure contatta supporto."
)

OPTIONAL_FIELDS = (
    "pec_email", "sdi_code", "contact_name", "contact_phone",
    "billing_line1", "billing_line2", "billing_city", "billing_postal_code", "billing_state",
)


class RetailerApplicationForm(BaseModel):
    """Corps JSON de POST /api/retailer-apply (valeurs brutes, validées par le service)."""
    company_name: Optional[str] = None
    vat_number: Optional[str] = None
    billing_country: Optional[str] = None
    pec_email: Optional[str] = None
    sdi_code: Optional[str] = None
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None
    billing_line1: Optional[str] = None
    billing_line2: Optional[str] = None
    billing_city: Optional[str] = None
    billing_postal_code: Optional[str] = None
    billing_state: Optional[str] = None


@dataclass(frozen=True)
class VatCheckResult:
    reachable: bool
    valid: Optional[bool] = None


@dataclass(frozen=True)
class RetailerDecision:
    status: str
    reason: Optional[str]


def normalize_vat(value) -> Optional[str]:
    """Majuscules, caractères non alphanumériques retirés; None si le format est invalide."""
    vat = re.sub(r"[^A-Z0-9]", "", str(value or "").strip().upper())
    return vat if VAT_RE.match(vat) else None

def normalize_iso2(value) -> Optional[str]:
    code = str(value or "").strip().upper()
    return code if ISO2_RE.match(code) else None

def parse_vat(vat: str, fallback_country: Optional[str]) -> Optional[Tuple[str, str]]:
    """
    (code pays, numéro) pour VIES.
    Préfixe ISO-2 s'il est présent, sinon pays de facturation; None si aucun des deux.
    """
    match = VAT_WITH_PREFIX_RE.match(vat or "")
    if match:
        country, number = match.group(1), match.group(2)
    else:
        country = normalize_iso2(fallback_country)
        if not country:
            return None
        number = vat
    return VIES_COUNTRY_ALIASES.get(country, country), number

def is_eu_vat_country(country: Optional[str]) -> bool:
    return bool(country) and country in EU_VAT_COUNTRIES

def decide_status(check: Optional[VatCheckResult], auto_approve_unverified: bool) -> RetailerDecision:
    """
    - check None (TVA non vérifiable: hors UE ou non parsable) -> approved si auto-approbation, sinon rejected
    - VIES valide -> approved; invalide -> rejected; injoignable/sans réponse -> pending
    """
    if check is None:
        if auto_approve_unverified:
            return RetailerDecision(STATUS_APPROVED, REASON_AUTO_APPROVED)
        return RetailerDecision(STATUS_REJECTED, REASON_UNVERIFIABLE)
    if check.reachable and check.valid is True:
        return RetailerDecision(STATUS_APPROVED, REASON_VERIFIED)
    if check.reachable and check.valid is False:
        return RetailerDecision(STATUS_REJECTED, REASON_INVALID)
    return RetailerDecision(STATUS_PENDING, REASON_VIES_DOWN)
