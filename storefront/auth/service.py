from typing import Optional

from supabase import Client

from storefront.auth.models import AuthenticatedCaller, AuthUser, Caller, GuestCaller, normalize_role
from storefront.errors import EmailNotConfirmed, Unauthorized
from storefront.utils.validators import is_valid_email
from .repository import fetch_profile_role, get_user_from_access_token

GUEST_HINT = "Conferma l’email oppure procedi come ospite inserendo un’email nel carrello."

def authenticate(db: Client, token: Optional[str]) -> AuthUser:
    """Utilisateur du token Bearer; Unauthorized (401) si absent ou invalide."""
    if not token:
        raise Unauthorized("Unauthorized (missing Bearer token)")
    return get_user_from_access_token(db, token)

def resolve_caller(db: Client, token: Optional[str], guest_email: Optional[str]) -> Caller:
    """
    Identité de l'acheteur pour le checkout.
    - Token présent: doit être valide (401) et l'email confirmé (403, le client repasse en invité).
      Rôle lu dans profiles (customer par défaut).
    - Sans token: checkout invité UNIQUEMENT avec un guest_email valide, sinon 401.
    """
    if token:
        user = get_user_from_access_token(db, token)
        if not user.email_confirmed:
            raise EmailNotConfirmed(details=GUEST_HINT)
        role = normalize_role(fetch_profile_role(db, user.id))
        return AuthenticatedCaller(user_id=user.id, email=user.email, role=role)

    email = str(guest_email or "").strip()
    if not is_valid_email(email):
        raise Unauthorized(
            "Unauthorized",
            details="Login required. If you cannot login, provide guest_email for fallback checkout.",
        )
    return GuestCaller(email=email)
