import logging
from typing import Optional

from supabase import Client

from storefront.auth.models import AuthUser, build_auth_user
from storefront.errors import PersistenceError, Unauthorized
from storefront.infra.supabase_client import first_row

logger = logging.getLogger(__name__)

# --- Auth (supabase.auth.*) ---

def get_user_from_access_token(db: Client, access_token: str) -> AuthUser:
    """Valide un access token via supabase.auth.get_user; Unauthorized (401) si invalide."""
    try:
        res = db.auth.get_user(access_token)
    except Exception as e:
        logger.warning("auth.get_user rejected token: %s", type(e).__name__)
        raise Unauthorized("Invalid session") from e
    user = build_auth_user(getattr(res, "user", None) if res is not None else None)
    if user is None:
        raise Unauthorized("Invalid session")
    return user

def get_user_email_by_id(db: Client, user_id: str) -> Optional[str]:
    """Email stocké par le fournisseur d'identité (admin API). None si introuvable/erreur."""
    if not user_id:
        return None
    try:
        res = db.auth.admin.get_user_by_id(user_id)
    except Exception:
        logger.warning("auth.admin.get_user_by_id failed user_id=%s", user_id)
        return None
    user = build_auth_user(getattr(res, "user", None) if res is not None else None)
    return user.email if user else None

# --- Table profiles ---

def fetch_profile_role(db: Client, user_id: str) -> Optional[str]:
    """Rôle du profil (table profiles); None si pas de profil. PersistenceError si la requête échoue."""
    try:
        res = db.table("profiles").select("role").eq("id", user_id).limit(1).execute()
    except Exception as e:
        logger.exception("auth.repository.fetch_profile_role failed user_id=%s", user_id)
        raise PersistenceError("Profiles query failed") from e
    row = first_row(res)
    return (row or {}).get("role") or None

def set_profile_role(db: Client, user_id: str, role: str) -> None:
    try:
        db.table("profiles").update({"role": role}).eq("id", user_id).execute()
    except Exception as e:
        logger.exception("auth.repository.set_profile_role failed user_id=%s role=%s", user_id, role)
        raise PersistenceError("profiles.role update failed") from e
