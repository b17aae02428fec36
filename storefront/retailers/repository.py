from typing import Any, Dict, Optional
import logging

from supabase import Client

from storefront.errors import PersistenceError
from storefront.infra.supabase_client import first_row

logger = logging.getLogger(__name__)

# --- Table retailer_applications (une demande par user_id) ---

def fetch_application_status(db: Client, user_id: str) -> Optional[str]:
    try:
        res = (
            db.table("retailer_applications")
            .select("status")
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.exception("retailers.repository.fetch_application_status failed user_id=%s", user_id)
        raise PersistenceError("DB error") from e
    return (first_row(res) or {}).get("status") or None

def upsert_application(db: Client, payload: Dict[str, Any]) -> None:
    """Crée ou remplace la demande de l'utilisateur (on_conflict=user_id)."""
    try:
        db.table("retailer_applications").upsert(payload, on_conflict="user_id").execute()
    except Exception as e:
        logger.exception("retailers.repository.upsert_application failed user_id=%s", payload.get("user_id"))
        raise PersistenceError("Save failed") from e

def update_application_status(db: Client, user_id: str, fields: Dict[str, Any]) -> None:
    try:
        db.table("retailer_applications").update(fields).eq("user_id", user_id).execute()
    except Exception as e:
        logger.exception("retailers.repository.update_application_status failed user_id=%s", user_id)
        raise PersistenceError("Application status update failed") from e
