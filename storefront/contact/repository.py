from typing import Any, Dict, Optional
import logging

from supabase import Client

from storefront.errors import PersistenceError
from storefront.infra.supabase_client import first_row

logger = logging.getLogger(__name__)

def insert_contact_message(db: Client, row: Dict[str, Any]) -> Optional[str]:
    """Insert dans contact_messages; retourne l'id créé."""
    try:
        res = db.table("contact_messages").insert(row).execute()
    except Exception as e:
        logger.exception("contact.repository.insert_contact_message failed")
        raise PersistenceError("Errore salvataggio del messaggio.") from e
    row = first_row(res) or {}
    return str(row["id"]) if row.get("id") is not None else None
