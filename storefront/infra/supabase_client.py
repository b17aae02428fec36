from typing import Any, Optional
from supabase import create_client, Client, ClientOptions
from storefront.config import SUPABASE_URL, SUPABASE_SERVICE_KEY, EXTERNAL_TIMEOUT_SECONDS
from storefront.errors import ConfigurationError

# Codes PostgreSQL / PostgREST utilisés par les repositories
UNIQUE_VIOLATION = "23505"
UNDEFINED_COLUMN_CODES = ("42703", "PGRST204")

_service_supabase: Optional[Client] = None

def get_service_supabase() -> Client:
    """
    Client Supabase service-role (bypass RLS), construit une seule fois par process.
    Injecté dans les routes via Depends(get_service_supabase).
    """
    global _service_supabase
    if not SUPABASE_URL or not SUPABASE_SERVICE_KEY:
        raise ConfigurationError("Server misconfigured (Supabase env missing)")
    if _service_supabase is None:
        options = ClientOptions(postgrest_client_timeout=EXTERNAL_TIMEOUT_SECONDS)
        _service_supabase = create_client(SUPABASE_URL, SUPABASE_SERVICE_KEY, options=options)
    return _service_supabase

def pg_error_code(exc: BaseException) -> Optional[str]:
    """Extrait le code d'une APIError postgrest (attribut .code ou dict en args[0])."""
    code: Any = getattr(exc, "code", None)
    if not code and exc.args and isinstance(exc.args[0], dict):
        code = exc.args[0].get("code")
    return str(code) if code else None

def is_unique_violation(exc: BaseException) -> bool:
    return pg_error_code(exc) == UNIQUE_VIOLATION

def is_missing_column(exc: BaseException) -> bool:
    return pg_error_code(exc) in UNDEFINED_COLUMN_CODES

def first_row(res) -> Optional[dict]:
    """Première ligne d'une réponse PostgREST (liste ou dict), None si vide."""
    data = getattr(res, "data", None) if res is not None else None
    if isinstance(data, list):
        return data[0] if data else None
    if isinstance(data, dict):
        return data
    return None
