from dataclasses import dataclass
from typing import Any, Optional, Union


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: Optional[str]
    email_confirmed: bool

def _field(obj: Any, name: str):
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)

def build_auth_user(user: Any) -> Optional[AuthUser]:
    """
    Normalise l'utilisateur renvoyé par supabase.auth (objet pydantic ou dict).
    Email confirmé si email_confirmed_at ou confirmed_at est renseigné.
    """
    if not user:
        return None
    uid = _field(user, "id")
    if not uid:
        return None
    confirmed_at = _field(user, "email_confirmed_at") or _field(user, "confirmed_at")
    return AuthUser(id=str(uid), email=_field(user, "email") or None, email_confirmed=bool(confirmed_at))


CUSTOMER_ROLE = "customer"
RETAILER_ROLE = "retailer"
KNOWN_ROLES = (CUSTOMER_ROLE, RETAILER_ROLE)

def normalize_role(role) -> str:
    """Rôle connu (customer|retailer); tout le reste retombe sur customer."""
    value = str(role or "").strip().lower()
    return value if value in KNOWN_ROLES else CUSTOMER_ROLE


@dataclass(frozen=True)
class AuthenticatedCaller:
    user_id: str
    email: Optional[str]
    role: str = CUSTOMER_ROLE
    is_guest = False


@dataclass(frozen=True)
class GuestCaller:
    email: str
    role: str = CUSTOMER_ROLE
    user_id = None
    is_guest = True


Caller = Union[AuthenticatedCaller, GuestCaller]
