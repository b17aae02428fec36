from typing import Optional
from fastapi import Request

def bearer_token(request: Request) -> Optional[str]:
    """Extrait le token de l'en-tête Authorization: Bearer <token> (None si absent)."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
        return token or None
    return None

def build_base_url(request: Request) -> str:
    """
    URL de base publique de la requête (derrière proxy: x-forwarded-proto / x-forwarded-host).
    Sert à construire les URLs de retour Stripe et les liens des emails.
    """
    proto = request.headers.get("x-forwarded-proto") or "https"
    host = request.headers.get("x-forwarded-host") or request.headers.get("host") or request.url.netloc
    return f"{proto.split(',')[0].strip()}://{host.split(',')[0].strip()}"
