from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from storefront import config
from storefront.errors import ConfigurationError
from storefront.utils.rate_limit import rate_limit_health_info

router = APIRouter(tags=["Health"])

@router.get("/health")
def health_root(request: Request):
    return {"ok": True, "rate_limit": rate_limit_health_info(request)}

@router.get("/api/env-check")
def env_check():
    """Présence des variables d'environnement (booléens uniquement, jamais les valeurs)."""
    return JSONResponse({
        "hasSupabaseUrl": bool(config.SUPABASE_URL),
        "hasSupabaseServiceKey": bool(config.SUPABASE_SERVICE_KEY),
        "hasSupabaseAnonKey": bool(config.SUPABASE_ANON),
        "hasStripeSecretKey": bool(config.STRIPE_SECRET_KEY),
        "hasStripeWebhookSecret": bool(config.STRIPE_WEBHOOK_SECRET),
        "hasResendKey": bool(config.RESEND_API_KEY),
        "hasToEmail": bool(config.CONTACT_TO_EMAIL),
        "hasFromEmail": bool(config.CONTACT_FROM_EMAIL),
        "hasOrdersTeamEmail": bool(config.ORDERS_TEAM_EMAIL),
    })

@router.get("/api/public-config")
def public_config():
    """URL Supabase + clé anon (publique) pour le client navigateur."""
    if not config.SUPABASE_URL or not config.SUPABASE_ANON:
        raise ConfigurationError(
            "Missing SUPABASE_URL or SUPABASE_ANON_KEY",
            details={"hasSupabaseUrl": bool(config.SUPABASE_URL), "hasSupabaseAnonKey": bool(config.SUPABASE_ANON)},
        )
    return {"ok": True, "supabaseUrl": config.SUPABASE_URL, "supabaseAnonKey": config.SUPABASE_ANON}
