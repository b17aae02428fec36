"""
Lancement local de l'API boutique: `python -m storefront` (ou la commande `storefront`).

Variables lues: HOST (0.0.0.0), PORT (8000), UVICORN_RELOAD, LOG_LEVEL (info).
Les en-têtes X-Forwarded-* sont acceptés: l'API tourne derrière un proxy (Vercel, Render...)
et build_base_url en dépend pour les URLs de retour Stripe.
"""
import os

import uvicorn

def uvicorn_options(env=None) -> dict:
    env = os.environ if env is None else env
    return {
        "host": env.get("HOST", "0.0.0.0"),
        "port": int(env.get("PORT") or 8000),
        "reload": env.get("UVICORN_RELOAD", "").lower() in ("1", "true", "yes"),
        "log_level": env.get("LOG_LEVEL", "info").lower(),
        "proxy_headers": True,
        "forwarded_allow_ips": "*",
    }

def main() -> None:
    uvicorn.run("storefront.asgi:app", **uvicorn_options())

if __name__ == "__main__":
    main()
