"""
Middlewares transverses de l'application.
- register_basic_middlewares: CORS, TrustedHost et confiance en X-Forwarded-*.
- register_no_cache_middleware: Cache-Control: no-store sur toutes les réponses /api.
- register_force_https_middleware: redirection HTTPS si FORCE_HTTPS (derrière proxy).
Notes:
- L'ordre d'ajout est important: le middleware HTTPS est ajouté en dernier pour s'exécuter en premier.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from starlette.middleware.trustedhost import TrustedHostMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from storefront.config import CORS_ORIGINS, ALLOWED_HOSTS

def register_basic_middlewares(app: FastAPI) -> None:
    """
    - CORSMiddleware: origines autorisées (les appels API portent un Bearer, pas de cookie)
    - TrustedHostMiddleware: limite les hôtes acceptés (défense host header)
    - ProxyHeadersMiddleware: fait confiance aux en-têtes du proxy (x-forwarded-*)
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials="*" not in CORS_ORIGINS,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Stripe-Signature"],
    )
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=ALLOWED_HOSTS)
    # Fait confiance aux en-têtes X-Forwarded-* (Vercel, Render, Nginx, etc.)
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")

def register_no_cache_middleware(app: FastAPI) -> None:
    """Les réponses API (statut de commande, config publique, ...) ne sont jamais mises en cache."""
    @app.middleware("http")
    async def no_store_for_api(request: Request, call_next):
        response = await call_next(request)
        if request.url.path.startswith("/api/"):
            response.headers["Cache-Control"] = "no-store"
        return response

def register_force_https_middleware(app: FastAPI) -> None:
    """
    Force la redirection HTTP -> HTTPS lorsqu'un proxy place x-forwarded-proto=http.
    Le webhook Stripe n'est jamais redirigé (Stripe ne suit pas les redirections).
    """
    @app.middleware("http")
    async def force_https(request: Request, call_next):
        if (
            request.headers.get("x-forwarded-proto") == "http"
            and request.url.path != "/api/stripe-webhook"
        ):
            url = str(request.url.replace(scheme="https"))
            return RedirectResponse(url, status_code=301)
        return await call_next(request)
