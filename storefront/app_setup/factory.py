"""
Factory d'application utilisée par les entrypoints (storefront.app, storefront.asgi).
Ordonne les étapes d'initialisation de manière lisible et testable.
"""
from fastapi import FastAPI
from storefront.config import FORCE_HTTPS, STORE_NAME
from .lifespan import lifespan
from .middlewares import register_basic_middlewares, register_no_cache_middleware, register_force_https_middleware
from .security import register_security_middleware
from .exceptions import register_exception_handlers
from .routers import register_routers

def create_app() -> FastAPI:
    """
    Construit l'app FastAPI avec le lifespan et enregistre:
      - middlewares de base (CORS, TrustedHost, proxy), sécurité, no-store sur /api
      - gestionnaires d'exceptions (format {ok:false, error})
      - tous les routers (API boutique, health)
      - redirection HTTPS en dernier (s'exécute en premier) si FORCE_HTTPS
    """
    app = FastAPI(title=f"{STORE_NAME} API", lifespan=lifespan)
    register_basic_middlewares(app)
    register_security_middleware(app)
    register_no_cache_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    if FORCE_HTTPS:
        register_force_https_middleware(app)
    return app
