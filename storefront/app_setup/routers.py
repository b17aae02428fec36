"""
Registre central des routers.
- API boutique: checkout, webhook + statut de commande, rivenditori, contact
- Health & config publique
"""
from fastapi import FastAPI
from storefront.payments import views as payments_views
from storefront.orders import views as orders_views
from storefront.retailers import views as retailers_views
from storefront.contact import views as contact_views
from storefront.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    # API
    app.include_router(payments_views.router)
    app.include_router(orders_views.router)
    app.include_router(retailers_views.router)
    app.include_router(contact_views.router)
    # Health & monitoring
    app.include_router(health_router)
