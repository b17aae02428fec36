"""
Environnement Jinja2 partagé (autoescape actif) pour le rendu des emails HTML.
"""
from fastapi.templating import Jinja2Templates
from storefront.config import TEMPLATES_DIR, STORE_NAME

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

def format_money(cents, currency: str = "EUR") -> str:
    """1850, "eur" -> "18,50 EUR" (format italien)."""
    value = int(cents or 0)
    sign = "-" if value < 0 else ""
    euros, rest = divmod(abs(value), 100)
    return f"{sign}{euros},{rest:02d} {str(currency or 'EUR').upper()}"

templates.env.filters["money"] = format_money

def render_email(template_name: str, **context) -> str:
    context.setdefault("store_name", STORE_NAME)
    return templates.get_template(f"emails/{template_name}").render(**context)
