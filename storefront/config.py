# storefront.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Racine du projet puis chargement explicite du .env
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=False)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

"""
Configuration centrale de la boutique.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, Stripe, Resend, VIES)
- Paramètres du checkout (pages de retour, pays de livraison)
- Sécurité HTTP (CORS/hosts) et adresses email d'expédition/notification
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _env_flag(name: str, default: str = "false") -> bool:
    return _clean_env(os.getenv(name, default)).lower() in ("1", "true", "yes")

def _env_list(name: str, default: str) -> list:
    return [p.strip() for p in os.getenv(name, default).split(",") if p.strip()]

# Supabase: URL et clés (anon = publique, service = opérations serveur sans RLS)
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL") or "")
SUPABASE_ANON = _clean_env(os.getenv("SUPABASE_ANON_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(
    os.getenv("SUPABASE_SERVICE_KEY") or os.getenv("SUPABASE_SERVICE_ROLE_KEY") or ""
)

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Stripe: clé secrète et secret de signature du webhook
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")

# Pages de succès/annulation du checkout (relatives à l'hôte de la requête)
CHECKOUT_SUCCESS_PATH = os.getenv("CHECKOUT_SUCCESS_PATH", "/success.html?session_id={CHECKOUT_SESSION_ID}")
CHECKOUT_CANCEL_PATH = os.getenv("CHECKOUT_CANCEL_PATH", "/cancel.html")
SHIPPING_ALLOWED_COUNTRIES = [c.upper() for c in _env_list("SHIPPING_ALLOWED_COUNTRIES", "IT")]
COLLECT_PHONE_NUMBER = _env_flag("COLLECT_PHONE_NUMBER", "true")

# Timeout (secondes) des appels sortants Stripe / Supabase Auth
EXTERNAL_TIMEOUT_SECONDS = float(os.getenv("EXTERNAL_TIMEOUT_SECONDS", "10"))

# Emails transactionnels (Resend)
RESEND_API_KEY = _clean_env(os.getenv("RESEND_API_KEY") or "")
STORE_NAME = os.getenv("STORE_NAME", "Agricola Gentili")
CONTACT_FROM_EMAIL = _clean_env(os.getenv("CONTACT_FROM_EMAIL") or "")
CONTACT_TO_EMAIL = _clean_env(os.getenv("CONTACT_TO_EMAIL") or "")
ORDERS_FROM_EMAIL = _clean_env(os.getenv("ORDERS_FROM_EMAIL") or "") or CONTACT_FROM_EMAIL
ORDERS_TEAM_EMAIL = _clean_env(os.getenv("ORDERS_TEAM_EMAIL") or "") or CONTACT_TO_EMAIL
RETAILER_FROM_EMAIL = _clean_env(os.getenv("RETAILER_FROM_EMAIL") or "") or CONTACT_FROM_EMAIL
RETAILER_TEAM_EMAIL = _clean_env(os.getenv("RETAILER_TEAM_EMAIL") or "") or CONTACT_TO_EMAIL

# Rivenditori: vérification TVA (VIES) et politique pour les TVA non vérifiables
VIES_URL = os.getenv("VIES_URL", "https://ec.europa.eu/taxation_customs/vies/services/checkVatService")
VIES_TIMEOUT_SECONDS = float(os.getenv("VIES_TIMEOUT_SECONDS", "8"))
AUTO_APPROVE_UNVERIFIED = _env_flag("AUTO_APPROVE_UNVERIFIED", "false")

# Sécurité HTTP
COOKIE_SECURE = _env_flag("COOKIE_SECURE", "false")
FORCE_HTTPS = _env_flag("FORCE_HTTPS", "false")
CORS_ORIGINS = _env_list("CORS_ORIGINS", "*")
ALLOWED_HOSTS = _env_list("ALLOWED_HOSTS", "*")
