import re

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

def is_valid_email(value) -> bool:
    return bool(EMAIL_RE.match(str(value or "").strip()))

def clean_text(value) -> str:
    return str(value if value is not None else "").strip()

def optional_text(value):
    """Chaîne nettoyée, ou None si vide (colonnes nullable)."""
    return clean_text(value) or None
