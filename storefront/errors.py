"""Exceptions métier de la boutique.

Chaque erreur porte son code HTTP et un message sûr à afficher côté client.
Le gestionnaire enregistré par la factory (app_setup.exceptions) les convertit en
réponse JSON {ok: false, error, details}.
"""
from typing import Any, Optional


class StorefrontError(Exception):
    """Base de toutes les erreurs applicatives."""

    status_code = 500
    default_error = "Server error"

    def __init__(self, error: Optional[str] = None, details: Any = None):
        self.error = error or self.default_error
        self.details = details
        super().__init__(self.error)

    def to_dict(self) -> dict:
        body = {"ok": False, "error": self.error}
        if self.details is not None:
            body["details"] = self.details
        return body


# --- Entrées client (4xx) ---

class ClientInputError(StorefrontError):
    status_code = 400
    default_error = "Invalid request"


class EmptyCart(ClientInputError):
    default_error = "Empty cart"


class NoPurchasableItems(ClientInputError):
    default_error = "No purchasable items (inactive/missing products)"


class InvalidField(ClientInputError):
    pass


class NotFoundError(StorefrontError):
    status_code = 404
    default_error = "Not found"


class ConflictError(StorefrontError):
    status_code = 409
    default_error = "Conflict"


# --- Authentification ---

class AuthError(StorefrontError):
    status_code = 401
    default_error = "Unauthorized"


class Unauthorized(AuthError):
    pass


class EmailNotConfirmed(AuthError):
    status_code = 403
    default_error = "Email not confirmed"


# --- Webhook ---

class WebhookSignatureError(StorefrontError):
    status_code = 400
    default_error = "Webhook signature verification failed"


# --- Services externes / persistance (5xx) ---

class UpstreamServiceError(StorefrontError):
    status_code = 500
    default_error = "Upstream service error"


class PaymentProviderError(UpstreamServiceError):
    default_error = "Payment provider error"


class PersistenceError(StorefrontError):
    status_code = 500
    default_error = "Database error"


class ConfigurationError(StorefrontError):
    status_code = 500
    default_error = "Server misconfigured"


class NotificationError(StorefrontError):
    """Échec d'envoi d'email: journalisé, jamais renvoyé au client."""

    default_error = "Notification failed"
