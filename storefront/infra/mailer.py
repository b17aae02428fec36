"""
Adaptateur Resend: envoi des emails transactionnels (commandes, rivenditori, contact).

Les envois sont « best-effort »: toute erreur est journalisée et convertie en False,
jamais propagée au handler HTTP appelant.
"""
import logging
from typing import List, Optional, Union

import resend

from storefront.config import RESEND_API_KEY
from storefront.errors import NotificationError

logger = logging.getLogger(__name__)


class Mailer:
    def __init__(self, api_key: str, default_from: str = ""):
        self.api_key = (api_key or "").strip()
        self.default_from = (default_from or "").strip()

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _deliver(self, payload: dict) -> str:
        resend.api_key = self.api_key
        try:
            response = resend.Emails.send(payload)
        except Exception as exc:
            raise NotificationError(str(exc)) from exc
        email_id = response.get("id") if isinstance(response, dict) else getattr(response, "id", None)
        if not email_id:
            raise NotificationError(f"Unexpected Resend response: {response!r}")
        return email_id

    def send(
        self,
        to: Union[str, List[str]],
        subject: str,
        html: str,
        *,
        from_email: Optional[str] = None,
        reply_to: Optional[str] = None,
    ) -> bool:
        """
        Envoie un email HTML.
        - Retourne True si Resend a accepté le message, False sinon (non configuré ou erreur).
        """
        sender = (from_email or self.default_from or "").strip()
        recipients = [to] if isinstance(to, str) else list(to or [])
        recipients = [r for r in recipients if r]
        if not self.configured or not sender:
            logger.warning("Email not sent (Resend not configured) subject=%s", subject)
            return False
        if not recipients:
            logger.warning("Email not sent (no recipient) subject=%s", subject)
            return False

        payload = {"from": sender, "to": recipients, "subject": subject, "html": html}
        if reply_to:
            payload["reply_to"] = reply_to
        try:
            email_id = self._deliver(payload)
        except NotificationError as e:
            logger.error("Resend send failed subject=%s: %s", subject, e.error)
            return False
        logger.info("Email sent id=%s subject=%s", email_id, subject)
        return True


_mailer: Optional[Mailer] = None

def get_mailer() -> Mailer:
    """Mailer partagé par le process (injecté via Depends)."""
    global _mailer
    if _mailer is None:
        _mailer = Mailer(RESEND_API_KEY)
    return _mailer
