"""Formulaire de contact: anti-bot, validation, stockage puis email à l'équipe (best-effort)."""
import logging
from typing import Any, Dict

from supabase import Client

from storefront import config
from storefront.errors import InvalidField
from storefront.infra.mailer import Mailer
from storefront.utils.templates import render_email
from storefront.utils.validators import clean_text, is_valid_email, optional_text
from . import repository
from .models import ContactForm

logger = logging.getLogger(__name__)

EMAIL_WARNING = "Salvato ma email non inviata."

def submit_contact_message(db: Client, mailer: Mailer, form: ContactForm) -> Dict[str, Any]:
    """
    - honeypot rempli -> {ok: true} sans aucun effet
    - privacy non acceptée / champ obligatoire manquant / email invalide -> 400
    - message stocké (500 si échec), puis email équipe avec reply-to = expéditeur
    """
    if clean_text(form.website):
        logger.info("contact honeypot triggered")
        return {"ok": True}

    if not form.privacy:
        raise InvalidField("Devi accettare la Privacy Policy.")
    name = clean_text(form.name)
    email = clean_text(form.email)
    subject = clean_text(form.subject)
    message = clean_text(form.message)
    if not (name and email and subject and message):
        raise InvalidField("Compila tutti i campi obbligatori.")
    if not is_valid_email(email):
        raise InvalidField("Email non valida.")

    row = {"name": name, "email": email, "phone": optional_text(form.phone), "subject": subject, "message": message}
    message_id = repository.insert_contact_message(db, row)

    sent = mailer.send(
        to=config.CONTACT_TO_EMAIL,
        subject=f"[Contatti] {subject} - {name}",
        html=render_email("contact_team.html", message_id=message_id, **row),
        from_email=config.CONTACT_FROM_EMAIL,
        reply_to=email,
    )
    if not sent:
        return {"ok": True, "id": message_id, "warning": EMAIL_WARNING}
    return {"ok": True, "id": message_id}
