from typing import Optional

from pydantic import BaseModel


class ContactForm(BaseModel):
    """Corps JSON de POST /api/contact; 'website' est un champ piège (honeypot)."""
    name: Optional[str] = ""
    email: Optional[str] = ""
    phone: Optional[str] = ""
    subject: Optional[str] = ""
    message: Optional[str] = ""
    privacy: Optional[bool] = False
    website: Optional[str] = ""
