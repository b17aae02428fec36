"""
Client VIES (service SOAP checkVat de la Commission européenne).

Ne lève jamais: un service injoignable donne VatCheckResult(reachable=False),
une réponse sans <valid> exploitable donne valid=None.
"""
import logging
import re
from typing import Optional
from xml.sax.saxutils import escape

import httpx

from storefront.config import VIES_TIMEOUT_SECONDS, VIES_URL
from .models import VatCheckResult

logger = logging.getLogger(__name__)

VALID_RE = re.compile(r"<(?:\w+:)?valid>\s*(true|false)\s*</(?:\w+:)?valid>", re.IGNORECASE)

ENVELOPE = """<?xml version="1.0" encoding="UTF-8"?>
<soap:Envelope xmlns:soap="http://schemas.xmlsoap.org/soap/envelope/">
  <soap:Body>
    <checkVat xmlns="urn:ec.europa.eu:taxud:vies:services:checkVat:types">
      <countryCode>{country}</countryCode>
      <vatNumber>{number}</vatNumber>
    </checkVat>
  </soap:Body>
</soap:Envelope>"""


class VatChecker:
    def __init__(self, url: str, timeout: float = 8.0, client: Optional[httpx.Client] = None):
        self.url = url
        self.timeout = timeout
        self._client = client

    def _post(self, body: str) -> httpx.Response:
        headers = {"Content-Type": "text/xml; charset=utf-8"}
        if self._client is not None:
            return self._client.post(self.url, content=body, headers=headers, timeout=self.timeout)
        return httpx.post(self.url, content=body, headers=headers, timeout=self.timeout)

    def check(self, country_code: str, vat_number: str) -> VatCheckResult:
        body = ENVELOPE.format(country=escape(country_code), number=escape(vat_number))
        try:
            response = self._post(body)
        except httpx.HTTPError as e:
            logger.warning("VIES unreachable country=%s: %s", country_code, type(e).__name__)
            return VatCheckResult(reachable=False)

        match = VALID_RE.search(response.text or "")
        if not match:
            logger.warning("VIES answer without <valid> country=%s status=%s", country_code, response.status_code)
            return VatCheckResult(reachable=True, valid=None)
        return VatCheckResult(reachable=True, valid=match.group(1).lower() == "true")


_checker: Optional[VatChecker] = None

def get_vat_checker() -> VatChecker:
    """Client VIES partagé par le process (injecté via Depends)."""
    global _checker
    if _checker is None:
        _checker = VatChecker(VIES_URL, timeout=VIES_TIMEOUT_SECONDS)
    return _checker
