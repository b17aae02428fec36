import hashlib
import hmac
import json
import os
import time
import uuid
from types import SimpleNamespace
from typing import Any, Dict, Generator, List, Optional

import pytest
from fastapi.testclient import TestClient
from postgrest.exceptions import APIError

# Pas de Redis pendant les tests: le lifespan désactive le rate limiting
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

from storefront import config
from storefront.app import app as fastapi_app
from storefront.errors import NotificationError
from storefront.infra.mailer import Mailer, get_mailer
from storefront.infra.supabase_client import get_service_supabase
from storefront.payments.models import CheckoutSessionResult, ProcessorLineItem
from storefront.payments.stripe_client import PaymentGateway, get_payment_gateway
from storefront.retailers.models import VatCheckResult
from storefront.retailers.vies import VatChecker, get_vat_checker

WEBHOOK_SECRET = "whsec_test_secret"

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "/tests/unit/" in nodeid or nodeid.startswith("tests/unit/") or nodeid.startswith("unit/"):
            item.add_marker(pytest.mark.unit)
        elif "/tests/integration/" in nodeid or nodeid.startswith("tests/integration/") or nodeid.startswith("integration/"):
            item.add_marker(pytest.mark.integration)


# --- Supabase en mémoire (table builder PostgREST minimal) ---

UNIQUE_KEYS = {
    "stripe_events": ("id",),
    "orders": ("stripe_session_id",),
    "retailer_applications": ("user_id",),
    "profiles": ("id",),
}


def _api_error(code: str, message: str) -> APIError:
    return APIError({"code": code, "message": message, "hint": None, "details": None})


class _Query:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.op = "select"
        self.columns = "*"
        self.payload: Any = None
        self.on_conflict: Optional[str] = None
        self.filters: List = []
        self._limit: Optional[int] = None

    def select(self, columns: str = "*"):
        self.op, self.columns = "select", columns
        return self

    def insert(self, payload):
        self.op, self.payload = "insert", payload
        return self

    def upsert(self, payload, on_conflict: Optional[str] = None):
        self.op, self.payload, self.on_conflict = "upsert", payload, on_conflict
        return self

    def update(self, payload):
        self.op, self.payload = "update", payload
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda r: r.get(column) == value)
        return self

    def in_(self, column, values):
        allowed = list(values)
        self.filters.append(lambda r: r.get(column) in allowed)
        return self

    def is_(self, column, value):
        self._check_columns([column])
        if value == "null":
            self.filters.append(lambda r: r.get(column) is None)
        else:
            self.filters.append(lambda r: r.get(column) is value)
        return self

    def limit(self, n: int):
        self._limit = n
        return self

    def _check_columns(self, columns):
        missing = self.db.missing_columns.get(self.table, set())
        for column in columns:
            if column in missing:
                raise _api_error("42703", f'column {self.table}.{column} does not exist')

    def _matching(self) -> List[Dict[str, Any]]:
        rows = [r for r in self.db.tables.setdefault(self.table, []) if all(f(r) for f in self.filters)]
        return rows[: self._limit] if self._limit is not None else rows

    def _project(self, row):
        if self.columns.strip() == "*":
            return dict(row)
        return {c.strip(): row.get(c.strip()) for c in self.columns.split(",")}

    def execute(self):
        self.db.calls.append((self.table, self.op))
        failure = self.db.failures.get((self.table, self.op))
        if failure is not None:
            raise failure
        rows = self.db.tables.setdefault(self.table, [])

        if self.op == "select":
            return SimpleNamespace(data=[self._project(r) for r in self._matching()])

        if self.op in ("insert", "upsert"):
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            created = []
            for item in items:
                self._check_columns(item.keys())
                row = dict(item)
                row.setdefault("id", str(uuid.uuid4()))
                existing = self._existing(row)
                if existing is not None:
                    if self.op == "insert":
                        raise _api_error("23505", f"duplicate key value violates unique constraint on {self.table}")
                    existing.update(item)
                    created.append(dict(existing))
                    continue
                rows.append(row)
                created.append(dict(row))
            return SimpleNamespace(data=created)

        if self.op == "update":
            self._check_columns(self.payload.keys())
            updated = []
            for row in self._matching():
                row.update(self.payload)
                updated.append(dict(row))
            return SimpleNamespace(data=updated)

        if self.op == "delete":
            doomed = self._matching()
            self.db.tables[self.table] = [r for r in rows if r not in doomed]
            return SimpleNamespace(data=[dict(r) for r in doomed])
        raise AssertionError(f"unsupported op {self.op}")

    def _existing(self, row):
        keys = UNIQUE_KEYS.get(self.table, ())
        if self.op == "upsert" and self.on_conflict:
            keys = tuple(k.strip() for k in self.on_conflict.split(","))
        if not keys:
            return None
        for candidate in self.db.tables.setdefault(self.table, []):
            if all(candidate.get(k) == row.get(k) for k in keys):
                return candidate
        return None


class _FakeAdmin:
    def __init__(self, auth: "_FakeAuth"):
        self._auth = auth

    def get_user_by_id(self, user_id):
        for user in self._auth.users.values():
            if user["id"] == user_id:
                return SimpleNamespace(user=dict(user))
        raise RuntimeError("User not found")


class _FakeAuth:
    def __init__(self):
        self.users: Dict[str, Dict[str, Any]] = {}
        self.admin = _FakeAdmin(self)

    def get_user(self, token):
        if token not in self.users:
            raise RuntimeError("invalid JWT")
        return SimpleNamespace(user=dict(self.users[token]))


class FakeSupabase:
    """Client Supabase en mémoire: tables, contraintes uniques, injection de pannes."""

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.failures: Dict[tuple, Exception] = {}
        self.missing_columns: Dict[str, set] = {}
        self.calls: List[tuple] = []
        self.auth = _FakeAuth()

    def table(self, name: str) -> _Query:
        return _Query(self, name)

    def rows(self, name: str) -> List[Dict[str, Any]]:
        return self.tables.get(name, [])

    def add_user(self, token, user_id, email, confirmed=True, role=None):
        self.auth.users[token] = {
            "id": user_id,
            "email": email,
            "email_confirmed_at": "2026-01-01T00:00:00Z" if confirmed else None,
            "confirmed_at": None,
        }
        if role:
            self.tables.setdefault("profiles", []).append({"id": user_id, "role": role})


# --- Stripe / Resend / VIES ---

class FakeGateway(PaymentGateway):
    """Gateway sans réseau: création de session et lignes simulées, vérification de signature réelle."""

    def __init__(self):
        super().__init__("sk_test_fake", WEBHOOK_SECRET, timeout=1)
        self.created: List[Any] = []
        self.line_items: Dict[str, List[ProcessorLineItem]] = {}
        self.line_items_error: Optional[Exception] = None
        self.list_calls = 0

    def create_session(self, params):
        self.created.append(params)
        return CheckoutSessionResult(id=f"cs_test_{len(self.created)}", url="https://checkout.stripe.test/pay")

    def list_line_items(self, session_id):
        self.list_calls += 1
        if self.line_items_error is not None:
            raise self.line_items_error
        return list(self.line_items.get(session_id, []))


class FakeMailer(Mailer):
    """Mailer réel dont seul l'appel Resend est remplacé."""

    def __init__(self):
        super().__init__("re_test_key", default_from="shop@example.com")
        self.sent: List[Dict[str, Any]] = []
        self.fail = False

    def _deliver(self, payload):
        if self.fail:
            raise NotificationError("resend down")
        self.sent.append(payload)
        return f"email_{len(self.sent)}"


class FakeVatChecker(VatChecker):
    def __init__(self, result: Optional[VatCheckResult] = None):
        super().__init__("https://vies.test/checkVatService", timeout=1)
        self.result = result or VatCheckResult(reachable=True, valid=True)
        self.calls: List[tuple] = []

    def check(self, country_code, vat_number):
        self.calls.append((country_code, vat_number))
        return self.result


def sign_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """En-tête Stripe-Signature (schéma v1) pour un corps brut."""
    ts = int(timestamp if timestamp is not None else time.time())
    signed = f"{ts}.{payload.decode('utf-8')}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"


def make_session(
    session_id: str = "cs_test_1",
    payment_status: str = "paid",
    amount_total: int = 1800,
    metadata: Optional[Dict[str, str]] = None,
    email: Optional[str] = "buyer@example.com",
) -> Dict[str, Any]:
    return {
        "id": session_id,
        "object": "checkout.session",
        "payment_status": payment_status,
        "payment_intent": "pi_test_1",
        "amount_total": amount_total,
        "currency": "eur",
        "customer_email": None,
        "customer_details": {
            "email": email,
            "name": "Mario Rossi",
            "phone": "+39 333 1234567",
            "address": {"line1": "Via Roma 1", "line2": None, "city": "Perugia",
                        "postal_code": "06100", "state": "PG", "country": "IT"},
        },
        "collected_information": {
            "shipping_details": {
                "name": "Mario Rossi",
                "address": {"line1": "Via Garibaldi 5", "line2": "Scala B", "city": "Assisi",
                            "postal_code": "06081", "state": "PG", "country": "IT"},
            }
        },
        "metadata": metadata if metadata is not None else {"role": "retailer", "user_id": "user-retailer", "is_guest": "false"},
    }


def make_event_payload(
    event_id: str = "evt_test_1",
    event_type: str = "checkout.session.completed",
    session: Optional[Dict[str, Any]] = None,
) -> bytes:
    event = {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "data": {"object": session if session is not None else make_session()},
    }
    return json.dumps(event).encode("utf-8")


@pytest.fixture
def db() -> FakeSupabase:
    fake = FakeSupabase()
    fake.tables["products"] = [
        {"id": "P1", "name": "Olio extravergine 1L", "price_cents": 1000, "currency": "eur", "active": True},
        {"id": "P2", "name": "Farro 500g", "price_cents": 15, "currency": "eur", "active": True},
        {"id": "P3", "name": "Lenticchie (esaurite)", "price_cents": 700, "currency": "eur", "active": False},
    ]
    fake.add_user("tok-customer", "user-customer", "cliente@example.com", role="customer")
    fake.add_user("tok-retailer", "user-retailer", "negozio@example.com", role="retailer")
    fake.add_user("tok-unconfirmed", "user-unconfirmed", "nuovo@example.com", confirmed=False)
    return fake


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture
def vat_checker() -> FakeVatChecker:
    return FakeVatChecker()


@pytest.fixture(autouse=True)
def _email_settings(monkeypatch):
    monkeypatch.setattr(config, "ORDERS_FROM_EMAIL", "ordini@example.com")
    monkeypatch.setattr(config, "ORDERS_TEAM_EMAIL", "team@example.com")
    monkeypatch.setattr(config, "CONTACT_FROM_EMAIL", "sito@example.com")
    monkeypatch.setattr(config, "CONTACT_TO_EMAIL", "info@example.com")
    monkeypatch.setattr(config, "RETAILER_FROM_EMAIL", "rivenditori@example.com")
    monkeypatch.setattr(config, "RETAILER_TEAM_EMAIL", "team@example.com")
    monkeypatch.setattr(config, "AUTO_APPROVE_UNVERIFIED", False)


@pytest.fixture(scope="session")
def app():
    return fastapi_app


@pytest.fixture()
def client(app, db, gateway, mailer, vat_checker) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_service_supabase] = lambda: db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_vat_checker] = lambda: vat_checker
    try:
        with TestClient(app, raise_server_exceptions=False) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def session_factory():
    return make_session


@pytest.fixture
def signed_webhook():
    """(payload brut, en-tête Stripe-Signature) pour un événement de checkout."""
    def _build(event_id="evt_test_1", event_type="checkout.session.completed", session=None, secret=WEBHOOK_SECRET):
        payload = make_event_payload(event_id, event_type, session)
        return payload, sign_payload(payload, secret)
    return _build


@pytest.fixture
def event_factory(gateway, signed_webhook):
    """PaymentEvent vérifié par la vraie logique de signature."""
    def _build(event_id="evt_test_1", event_type="checkout.session.completed", session=None):
        payload, header = signed_webhook(event_id, event_type, session)
        return gateway.parse_event(payload, header)
    return _build


@pytest.fixture
def stripe_line_items(gateway):
    """Deux lignes Stripe (P1 x1 à 900, P2 x1 à 14) pour cs_test_1."""
    items = [
        ProcessorLineItem(product_id="P1", description="Olio extravergine 1L", unit_amount_cents=900, quantity=1, currency="eur"),
        ProcessorLineItem(product_id="P2", description="Farro 500g", unit_amount_cents=14, quantity=1, currency="eur"),
    ]
    gateway.line_items["cs_test_1"] = items
    return items


@pytest.fixture
def sign():
    return sign_payload
