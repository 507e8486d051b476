"""
Pytest fixtures for Greyn tests.

The whole suite runs in-process against a temporary file-based SQLite
database. Environment is pinned before greyn is imported so the cached
settings, engine and app all see the test configuration.
"""

import hashlib
import hmac
import os
import tempfile
import time
import uuid
from typing import AsyncGenerator, Callable, Dict, List

# File-based SQLite so every connection sees the same database
_TMP_DIR = tempfile.mkdtemp(prefix="greyn-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP_DIR}/test.db"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only-0123456789"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ADMIN_CODE"] = "greyn-admin-2026"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_greyn"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_greyn_test"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP_DIR, "uploads")
os.environ["BACKEND_URL"] = "http://testserver"
os.environ["DEBUG"] = "false"

from greyn.config import get_settings

get_settings.cache_clear()

import httpx
import pytest
import pytest_asyncio
import stripe
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from greyn.api.middleware.rate_limit import get_counter
from greyn.api.v1.payments import get_gateway
from greyn.database import async_session_maker, engine
from greyn.kernel.identity.jwt import JWTManager
from greyn.kernel.models import Base
from greyn.main import app
from greyn.payments.stripe_gateway import StripeGateway

ADMIN_CODE = os.environ["ADMIN_CODE"]
WEBHOOK_SECRET = os.environ["STRIPE_WEBHOOK_SECRET"]
DEFAULT_PASSWORD = "Secret123"


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    """Fresh schema for every test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    get_counter().clear()
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session(database) -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def client(database) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def role_fields(role: str) -> Dict[str, str]:
    """Minimum signup payload for a portal role."""
    unique = uuid.uuid4().hex[:8]
    if role == "ngo":
        return {
            "organization_name": f"Green Earth {unique}",
            "registration_number": f"NGO-{unique}",
            "contact_person": "Amara Okafor",
            "location": "Nairobi",
        }
    if role == "corporate":
        return {
            "company_name": f"TechCorp {unique}",
            "tax_id": f"TAX-{unique}",
            "contact_person": "Lee Chen",
        }
    if role == "admin":
        return {"name": "Platform Admin", "admin_code": ADMIN_CODE}
    return {"name": "Sam Rivera"}


@pytest.fixture
def signup(client: AsyncClient) -> Callable:
    """Sign up through the API. Returns the token payload (access_token, refresh_token, user)."""

    async def _signup(role: str = "simple-user", email: str = None, password: str = DEFAULT_PASSWORD, **fields):
        payload = {
            "email": email or f"{role}-{uuid.uuid4().hex[:8]}@greyn-eco.org",
            "password": password,
            **role_fields(role),
            **fields,
        }
        response = await client.post(f"/api/v1/auth/signup/{role}", json=payload)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _signup


def bearer(session: Dict) -> Dict[str, str]:
    return {"Authorization": f"Bearer {session['access_token']}"}


@pytest_asyncio.fixture
async def admin(signup) -> Dict:
    data = await signup("admin", email="admin@greyn-eco.org")
    data["headers"] = bearer(data)
    return data


@pytest_asyncio.fixture
async def investor(signup) -> Dict:
    data = await signup("simple-user", email="investor@greyn-eco.org")
    data["headers"] = bearer(data)
    return data


@pytest.fixture
def jwt_manager() -> JWTManager:
    return JWTManager(
        secret_key="test-secret-key-for-testing-only",
        algorithm="HS256",
        access_token_expire_minutes=30,
        refresh_token_expire_days=7,
    )


class FakeStripe:
    """Records Stripe API calls and answers them from canned PaymentIntents."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.intents: Dict[str, Dict] = {}
        self.fail_with: int = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with:
            return httpx.Response(
                self.fail_with,
                json={"error": {"message": "Your card was declined.", "code": "card_declined"}},
            )
        path = request.url.path
        if request.method == "POST" and path.endswith("/payment_intents"):
            intent_id = f"pi_{uuid.uuid4().hex[:16]}"
            intent = {
                "id": intent_id,
                "object": "payment_intent",
                "status": "requires_payment_method",
                "client_secret": f"{intent_id}_secret_abc",
            }
            self.intents[intent_id] = intent
            return httpx.Response(200, json=intent)
        intent_id = path.removesuffix("/confirm").rsplit("/", 1)[-1]
        if intent_id in self.intents:
            return httpx.Response(200, json=self.intents[intent_id])
        return httpx.Response(404, json={"error": {"message": "No such payment_intent"}})


class HandlerHTTPClient(stripe.HTTPClient):
    """Stripe SDK transport that answers from an httpx-style handler function."""

    name = "handler"

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        super().__init__()
        self.handler = handler

    def request(self, method, url, headers, post_data=None):
        raise NotImplementedError("Only async Stripe calls are used")

    async def request_async(self, method, url, headers, post_data=None):
        request = httpx.Request(method.upper(), url, headers=headers, content=post_data or b"")
        response = self.handler(request)
        return response.content, response.status_code, dict(response.headers)

    def close(self):
        pass

    async def close_async(self):
        pass


def make_gateway(handler: Callable[[httpx.Request], httpx.Response], **overrides) -> StripeGateway:
    options = {
        "secret_key": "sk_test_greyn",
        "webhook_secret": WEBHOOK_SECRET,
        "api_base": "https://stripe.test",
        "max_network_retries": 0,
        **overrides,
    }
    return StripeGateway(http_client=HandlerHTTPClient(handler), **options)


@pytest.fixture
def fake_stripe(client: AsyncClient) -> FakeStripe:
    """Route the payments API through an in-memory Stripe."""
    fake = FakeStripe()
    gateway = make_gateway(fake.handler)
    app.dependency_overrides[get_gateway] = lambda: gateway
    return fake


def stripe_signature_header(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    """Sign a webhook body the way Stripe does: HMAC-SHA256 over "<t>.<payload>"."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.".encode("utf-8") + payload
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


@pytest.fixture
def sign_webhook() -> Callable[..., str]:
    return stripe_signature_header


@pytest.fixture
def gateway_for() -> Callable[..., StripeGateway]:
    """Build a StripeGateway whose HTTP calls are answered by a handler function."""
    return make_gateway
