"""
System smoke test: the client package driving the real app in-process.

Walks an investor and an admin through signup, portal routing, activity
submission and review, and a carbon credit purchase settled by webhook.
"""

import json
import os

import pytest
import pytest_asyncio
from httpx import ASGITransport

from greyn.client import ApiClient, AuthSession, CheckoutForm, ListController
from greyn.client.forms import ActivityDraft, ProofImageFile
from greyn.kernel.routing import GuardOutcome
from greyn.main import app

ADMIN_CODE = os.environ["ADMIN_CODE"]
WEBHOOK_SECRET = os.environ["STRIPE_WEBHOOK_SECRET"]
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


@pytest_asyncio.fixture
async def api(database):
    clients = []

    def make() -> ApiClient:
        client = ApiClient("http://test/api/v1", transport=ASGITransport(app=app))
        clients.append(client)
        return client

    yield make
    for client in clients:
        await client.close()


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["version"]

    response = await client.get("/")
    assert response.json()["api"] == {"v1": "/api/v1"}


async def test_request_id_is_echoed(client):
    response = await client.get("/health", headers={"X-Request-ID": "smoke-1"})
    assert response.headers["X-Request-ID"] == "smoke-1"


async def test_full_platform_flow(client, api, fake_stripe, sign_webhook):
    # Admin and investor sign up through their portals
    admin = AuthSession(api())
    response = await admin.signup(
        "admin", {"email": "ops@greyn-eco.org", "password": "Secret123", "name": "Ops", "admin_code": ADMIN_CODE}
    )
    assert response.success, response.message
    assert admin.is_admin

    investor = AuthSession(api())
    response = await investor.signup(
        "simple-user", {"email": "river@greyn-eco.org", "password": "Secret123", "name": "River Chen"}
    )
    assert response.success, response.message
    assert investor.is_simple_user
    assert await investor.check_auth() is True

    # The guard keeps each role inside its portal
    assert investor.guard("/dashboard").outcome == GuardOutcome.RENDER
    decision = investor.guard("/admin/overview")
    assert decision.outcome == GuardOutcome.REDIRECT
    assert decision.redirect_to == "/dashboard"
    assert admin.guard("/admin/security/rate-limits", required_role="admin").outcome == GuardOutcome.RENDER

    nav = await admin.client.routing.nav()
    assert nav.data["routes"]["dashboard"] == "/admin/overview"

    # Investor submits an activity with a proof photo
    draft = ActivityDraft(type="cleanup", title="Beach cleanup", description="Cleared 40kg of plastic")
    assert (await draft.submit(investor.client)).message == "Proof image is required"
    draft.proof_image = ProofImageFile("beach.png", PNG_BYTES, "image/png")
    response = await draft.submit(investor.client)
    assert response.success, response.message
    activity_id = response.data["id"]
    assert draft.title == ""

    # Admin works the review queue through the list controller
    queue = ListController(admin.client.admin.activities.list, limit=10, debounce=0.01)
    assert await queue.set_filter("status", "pending") is True
    assert [item["id"] for item in queue.items] == [activity_id]
    queue.set_search("beach")
    await queue.wait_for_search()
    assert queue.stats["total"] == 1

    response = await admin.client.admin.activities.review(activity_id, "verified", "Great work")
    assert response.success
    stats = await investor.client.activities.stats()
    assert stats.data["total_credits"] == 75

    # Investor buys carbon credits; Stripe confirms and the webhook settles it
    response = await investor.client.payments.create_intent(12.5, "proj-7", "Kelp Forest")
    assert response.success, response.message
    intent_id = response.data["payment_intent_id"]
    assert response.data["carbon_credits"] == 1.25

    async def confirm(client_secret):
        intent = fake_stripe.intents[intent_id]
        intent["status"] = "succeeded"
        return None, intent

    settled = []
    checkout = CheckoutForm(confirm, on_success=settled.append, on_error=pytest.fail)
    assert await checkout.submit(response.data["client_secret"]) is True
    assert settled == [intent_id]

    event = json.dumps({
        "id": "evt_smoke",
        "object": "event",
        "type": "payment_intent.succeeded",
        "data": {"object": {"id": intent_id, "status": "succeeded"}},
    }).encode("utf-8")
    webhook = await client.post(
        "/api/v1/payments/webhook",
        content=event,
        headers={"Stripe-Signature": sign_webhook(event, WEBHOOK_SECRET)},
    )
    assert webhook.json()["data"]["handled"] is True

    status = await investor.client.payments.status(intent_id)
    assert status.data["status"] == "succeeded"

    # The purchase and the review both show up on the admin consoles
    transactions = ListController(admin.client.admin.transactions.list, limit=10)
    assert await transactions.refresh() is True
    assert [t["reference"] for t in transactions.items] == [intent_id]
    assert transactions.stats["total_revenue"] == 12.5

    receipt = await admin.client.admin.transactions.receipt(transactions.items[0]["transaction_id"])
    assert receipt.data["entity"] == "River Chen"

    audit = await admin.client.admin.audit_logs.list(action="update", search=activity_id)
    assert len(audit.data["items"]) == 1
    verify = await admin.client.admin.audit_logs.verify(audit.data["items"][0]["id"])
    assert verify.data["valid"] is True

    # Signing out revokes the refresh token and clears the session
    refresh_token = investor.refresh_token
    await investor.logout()
    assert investor.user is None
    assert investor.token is None
    assert investor.guard("/dashboard").redirect_to == "/auth"

    response = await investor.client.auth.refresh(refresh_token)
    assert response.success is False
    assert response.status_code == 401


async def test_non_admin_gets_forbidden_envelope(api, signup):
    data = await signup("ngo")
    ngo = api()
    ngo.token = data["access_token"]

    response = await ngo.admin.users.list()
    assert response.success is False
    assert response.status_code == 403
    assert response.message == "Admin access required"
