"""
Carbon credit checkout endpoints and the Stripe webhook.
"""

from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from greyn.api.deps import CurrentUser, DbSession
from greyn.engines.listing import ListQuery
from greyn.kernel.errors import NotFoundError
from greyn.logging_config import get_logger
from greyn.payments import (
    PaymentGatewayError,
    PaymentService,
    SignatureVerificationError,
    StripeGateway,
    payment_to_dict,
)
from greyn.schemas.common import SuccessResponse, ok
from greyn.schemas.payment import CreateIntentRequest, CreateIntentResponse

logger = get_logger(__name__)

router = APIRouter()


@lru_cache
def get_gateway() -> StripeGateway:
    """One gateway per process so the Stripe HTTP client is reused."""
    return StripeGateway()


@router.post("/create-intent", response_model=SuccessResponse)
async def create_payment_intent(
    data: CreateIntentRequest,
    user: CurrentUser,
    db: DbSession,
    gateway: StripeGateway = Depends(get_gateway),
):
    service = PaymentService(db, gateway)
    try:
        payment, client_secret = await service.create_intent(
            user, data.amount, project_id=data.project_id, project_title=data.project_title
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except PaymentGatewayError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)

    return ok(CreateIntentResponse(
        client_secret=client_secret,
        payment_intent_id=payment.stripe_payment_intent_id,
        amount=payment.amount,
        carbon_units=payment.carbon_units,
        carbon_credits=payment.carbon_credits,
    ))


@router.get("/history", response_model=SuccessResponse)
async def payment_history(
    user: CurrentUser,
    db: DbSession,
    gateway: StripeGateway = Depends(get_gateway),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status_filter: Optional[str] = Query(None, alias="status"),
):
    query = ListQuery(filters={"status": status_filter}, page=page, limit=limit)
    payments, pagination = await PaymentService(db, gateway).history(user, query)
    return ok({"items": [payment_to_dict(p) for p in payments], "pagination": pagination})


@router.get("/{intent_id}/status", response_model=SuccessResponse)
async def payment_status(
    intent_id: str,
    user: CurrentUser,
    db: DbSession,
    gateway: StripeGateway = Depends(get_gateway),
):
    """Owner-only. Synced from Stripe when it is reachable."""
    try:
        payment = await PaymentService(db, gateway).get_status(user, intent_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return ok(payment_to_dict(payment))


@router.post("/webhook", response_model=SuccessResponse)
async def stripe_webhook(
    request: Request,
    db: DbSession,
    gateway: StripeGateway = Depends(get_gateway),
):
    """Stripe event sink. The raw body is needed for signature verification."""
    payload = await request.body()
    signature = request.headers.get("Stripe-Signature")
    try:
        event = gateway.construct_event(payload, signature)
    except SignatureVerificationError as e:
        logger.warning("Rejected webhook", extra={"reason": e.message})
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Webhook Error: {e.message}")

    result = await PaymentService(db, gateway).handle_webhook(event)
    return ok(result)
