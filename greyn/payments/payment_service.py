"""
Carbon credit checkout: PaymentIntent creation, status sync, history and
webhook fulfilment.
"""

from typing import Any, Dict, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from greyn.engines.finance.transactions import generate_transaction_id
from greyn.engines.listing import ListQuery, Pagination, fetch_page
from greyn.kernel.errors import NotFoundError
from greyn.kernel.models.base import enum_value, utcnow
from greyn.kernel.models.payment import Payment, PaymentStatus
from greyn.kernel.models.transaction import (
    FinanceTransaction,
    PaymentMethod,
    TransactionStatus,
    TransactionType,
)
from greyn.kernel.models.user import User
from greyn.logging_config import get_logger
from greyn.payments.carbon import calculate_carbon_credits
from greyn.payments.stripe_gateway import PaymentGatewayError, StripeGateway, WebhookEvent

logger = get_logger(__name__)

MIN_AMOUNT = 0.5

# Stripe intent statuses folded into the local lifecycle
_STRIPE_STATUS_MAP = {
    "succeeded": PaymentStatus.SUCCEEDED.value,
    "processing": PaymentStatus.PROCESSING.value,
    "canceled": PaymentStatus.CANCELED.value,
    "requires_payment_method": PaymentStatus.PENDING.value,
    "requires_confirmation": PaymentStatus.PENDING.value,
    "requires_action": PaymentStatus.PENDING.value,
    "requires_capture": PaymentStatus.PROCESSING.value,
}


def payment_to_dict(payment: Payment) -> Dict[str, Any]:
    return {
        "id": str(payment.id),
        "payment_intent_id": payment.stripe_payment_intent_id,
        "amount": payment.amount,
        "currency": payment.currency,
        "status": enum_value(payment.status),
        "project_id": payment.project_id,
        "project_title": payment.project_title,
        "carbon_units": payment.carbon_units,
        "carbon_credits": payment.carbon_credits,
        "failure_reason": payment.failure_reason,
        "paid_at": payment.paid_at,
        "created_at": payment.created_at,
    }


class PaymentService:
    """Checkout flow for carbon credit purchases."""

    def __init__(self, session: AsyncSession, gateway: Optional[StripeGateway] = None):
        self.session = session
        self.gateway = gateway or StripeGateway()

    async def create_intent(
        self,
        user: User,
        amount: float,
        project_id: Optional[str] = None,
        project_title: Optional[str] = None,
    ) -> Tuple[Payment, str]:
        """
        Create a Stripe PaymentIntent and a pending Payment.

        Returns (payment, client_secret).

        Raises:
            ValueError: amount below the minimum
            PaymentGatewayError: Stripe call failed
        """
        if amount is None or amount < MIN_AMOUNT:
            raise ValueError(f"Amount must be at least {MIN_AMOUNT:.2f}")

        carbon_units, carbon_credits = calculate_carbon_credits(amount)
        intent = await self.gateway.create_payment_intent(
            amount_cents=int(round(amount * 100)),
            currency="usd",
            metadata={
                "user_id": str(user.id),
                "project_id": project_id or "none",
                "project_title": project_title or "",
                "carbon_units": str(carbon_units),
            },
        )

        payment = Payment(
            user_id=user.id,
            amount=amount,
            currency="usd",
            status=PaymentStatus.PENDING.value,
            stripe_payment_intent_id=intent["id"],
            project_id=project_id,
            project_title=project_title,
            carbon_units=carbon_units,
            carbon_credits=carbon_credits,
            extra={},
        )
        self.session.add(payment)
        await self.session.flush()

        logger.info(
            "Payment intent created",
            extra={"payment_intent_id": intent["id"], "amount": amount, "carbon_credits": carbon_credits},
        )
        return payment, intent.get("client_secret") or ""

    async def _get_owned(self, user: User, intent_id: str) -> Payment:
        result = await self.session.execute(
            select(Payment).where(
                Payment.stripe_payment_intent_id == intent_id,
                Payment.user_id == user.id,
            )
        )
        payment = result.scalar_one_or_none()
        if payment is None:
            raise NotFoundError("Payment not found")
        return payment

    async def get_status(self, user: User, intent_id: str) -> Payment:
        """Owner-only lookup, refreshed from Stripe when reachable."""
        payment = await self._get_owned(user, intent_id)
        try:
            intent = await self.gateway.retrieve_payment_intent(intent_id)
        except PaymentGatewayError as e:
            logger.warning("Stripe status sync failed", extra={"payment_intent_id": intent_id, "error": e.message})
            return payment

        status = _STRIPE_STATUS_MAP.get(intent.get("status"), enum_value(payment.status))
        if status != enum_value(payment.status):
            payment.status = status
            if status == PaymentStatus.SUCCEEDED.value and payment.paid_at is None:
                payment.paid_at = utcnow()
        return payment

    async def history(self, user: User, query: ListQuery) -> Tuple[list, Pagination]:
        stmt = select(Payment).where(Payment.user_id == user.id)
        if query.filter("status"):
            stmt = stmt.where(Payment.status == query.filter("status"))
        return await fetch_page(self.session, stmt.order_by(Payment.created_at.desc()), query)

    async def _by_intent(self, intent_id: Optional[str], for_update: bool = False) -> Optional[Payment]:
        if not intent_id:
            return None
        stmt = select(Payment).where(Payment.stripe_payment_intent_id == intent_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def handle_webhook(self, event: WebhookEvent) -> Dict[str, Any]:
        """
        Apply a verified Stripe event.

        The payment row is locked for the rest of the transaction. Only a
        fulfilled success is final: a failed intent can still succeed when
        the customer retries with another card, while failure or
        cancellation events arriving after fulfilment are ignored.
        """
        intent = event.object
        handled = event.type in (
            "payment_intent.succeeded",
            "payment_intent.payment_failed",
            "payment_intent.canceled",
        )
        if not handled:
            logger.info("Ignoring webhook event", extra={"event_type": event.type})
            return {"received": True, "handled": False}

        payment = await self._by_intent(intent.get("id"), for_update=True)
        if payment is None:
            logger.warning("Webhook for unknown payment intent", extra={"payment_intent_id": intent.get("id")})
            return {"received": True, "handled": False}
        if payment.webhook_processed:
            logger.info(
                "Webhook after fulfilment ignored",
                extra={"event_type": event.type, "payment_intent_id": payment.stripe_payment_intent_id},
            )
            return {"received": True, "handled": False, "duplicate": True}

        if event.type == "payment_intent.succeeded":
            await self._fulfil(payment)
            payment.webhook_processed = True
        elif event.type == "payment_intent.payment_failed":
            error = intent.get("last_payment_error") or {}
            payment.status = PaymentStatus.FAILED.value
            payment.failure_reason = error.get("message") or "Payment failed"
        else:
            payment.status = PaymentStatus.CANCELED.value

        logger.info(
            "Webhook processed",
            extra={"event_type": event.type, "payment_intent_id": payment.stripe_payment_intent_id},
        )
        return {"received": True, "handled": True, "status": enum_value(payment.status)}

    async def _fulfil(self, payment: Payment) -> FinanceTransaction:
        payment.status = PaymentStatus.SUCCEEDED.value
        payment.failure_reason = None
        payment.paid_at = payment.paid_at or utcnow()

        user = await self.session.get(User, payment.user_id)
        txn = FinanceTransaction(
            transaction_id=generate_transaction_id(),
            timestamp=utcnow(),
            type=TransactionType.PURCHASE.value,
            amount=payment.amount,
            currency=payment.currency.upper(),
            status=TransactionStatus.COMPLETED.value,
            entity=user.display_name if user else "Unknown",
            description=f"Carbon credit purchase: {payment.carbon_credits} credits"
            + (f" for {payment.project_title}" if payment.project_title else ""),
            reference=payment.stripe_payment_intent_id,
            payment_method=PaymentMethod.CREDIT_CARD.value,
            fees=0.0,
            net_amount=payment.amount,
            source="manual",
        )
        self.session.add(txn)
        await self.session.flush()
        payment.extra = {**(payment.extra or {}), "finance_transaction_id": txn.transaction_id}
        return txn
