"""
Stripe gateway for the checkout flow.

Wraps the PaymentIntent calls and webhook verification of the official
Stripe SDK and turns its errors into PaymentGatewayError, so services and
routers never import stripe directly.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import stripe

from greyn.config import get_settings
from greyn.logging_config import get_logger

logger = get_logger(__name__)

HTTP_TIMEOUT = 15.0
SIGNATURE_TOLERANCE_SECONDS = 300


class PaymentGatewayError(Exception):
    """Stripe rejected a call or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class SignatureVerificationError(PaymentGatewayError):
    pass


@dataclass
class WebhookEvent:
    id: Optional[str]
    type: str
    data: Dict[str, Any]

    @property
    def object(self) -> Dict[str, Any]:
        return self.data.get("object") or {}


class StripeGateway:
    """
    PaymentIntent operations against the Stripe API.

    Pass a stripe.HTTPClient to stub the transport in tests. By default
    requests go through stripe's httpx-backed async client.
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        webhook_secret: Optional[str] = None,
        api_base: Optional[str] = None,
        http_client: Optional[stripe.HTTPClient] = None,
        max_network_retries: Optional[int] = None,
    ):
        settings = get_settings()
        self.secret_key = secret_key if secret_key is not None else settings.stripe_secret_key
        self.webhook_secret = webhook_secret if webhook_secret is not None else settings.stripe_webhook_secret
        self.api_base = api_base or settings.stripe_api_base
        self.max_network_retries = (
            max_network_retries if max_network_retries is not None else settings.stripe_max_network_retries
        )
        self._http_client = http_client
        self._client: Optional[stripe.StripeClient] = None

    @property
    def client(self) -> stripe.StripeClient:
        if not self.secret_key:
            raise PaymentGatewayError("Stripe is not configured")
        if self._client is None:
            self._client = stripe.StripeClient(
                self.secret_key,
                base_addresses={"api": self.api_base},
                http_client=self._http_client or stripe.HTTPXClient(timeout=HTTP_TIMEOUT),
                max_network_retries=self.max_network_retries,
            )
        return self._client

    @staticmethod
    def _gateway_error(e: stripe.StripeError) -> PaymentGatewayError:
        if isinstance(e, stripe.APIConnectionError):
            logger.warning("Stripe request failed", extra={"error": str(e)})
            return PaymentGatewayError("Could not reach payment provider")

        logger.warning(
            "Stripe returned an error",
            extra={"status_code": e.http_status, "code": e.code, "request_id": e.request_id},
        )
        message = e.user_message or f"Stripe error ({e.http_status})"
        return PaymentGatewayError(message, status_code=e.http_status, code=e.code)

    async def create_payment_intent(
        self,
        amount_cents: int,
        currency: str = "usd",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        params = {
            "amount": amount_cents,
            "currency": currency,
            "metadata": metadata or {},
            "automatic_payment_methods": {"enabled": True},
        }
        try:
            intent = await self.client.v1.payment_intents.create_async(params=params)
        except stripe.StripeError as e:
            raise self._gateway_error(e) from e
        return intent.to_dict()

    async def retrieve_payment_intent(self, intent_id: str) -> Dict[str, Any]:
        try:
            intent = await self.client.v1.payment_intents.retrieve_async(intent_id)
        except stripe.StripeError as e:
            raise self._gateway_error(e) from e
        return intent.to_dict()

    async def confirm_payment_intent(self, intent_id: str, payment_method: Optional[str] = None) -> Dict[str, Any]:
        params = {"payment_method": payment_method} if payment_method else {}
        try:
            intent = await self.client.v1.payment_intents.confirm_async(intent_id, params=params)
        except stripe.StripeError as e:
            raise self._gateway_error(e) from e
        return intent.to_dict()

    def construct_event(self, payload: bytes, signature_header: Optional[str]) -> WebhookEvent:
        """
        Verify the Stripe-Signature header and parse the event body.

        Raises:
            SignatureVerificationError: missing secret or header, bad signature, invalid JSON
        """
        if not self.webhook_secret:
            raise SignatureVerificationError("Webhook secret is not configured")
        if not signature_header:
            raise SignatureVerificationError("Missing Stripe-Signature header")

        try:
            event = stripe.Webhook.construct_event(
                payload, signature_header, self.webhook_secret, tolerance=SIGNATURE_TOLERANCE_SECONDS
            )
        except stripe.SignatureVerificationError as e:
            raise SignatureVerificationError(e.user_message or "Invalid signature") from e
        except ValueError as e:
            raise SignatureVerificationError("Invalid payload") from e

        body = event.to_dict()
        return WebhookEvent(id=body.get("id"), type=body.get("type") or "", data=body.get("data") or {})
