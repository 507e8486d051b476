"""
Stripe checkout for carbon credit purchases.
"""

from greyn.payments.carbon import calculate_carbon_credits
from greyn.payments.payment_service import PaymentService, payment_to_dict
from greyn.payments.stripe_gateway import (
    PaymentGatewayError,
    SignatureVerificationError,
    StripeGateway,
    WebhookEvent,
)

__all__ = [
    "PaymentGatewayError",
    "PaymentService",
    "SignatureVerificationError",
    "StripeGateway",
    "WebhookEvent",
    "calculate_carbon_credits",
    "payment_to_dict",
]
