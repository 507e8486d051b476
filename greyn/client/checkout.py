"""
Checkout form wrapper around a card confirmation step.

The confirmer is whatever confirms a PaymentIntent on the client's side
(a Stripe.js bridge in the browser, StripeGateway.confirm_payment_intent
on a server). It returns (error_message, payment_intent).
"""

from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from greyn.logging_config import get_logger

logger = get_logger(__name__)

NOT_LOADED_MESSAGE = "Stripe has not loaded yet. Please try again."
PROCESSING_MESSAGE = "Payment is being processed. Please wait..."
FAILED_MESSAGE = "Payment failed. Please try again."
UNEXPECTED_MESSAGE = "An unexpected error occurred."

Confirmer = Callable[[str], Awaitable[Tuple[Optional[str], Optional[Dict[str, Any]]]]]


class CheckoutForm:
    def __init__(
        self,
        confirmer: Optional[Confirmer],
        on_success: Callable[[str], Any],
        on_error: Callable[[str], Any],
    ):
        self.confirmer = confirmer
        self.on_success = on_success
        self.on_error = on_error
        self.is_processing = False
        self.error_message: Optional[str] = None

    async def submit(self, client_secret: str) -> bool:
        """Confirm the payment. Returns True only when the intent succeeded."""
        if self.confirmer is None:
            self.error_message = NOT_LOADED_MESSAGE
            return False

        self.is_processing = True
        self.error_message = None
        try:
            error, intent = await self.confirmer(client_secret)
            if error is not None:
                self.error_message = error or UNEXPECTED_MESSAGE
                self.on_error(self.error_message)
                return False
            if intent and intent.get("status") == "succeeded":
                self.on_success(intent["id"])
                return True
            self.error_message = PROCESSING_MESSAGE
            return False
        except Exception as e:
            logger.warning("Payment confirmation raised", extra={"error": str(e)})
            self.error_message = FAILED_MESSAGE
            self.on_error(self.error_message)
            return False
        finally:
            self.is_processing = False
