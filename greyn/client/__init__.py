"""
Python client for the Greyn API: session, list pages, forms and checkout.
"""

from greyn.client.api_client import ApiClient, ApiResponse
from greyn.client.checkout import CheckoutForm
from greyn.client.forms import ActivityDraft, ProofImageFile
from greyn.client.list_controller import ListController
from greyn.client.session import AuthSession

__all__ = [
    "ActivityDraft",
    "ApiClient",
    "ApiResponse",
    "AuthSession",
    "CheckoutForm",
    "ListController",
    "ProofImageFile",
]
