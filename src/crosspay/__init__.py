"""Crosspay server SDK.

Webhook verification and a thin client for the Crosspay tenant API.

Usage:
    from crosspay import ClientConfig, CrosspayClient

    with CrosspayClient(ClientConfig(api_key="sk_...")) as client:
        products = client.list_products()
"""

from crosspay.client import ClientConfig, CrosspayClient
from crosspay.errors import CrosspayAPIError, CrosspayError, UnexpectedStatusError
from crosspay.webhooks import (
    VerificationContext,
    WebhookEnvelope,
    WebhookVerifier,
    construct_webhook_event,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "ClientConfig",
    "CrosspayClient",
    "CrosspayError",
    "CrosspayAPIError",
    "UnexpectedStatusError",
    "VerificationContext",
    "WebhookEnvelope",
    "WebhookVerifier",
    "construct_webhook_event",
]
