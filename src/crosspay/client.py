"""Crosspay API client.

Thin synchronous client for the Crosspay tenant API. Every endpoint answers
with a `{data, error}` envelope; a non-empty error is raised as
CrosspayAPIError and a non-200 status as UnexpectedStatusError.

Usage:
    from crosspay import ClientConfig, CrosspayClient

    with CrosspayClient(ClientConfig(api_key="sk_...")) as client:
        entitlement = client.get_active_entitlement("user@example.com", "production")
"""

from __future__ import annotations

from typing import Any, TypeVar
from urllib.parse import quote

import httpx
import structlog
from pydantic import ValidationError

from crosspay.config import ClientConfig
from crosspay.errors import CrosspayAPIError, UnexpectedStatusError
from crosspay.models import (
    CustomerInfo,
    CustomerPage,
    Envelope,
    Subscription,
    TenantEntitlement,
    TenantProduct,
)
from crosspay.webhooks import construct_webhook_event

logger = structlog.get_logger()

T = TypeVar("T")

API_KEY_HEADER = "api-key"

__all__ = ["API_KEY_HEADER", "ClientConfig", "CrosspayClient"]


class CrosspayClient:
    """Client for the Crosspay tenant API.

    Each instance owns its own HTTP client and credentials, so clients
    configured for different tenants can be used side by side.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: API key, base URL and timeout.
            transport: Optional httpx transport (used by tests).
        """
        self.config = config
        self._http = httpx.Client(
            base_url=config.base_url,
            headers={API_KEY_HEADER: config.api_key},
            timeout=config.timeout,
            transport=transport,
        )

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._http.close()

    def __enter__(self) -> CrosspayClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body."""
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        response = self._http.request(method, path, json=json, params=params)
        if response.status_code != httpx.codes.OK:
            logger.warning(
                "Unexpected API response",
                method=method,
                path=path,
                status_code=response.status_code,
            )
            raise UnexpectedStatusError(response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise CrosspayAPIError(f"invalid response body: {e}") from e

    def _data(self, body: Any, data_type: type[T]) -> T | None:
        """Unwrap an envelope, raising its error if set."""
        try:
            envelope = Envelope[data_type].model_validate(body)  # type: ignore[valid-type]
        except ValidationError as e:
            raise CrosspayAPIError(f"invalid response body: {e}") from e

        if envelope.error:
            raise CrosspayAPIError(envelope.error)
        return envelope.data

    def list_products(self) -> list[TenantProduct]:
        """List all tenant products."""
        body = self._request("GET", "/tenant/products")
        return self._data(body, list[TenantProduct]) or []

    def list_entitlements(self, environment: str) -> list[TenantEntitlement]:
        """List tenant entitlements for an environment (e.g. "production")."""
        body = self._request("GET", f"/tenant/entitlements/{quote(environment, safe='')}")
        return self._data(body, list[TenantEntitlement]) or []

    def get_active_subscription(self, customer_email: str) -> Subscription | None:
        """Get the active subscription of a customer, if any."""
        body = self._request(
            "POST",
            "/tenant/subscriptions/active",
            json={"customerEmail": customer_email},
        )
        return self._data(body, Subscription)

    def get_active_product(self, customer_email: str) -> TenantProduct | None:
        """Get the product of a customer's active subscription, if any."""
        subscription = self.get_active_subscription(customer_email)
        if subscription is None:
            return None

        for product in self.list_products():
            if product.product_id == subscription.product_id:
                return product

        logger.debug(
            "Active subscription references unknown product",
            product_id=subscription.product_id,
        )
        return None

    def get_active_entitlement(
        self,
        customer_email: str,
        environment: str,
    ) -> TenantEntitlement | None:
        """Get the entitlement granted by a customer's active product, if any."""
        product = self.get_active_product(customer_email)
        if product is None:
            return None

        for entitlement in self.list_entitlements(environment):
            if entitlement.id == product.entitlement_id:
                return entitlement

        return None

    def list_customers(
        self,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> CustomerPage:
        """List one page of customers.

        Args:
            limit: Maximum number of customers to return.
            cursor: Cursor from a previous page's next_cursor.
        """
        body = self._request(
            "GET",
            "/tenant/server/customers",
            params={"limit": limit, "cursor": cursor},
        )
        try:
            page = CustomerPage.model_validate(body)
        except ValidationError as e:
            raise CrosspayAPIError(f"invalid response body: {e}") from e

        if page.error:
            raise CrosspayAPIError(page.error)
        return page

    def get_customer_info(self, customer_email: str) -> CustomerInfo | None:
        """Get extended information about a customer."""
        body = self._request(
            "POST",
            "/tenant/server/customer",
            json={"customerEmail": customer_email},
        )
        return self._data(body, CustomerInfo)

    def construct_webhook_event(
        self,
        webhook_public_key: str,
        raw_payload: bytes,
        signature_header: str,
        timestamp_header: str,
    ) -> CustomerInfo:
        """Verify a webhook delivery and decode its customer payload.

        Raises:
            WebhookVerificationError: Subclass naming the failed stage.
        """
        return construct_webhook_event(
            webhook_public_key,
            raw_payload,
            signature_header,
            timestamp_header,
        )
