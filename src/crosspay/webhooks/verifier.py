"""Crosspay Webhook Verification.

Authenticates webhook deliveries signed by the Crosspay platform with its
RSA private key.

Each delivery carries:
- the raw request body
- a base64 signature header
- an RFC 3339 timestamp header

The platform signs `timestamp + "." + body`. A delivery is accepted only if
its timestamp is within the clock skew window (5 minutes by default, in
either direction) and the signature verifies against the platform's public
key. The body is decoded into an event only after both checks pass.

Usage:
    from crosspay.webhooks import VerificationContext, WebhookEnvelope, WebhookVerifier

    verifier = WebhookVerifier(VerificationContext(public_key_pem=PEM))
    event = verifier.verify(
        WebhookEnvelope(
            raw_payload=request_body,
            signature_header=signature,
            timestamp_header=timestamp,
        )
    )
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import structlog
from pydantic import BaseModel, ValidationError

from crosspay.models import CustomerInfo
from crosspay.webhooks.errors import (
    PayloadDecodeError,
    TimestampExpiredError,
    TimestampParseError,
    VerificationStatus,
    WebhookVerificationError,
)
from crosspay.webhooks.keys import load_verifying_key
from crosspay.webhooks.schemes import decode_signature

logger = structlog.get_logger()

DEFAULT_MAX_CLOCK_SKEW = timedelta(minutes=5)

SEPARATOR = b"."

_RFC3339 = re.compile(
    r"([0-9]{4}-[0-9]{2}-[0-9]{2})[Tt]"
    r"([0-9]{2}:[0-9]{2}:[0-9]{2})"
    r"(?:\.([0-9]+))?"
    r"([Zz]|[+-][0-9]{2}:[0-9]{2})"
)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class WebhookEnvelope:
    """A webhook delivery exactly as received."""

    raw_payload: bytes
    """Raw request body bytes."""

    signature_header: str
    """Base64 encoded signature."""

    timestamp_header: str
    """RFC 3339 delivery timestamp."""


@dataclass(frozen=True)
class VerificationContext:
    """Key material and freshness policy for verification."""

    public_key_pem: str
    """PEM encoded platform public key."""

    max_clock_skew: timedelta = DEFAULT_MAX_CLOCK_SKEW
    """Maximum absolute difference between delivery time and now."""


@dataclass
class VerificationResult:
    """Result of webhook verification."""

    valid: bool
    """Whether the delivery is authentic and fresh."""

    status: VerificationStatus
    """Detailed verification status."""

    error: str | None = None
    """Error message if verification failed."""

    event: Any = None
    """Decoded event if verification succeeded."""

    def __bool__(self) -> bool:
        """Allow using result in boolean context."""
        return self.valid


def parse_timestamp(timestamp_header: str) -> datetime:
    """Parse an RFC 3339 date-time into an aware datetime.

    Raises:
        TimestampParseError: If the value is not RFC 3339.
    """
    match = _RFC3339.fullmatch(timestamp_header)
    if match is None:
        raise TimestampParseError(f"invalid timestamp header: {timestamp_header!r}")

    date, clock_time, fraction, offset = match.groups()
    # fromisoformat takes at most microsecond precision
    micros = f".{(fraction + '000000')[:6]}" if fraction else ""
    if offset in ("Z", "z"):
        offset = "+00:00"

    try:
        return datetime.fromisoformat(f"{date}T{clock_time}{micros}{offset}")
    except ValueError as e:
        raise TimestampParseError(f"invalid timestamp header: {e}") from e


def check_timestamp(
    timestamp_header: str,
    now: datetime,
    max_clock_skew: timedelta = DEFAULT_MAX_CLOCK_SKEW,
) -> datetime:
    """Parse a timestamp header and check it is within the skew window.

    The window is symmetric. A difference of exactly max_clock_skew is
    accepted.

    Args:
        timestamp_header: RFC 3339 timestamp header value.
        now: Current time (timezone aware).
        max_clock_skew: Allowed absolute difference.

    Returns:
        The parsed timestamp.

    Raises:
        TimestampParseError: If the header is not RFC 3339.
        TimestampExpiredError: If the timestamp is outside the window.
    """
    timestamp = parse_timestamp(timestamp_header)
    if abs(now - timestamp) > max_clock_skew:
        raise TimestampExpiredError(
            f"timestamp is outside the {_format_skew(max_clock_skew)} window"
        )
    return timestamp


def _format_skew(skew: timedelta) -> str:
    total = skew.total_seconds()
    if total != int(total):
        return f"{total:g}-second"
    seconds = int(total)
    if seconds and seconds % 60 == 0:
        return f"{seconds // 60}-minute"
    return f"{seconds}-second"


def build_canonical_message(timestamp_header: str | bytes, raw_payload: bytes) -> bytes:
    """Build the signed message: timestamp, ".", then the raw body."""
    if isinstance(timestamp_header, str):
        timestamp_header = timestamp_header.encode("utf-8")
    return timestamp_header + SEPARATOR + raw_payload


def decode_payload(raw_payload: bytes, model: type[BaseModel] = CustomerInfo) -> Any:
    """Decode a verified payload into an event model.

    Raises:
        PayloadDecodeError: If the payload is not valid JSON for the model.
    """
    try:
        return model.model_validate_json(raw_payload)
    except ValidationError as e:
        raise PayloadDecodeError(f"failed to parse webhook payload: {e}") from e


class WebhookVerifier:
    """Verifies Crosspay webhook deliveries.

    Holds no per-delivery state, so one instance can be shared across
    threads.
    """

    def __init__(
        self,
        context: VerificationContext | None = None,
        *,
        event_model: type[BaseModel] = CustomerInfo,
        clock: Clock | None = None,
    ) -> None:
        """Initialize the webhook verifier.

        Args:
            context: Default verification context, used when verify() is
                called without one.
            event_model: Pydantic model the payload is decoded into.
            clock: Returns the current aware datetime (default: UTC now).
        """
        self.context = context
        self.event_model = event_model
        self.clock = clock or _utcnow

    def _resolve_context(self, context: VerificationContext | None) -> VerificationContext:
        resolved = context or self.context
        if resolved is None:
            raise ValueError("No verification context given or bound to the verifier")
        return resolved

    def verify(
        self,
        envelope: WebhookEnvelope,
        context: VerificationContext | None = None,
    ) -> Any:
        """Verify a delivery and decode its payload.

        Args:
            envelope: The received delivery.
            context: Verification context overriding the bound one.

        Returns:
            The decoded event.

        Raises:
            WebhookVerificationError: Subclass naming the failed stage.
        """
        ctx = self._resolve_context(context)

        try:
            check_timestamp(envelope.timestamp_header, self.clock(), ctx.max_clock_skew)
            signature = decode_signature(envelope.signature_header)
            public_key, scheme = load_verifying_key(ctx.public_key_pem)
            message = build_canonical_message(envelope.timestamp_header, envelope.raw_payload)
            scheme.verify(public_key, message, signature)
            event = decode_payload(envelope.raw_payload, self.event_model)
        except WebhookVerificationError as e:
            logger.info(
                "Webhook rejected",
                status=e.status.value,
                error=type(e).__name__,
                timestamp=envelope.timestamp_header,
            )
            raise

        logger.debug(
            "Webhook verified",
            scheme=scheme.name,
            timestamp=envelope.timestamp_header,
        )
        return event

    def check(
        self,
        envelope: WebhookEnvelope,
        context: VerificationContext | None = None,
    ) -> VerificationResult:
        """Verify a delivery without raising.

        Returns:
            VerificationResult with the event on success, or the failure
            status and message.
        """
        try:
            event = self.verify(envelope, context)
        except WebhookVerificationError as e:
            return VerificationResult(valid=False, status=e.status, error=str(e))

        return VerificationResult(valid=True, status=VerificationStatus.VALID, event=event)


def construct_webhook_event(
    public_key_pem: str,
    raw_payload: bytes,
    signature_header: str,
    timestamp_header: str,
    *,
    max_clock_skew: timedelta = DEFAULT_MAX_CLOCK_SKEW,
    event_model: type[BaseModel] = CustomerInfo,
    clock: Clock | None = None,
) -> Any:
    """Verify a webhook delivery and return its decoded event.

    Raises:
        WebhookVerificationError: Subclass naming the failed stage.
    """
    verifier = WebhookVerifier(
        VerificationContext(public_key_pem=public_key_pem, max_clock_skew=max_clock_skew),
        event_model=event_model,
        clock=clock,
    )
    return verifier.verify(
        WebhookEnvelope(
            raw_payload=raw_payload,
            signature_header=signature_header,
            timestamp_header=timestamp_header,
        )
    )
