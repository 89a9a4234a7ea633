"""Webhook verification errors.

Every stage of the verification pipeline fails with its own error class.
Each class carries the VerificationStatus reported by the non-raising
WebhookVerifier.check() API.
"""

from __future__ import annotations

from enum import Enum

from crosspay.errors import CrosspayError


class VerificationStatus(Enum):
    """Status of webhook verification."""

    VALID = "valid"
    INVALID_TIMESTAMP = "invalid_timestamp"
    EXPIRED_TIMESTAMP = "expired_timestamp"
    INVALID_FORMAT = "invalid_format"
    INVALID_KEY = "invalid_key"
    UNSUPPORTED_KEY_TYPE = "unsupported_key_type"
    INVALID_SIGNATURE = "invalid_signature"
    INVALID_PAYLOAD = "invalid_payload"


class WebhookVerificationError(CrosspayError):
    """Base class for webhook verification failures."""

    status: VerificationStatus = VerificationStatus.INVALID_FORMAT


class TimestampParseError(WebhookVerificationError):
    """Timestamp header is not a valid RFC 3339 date-time."""

    status = VerificationStatus.INVALID_TIMESTAMP


class TimestampExpiredError(WebhookVerificationError):
    """Timestamp is outside the allowed clock skew window."""

    status = VerificationStatus.EXPIRED_TIMESTAMP


class SignatureDecodeError(WebhookVerificationError):
    """Signature header is not valid base64."""

    status = VerificationStatus.INVALID_FORMAT


class PublicKeyParseError(WebhookVerificationError):
    """Public key is not a PEM encoded SubjectPublicKeyInfo."""

    status = VerificationStatus.INVALID_KEY


class UnsupportedKeyTypeError(WebhookVerificationError):
    """Public key algorithm has no registered signature scheme."""

    status = VerificationStatus.UNSUPPORTED_KEY_TYPE


class SignatureVerificationError(WebhookVerificationError):
    """Signature does not match the message under the given key.

    Raised for a wrong key, a tampered message and a tampered signature
    alike.
    """

    status = VerificationStatus.INVALID_SIGNATURE


class PayloadDecodeError(WebhookVerificationError):
    """Verified payload is not a well-formed event."""

    status = VerificationStatus.INVALID_PAYLOAD
