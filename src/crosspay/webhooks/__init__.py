"""Crosspay Webhook Verification Module.

Authenticates webhook deliveries signed by the Crosspay platform and decodes
them into typed events.

Verification Pipeline:
- Timestamp: RFC 3339, within a symmetric 5-minute window
- Signature: base64 decoded
- Public key: PEM SubjectPublicKeyInfo, scheme selected by key type
- Message: timestamp + "." + raw body, never re-serialized
- Signature check: RSASSA-PKCS1-v1.5 over SHA-256
- Payload: decoded only after the checks above succeed

Usage:
    from crosspay.webhooks import construct_webhook_event

    event = construct_webhook_event(
        public_key_pem=PEM,
        raw_payload=request_body,
        signature_header=signature,
        timestamp_header=timestamp,
    )
    print(event.email)
"""

from crosspay.webhooks.errors import (
    PayloadDecodeError,
    PublicKeyParseError,
    SignatureDecodeError,
    SignatureVerificationError,
    TimestampExpiredError,
    TimestampParseError,
    UnsupportedKeyTypeError,
    VerificationStatus,
    WebhookVerificationError,
)
from crosspay.webhooks.keys import load_public_key, load_verifying_key
from crosspay.webhooks.schemes import (
    SIGNATURE_SCHEMES,
    RSAPKCS1v15SHA256Scheme,
    SignatureScheme,
    decode_signature,
    scheme_for_key,
)
from crosspay.webhooks.verifier import (
    DEFAULT_MAX_CLOCK_SKEW,
    VerificationContext,
    VerificationResult,
    WebhookEnvelope,
    WebhookVerifier,
    build_canonical_message,
    check_timestamp,
    construct_webhook_event,
    decode_payload,
    parse_timestamp,
)

__all__ = [
    # Verifier
    "WebhookVerifier",
    "WebhookEnvelope",
    "VerificationContext",
    "VerificationResult",
    "VerificationStatus",
    "DEFAULT_MAX_CLOCK_SKEW",
    "construct_webhook_event",
    # Pipeline stages
    "parse_timestamp",
    "check_timestamp",
    "build_canonical_message",
    "decode_signature",
    "load_public_key",
    "load_verifying_key",
    "decode_payload",
    # Schemes
    "SignatureScheme",
    "RSAPKCS1v15SHA256Scheme",
    "SIGNATURE_SCHEMES",
    "scheme_for_key",
    # Errors
    "WebhookVerificationError",
    "TimestampParseError",
    "TimestampExpiredError",
    "SignatureDecodeError",
    "PublicKeyParseError",
    "UnsupportedKeyTypeError",
    "SignatureVerificationError",
    "PayloadDecodeError",
]
