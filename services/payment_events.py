"""
Payment Event Verifier - authenticates Stripe webhook payloads and decodes them
into typed events.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import stripe

from utils.errors import VerificationError

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout_completed"
SUBSCRIPTION_DELETED = "subscription_deleted"
IGNORED = "ignored"

# Stripe event type -> internal event kind
EVENT_KINDS = {
    "checkout.session.completed": CHECKOUT_COMPLETED,
    "customer.subscription.deleted": SUBSCRIPTION_DELETED,
}


@dataclass
class PaymentEvent:
    """A verified payment-provider event. Never persisted."""
    id: Optional[str]
    type: str
    kind: str
    created: Optional[int] = None
    user_id: Optional[str] = None
    customer_id: Optional[str] = None
    data_object: Dict[str, Any] = field(default_factory=dict)


def _as_str(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def decode_event(raw: Dict[str, Any]) -> PaymentEvent:
    """Turn a decoded Stripe event body into a PaymentEvent."""
    event_type = raw.get("type")
    if not isinstance(event_type, str) or not event_type:
        raise VerificationError("Webhook payload has no event type")

    data = raw.get("data") or {}
    data_object = data.get("object") if isinstance(data, dict) else None
    if not isinstance(data_object, dict):
        data_object = {}

    kind = EVENT_KINDS.get(event_type, IGNORED)
    created = raw.get("created")
    event = PaymentEvent(
        id=_as_str(raw.get("id")),
        type=event_type,
        kind=kind,
        created=created if isinstance(created, int) else None,
        customer_id=_as_str(data_object.get("customer")),
        data_object=data_object,
    )

    if kind == CHECKOUT_COMPLETED:
        metadata = data_object.get("metadata") or {}
        user_id = metadata.get("userId") if isinstance(metadata, dict) else None
        event.user_id = _as_str(user_id) or _as_str(data_object.get("client_reference_id"))

    return event


class PaymentEventVerifier:
    """
    Verifies the Stripe-Signature header against the endpoint secret.

    Stripe signs ``"<timestamp>.<raw body>"`` with HMAC-SHA256 and sends
    ``t=<timestamp>,v1=<hex digest>``; the check must run on the exact bytes
    received, before any JSON parsing.
    """

    def __init__(self, secret: Optional[str], tolerance: int = 300):
        self.secret = secret
        self.tolerance = tolerance

    def verify(self, payload: bytes, signature: Optional[str]) -> PaymentEvent:
        """
        Authenticate and decode a webhook payload.

        Args:
            payload: raw request body
            signature: value of the Stripe-Signature header

        Returns:
            The decoded PaymentEvent

        Raises:
            VerificationError: secret not configured, header missing, signature
                mismatch, stale timestamp, or undecodable payload
        """
        if not self.secret:
            logger.error("STRIPE_WEBHOOK_SECRET is not set. Cannot verify webhook.")
            raise VerificationError("Webhook secret not configured")

        if not signature:
            logger.warning("Missing Stripe-Signature header")
            raise VerificationError("Missing signature header")

        try:
            body = payload.decode("utf-8") if isinstance(payload, bytes) else payload
        except UnicodeDecodeError as e:
            logger.warning(f"Webhook payload is not UTF-8: {e}")
            raise VerificationError("Invalid payload format")

        # verify_header signs the text it is given; bytes must be decoded first
        try:
            stripe.WebhookSignature.verify_header(body, signature, self.secret, self.tolerance)
        except (stripe.SignatureVerificationError, ValueError) as e:
            logger.warning(f"Stripe webhook signature verification failed: {e}")
            raise VerificationError("Invalid webhook signature")

        try:
            raw = json.loads(body)
        except ValueError as e:
            logger.warning(f"Invalid webhook payload: {e}")
            raise VerificationError("Invalid payload format")

        if not isinstance(raw, dict):
            raise VerificationError("Invalid payload format")

        return decode_event(raw)
