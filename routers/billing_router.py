"""
Billing Router - Stripe checkout, webhook ingestion and entitlement status
Webhook reads the raw body itself; signature verification needs the exact bytes
"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, Request

from auth import IdentityResolver, effective_user_id, get_identity_resolver, get_optional_user_id
from dependencies import get_billing_service, get_entitlement_service, get_payment_verifier
from models.billing_models import CheckoutRequest
from services.billing_service import BillingService
from services.entitlement_service import EntitlementService
from services.payment_events import PaymentEventVerifier
from utils.responses import success_response

logger = logging.getLogger(__name__)

billing_router = APIRouter(tags=["billing"])


# WEBHOOK ENDPOINT - consumes the raw request body, never a parsed model
@billing_router.post("/webhook")
async def stripe_webhook(
    request: Request,
    verifier: PaymentEventVerifier = Depends(get_payment_verifier),
    entitlements: EntitlementService = Depends(get_entitlement_service),
):
    """
    Handle Stripe webhook events with signature verification.

    Unverified payloads are rejected with 400 before anything is mutated.
    Processing errors after verification propagate as 500 so Stripe redelivers.
    """
    payload = await request.body()
    event = verifier.verify(payload, request.headers.get("stripe-signature"))

    logger.info(f"Processing Stripe webhook event {event.id}: {event.type}")
    handled = await entitlements.apply_event(event)
    return success_response({"received": True, "handled": handled, "type": event.type})


@billing_router.post("/api/stripe/checkout")
async def create_checkout_session(
    request: CheckoutRequest = Body(...),
    caller_id: Optional[str] = Depends(get_optional_user_id),
    resolver: IdentityResolver = Depends(get_identity_resolver),
    billing: BillingService = Depends(get_billing_service),
):
    """Start a subscription checkout; returns the hosted checkout URL."""
    user_id = effective_user_id(resolver, caller_id, request.user_id)
    url = await billing.create_checkout_session(user_id, request.email)
    return success_response({"url": url})


@billing_router.get("/api/user/status")
async def get_user_status(
    user_id: Optional[str] = Query(default=None, alias="userId"),
    caller_id: Optional[str] = Depends(get_optional_user_id),
    resolver: IdentityResolver = Depends(get_identity_resolver),
    entitlements: EntitlementService = Depends(get_entitlement_service),
):
    """Read the caller's pro flag. Unknown users are reported as not pro."""
    user_id = effective_user_id(resolver, caller_id, user_id)
    is_pro = await entitlements.check(user_id)
    return success_response({"userId": user_id, "isPro": is_pro})
