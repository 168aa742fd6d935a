"""
Billing Service - Stripe Checkout session creation for the pro subscription
"""

import logging
from typing import Optional

import stripe

from utils.errors import UpstreamError, ValidationError

logger = logging.getLogger(__name__)


class BillingService:
    """
    Starts hosted checkout for the single subscription price.
    Local entitlement state is never touched here; it only changes when the
    completed-checkout webhook arrives.
    """

    def __init__(self, api_key: Optional[str], price_id: Optional[str], frontend_url: Optional[str] = None):
        """
        Args:
            api_key: Stripe secret key
            price_id: Stripe price of the pro subscription
            frontend_url: base URL for the success/cancel redirects
        """
        self.api_key = api_key
        self.price_id = price_id
        self.frontend_url = (frontend_url or "http://localhost:5173").rstrip("/")

    async def create_checkout_session(self, user_id: Optional[str], email: Optional[str]) -> str:
        """
        Create a Stripe Checkout session tagged with the internal user id.

        Args:
            user_id: internal user id, echoed back in the completed-checkout event
            email: prefilled customer email

        Returns:
            Hosted checkout URL
        """
        if not user_id or not email:
            raise ValidationError("userId and email are required")

        if not self.api_key or not self.price_id:
            logger.error("STRIPE_SECRET_KEY or STRIPE_PRICE_ID is not set. Cannot create checkout session.")
            raise UpstreamError("Payments are not configured")

        try:
            checkout_session = await stripe.checkout.Session.create_async(
                api_key=self.api_key,
                mode="subscription",
                payment_method_types=["card"],
                line_items=[{
                    "price": self.price_id,
                    "quantity": 1,
                }],
                customer_email=email,
                client_reference_id=user_id,
                metadata={"userId": user_id},
                success_url=f"{self.frontend_url}/billing/success?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{self.frontend_url}/billing/cancel",
            )
        except stripe.StripeError as e:
            logger.error(f"Failed to create checkout session for user {user_id}: {e}", exc_info=True)
            raise UpstreamError("Failed to create checkout session")

        logger.info(f"Created checkout session {checkout_session.id} for user {user_id}")
        return checkout_session.url
