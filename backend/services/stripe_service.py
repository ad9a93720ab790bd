"""Stripe Service - Pro plan checkout and webhook verification.

This service handles:
- Creating a one-off checkout session for the Pro plan
- Verifying webhook signatures and decoding events

Key Principles:
- Metadata carries user_id so the webhook can find the owner to upgrade
- The API key is passed per call; nothing is configured globally
"""
import json
import logging
import os
from typing import Any, Dict, Optional

import stripe

from models import CurrentUser
from utils.public_app_url import get_public_app_url

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
DEFAULT_PRO_PRICE_CENTS = 1500  # $15.00


class CheckoutError(Exception):
    """Checkout could not be created (configuration or Stripe failure)."""
    pass


class WebhookVerificationError(ValueError):
    """Missing/invalid signature or undecodable payload."""
    pass


class StripeGateway:
    """Process-wide handle for Stripe calls."""

    def __init__(
        self,
        api_key: Optional[str],
        webhook_secret: Optional[str],
        site_url: Optional[str] = None,
        price_cents: int = DEFAULT_PRO_PRICE_CENTS,
    ):
        self.api_key = (api_key or "").strip()
        self.webhook_secret = (webhook_secret or "").strip()
        self.site_url = site_url
        self.price_cents = price_cents

    @classmethod
    def from_env(cls) -> "StripeGateway":
        api_key = os.getenv("STRIPE_SECRET_KEY") or os.getenv("STRIPE_API_KEY")
        if not api_key:
            logger.error("STRIPE_SECRET_KEY is not set. Checkout will fail.")
        else:
            mode = "test" if api_key.startswith("sk_test_") else "live"
            logger.info("STRIPE_MODE = %s (from Stripe key prefix)", mode)
        return cls(
            api_key=api_key,
            webhook_secret=os.getenv("STRIPE_WEBHOOK_SECRET"),
            price_cents=int(os.getenv("PRO_PLAN_PRICE_CENTS", str(DEFAULT_PRO_PRICE_CENTS))),
        )

    def _base_url(self) -> str:
        return (self.site_url or get_public_app_url()).rstrip("/")

    def create_checkout_session(self, user: CurrentUser) -> Dict[str, Any]:
        """
        Create a Stripe checkout session for the Pro plan.

        Returns:
            Dict with checkout url and session_id
        """
        if not self.api_key:
            raise CheckoutError("STRIPE_SECRET_KEY is missing")

        base_url = self._base_url()
        try:
            session = stripe.checkout.Session.create(
                api_key=self.api_key,
                line_items=[
                    {
                        "price_data": {
                            "currency": "usd",
                            "product_data": {
                                "name": "Pro Plan",
                                "description": "Unlock all premium features",
                            },
                            "unit_amount": self.price_cents,
                        },
                        "quantity": 1,
                    }
                ],
                mode="payment",
                success_url=f"{base_url}/admin?upgraded=1",
                cancel_url=f"{base_url}/admin?canceled=1",
                metadata={"user_id": user.id},
                customer_email=user.email,
            )
        except Exception as e:
            logger.error(f"Stripe checkout creation failed for user {user.id}: {e}")
            raise CheckoutError(str(e)) from e

        logger.info(f"Checkout session {session.id} created for user {user.id}")
        return {"url": session.url, "session_id": session.id}

    def verify_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """Verify the Stripe-Signature header and decode the event body."""
        if not signature:
            raise WebhookVerificationError("Missing Stripe-Signature")
        if not self.webhook_secret:
            raise WebhookVerificationError("STRIPE_WEBHOOK_SECRET is missing")

        try:
            text = payload.decode("utf-8")
            stripe.WebhookSignature.verify_header(text, signature, self.webhook_secret)
            event = json.loads(text)
        except stripe.SignatureVerificationError as e:
            raise WebhookVerificationError(f"Invalid signature: {e}") from e
        except ValueError as e:
            raise WebhookVerificationError(f"Invalid payload: {e}") from e

        if not isinstance(event, dict):
            raise WebhookVerificationError("Invalid payload: expected an event object")
        return event


def checkout_owner_id(event: Dict[str, Any]) -> Optional[str]:
    """Owner id carried in a checkout session's metadata."""
    session = (event.get("data") or {}).get("object") or {}
    return (session.get("metadata") or {}).get("user_id")
