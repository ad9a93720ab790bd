"""Stripe webhook - upgrades the paying user to Pro.

Signature is verified before anything else; the raw body is required for
that, so the route reads request.body() rather than a parsed model.
"""
from fastapi import APIRouter, Depends, HTTPException, Request, status
import logging

from dependencies import get_stripe, get_user_service
from services.stripe_service import (
    CHECKOUT_COMPLETED,
    StripeGateway,
    WebhookVerificationError,
    checkout_owner_id,
)
from services.user_service import UserService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/stripe", tags=["webhooks"])


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    gateway: StripeGateway = Depends(get_stripe),
    users: UserService = Depends(get_user_service),
):
    payload = await request.body()
    signature = request.headers.get("Stripe-Signature")

    try:
        event = gateway.verify_event(payload, signature)
    except WebhookVerificationError as e:
        logger.warning(f"Rejected Stripe webhook: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    event_type = event.get("type")
    logger.info(f"Stripe webhook received: {event_type} ({event.get('id')})")

    if event_type == CHECKOUT_COMPLETED:
        user_id = checkout_owner_id(event)
        if not user_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing user_id in metadata")

        session = event["data"]["object"]
        customer_email = (session.get("customer_details") or {}).get("email") or session.get("customer_email")
        try:
            await users.upgrade_to_pro(user_id, reference=session.get("id"), customer_email=customer_email)
        except Exception as e:
            logger.error(f"Failed to upgrade user {user_id} after checkout: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to upgrade user"
            )

    return {"received": True}
