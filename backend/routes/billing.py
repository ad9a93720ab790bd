"""Billing routes - Pro plan checkout."""
from fastapi import APIRouter, Depends, HTTPException, status
import logging

from dependencies import get_db, get_stripe
from middleware import get_current_user
from models import AuditAction, CurrentUser
from services.stripe_service import CheckoutError, StripeGateway
from utils.audit import create_audit_log

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/stripe", tags=["billing"])


@router.post("/checkout")
async def create_checkout(
    user: CurrentUser = Depends(get_current_user),
    gateway: StripeGateway = Depends(get_stripe),
    db=Depends(get_db),
):
    """Start a one-off Pro plan payment. Returns the hosted checkout URL."""
    if user.is_pro:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Already on the Pro plan")

    try:
        session = gateway.create_checkout_session(user)
    except CheckoutError as e:
        logger.error(f"Checkout failed for user {user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create checkout session"
        )

    await create_audit_log(
        action=AuditAction.CHECKOUT_STARTED,
        actor_role=user.role,
        actor_id=user.id,
        resource_type="user",
        resource_id=user.id,
        metadata={"stripe_session_id": session["session_id"]},
        db=db,
    )
    return {"url": session["url"]}
