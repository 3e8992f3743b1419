"""
Billing Router - API endpoints for Stripe billing integration
Webhook is defined FIRST to avoid middleware conflicts
"""

import logging
from fastapi import APIRouter, Request, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user
from crud.form import FormRepository
from database import get_db
from database_models import User
from models.billing import BillingInfo, CheckoutRequest, CheckoutResponse, UsageStats
from services import entitlement_service
from services.billing_service import BillingService, BillingServiceException
from services.stripe_webhook_service import StripeWebhookService, WebhookSignatureError
from utils.responses import success_response, error_response

logger = logging.getLogger(__name__)

# Create billing router
billing_router = APIRouter(prefix="/api", tags=["billing"])

WEBHOOK_PATH = "/api/billing/webhook"


# WEBHOOK ENDPOINT - MUST BE DEFINED FIRST TO AVOID MIDDLEWARE CONFLICTS
@billing_router.post("/billing/webhook")
async def stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """
    Handle Stripe webhook events with signature verification.

    - 400 when the signature cannot be verified (Stripe will not fix that by retrying)
    - 500 when processing fails, so Stripe redelivers later
    - 200 {"received": true} otherwise, including ignored and unresolvable events
    """
    # Raw body is required for signature verification
    payload = await request.body()
    stripe_signature = request.headers.get("stripe-signature")

    try:
        result = await StripeWebhookService(db).handle_webhook(payload, stripe_signature)
    except WebhookSignatureError as e:
        logger.error(f"Stripe webhook signature verification failed: {e}")
        return JSONResponse(
            status_code=400,
            content={"received": False, "error": f"Webhook Error: {e}"}
        )
    except Exception as e:
        logger.error(f"Error processing Stripe webhook: {e}", exc_info=True)
        await db.rollback()
        return JSONResponse(
            status_code=500,
            content={"received": False, "error": "Webhook processing failed"}
        )

    return JSONResponse(
        status_code=200,
        content={
            "received": True,
            "event_type": result["event_type"],
            "handled": result["handled"],
        }
    )


@billing_router.post("/billing/create-checkout-session")
async def create_checkout_session(
    body: CheckoutRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a Stripe Checkout session for the Pro plan.
    The frontend redirects the browser to the returned url.
    """
    try:
        result = await BillingService(db).create_checkout_session(user, body.interval)
    except BillingServiceException as e:
        return error_response("checkout_failed", status=e.status_code, message=e.message)
    return success_response(CheckoutResponse(**result).model_dump())


@billing_router.get("/billing")
async def get_billing(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Billing view for the dashboard."""
    billing = await BillingService(db).get_billing_info(user)
    return success_response(BillingInfo(**billing).model_dump(exclude_none=True))


@billing_router.post("/billing/cancel-subscription")
async def cancel_subscription(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Stop auto-renewal at the end of the current period."""
    try:
        await BillingService(db).set_cancel_at_period_end(user, True)
    except BillingServiceException as e:
        return error_response("cancel_failed", status=e.status_code, message=e.message)
    return success_response(
        {"success": True},
        message="Subscription will be cancelled at the end of the current period",
    )


@billing_router.post("/billing/reactivate-subscription")
async def reactivate_subscription(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        await BillingService(db).set_cancel_at_period_end(user, False)
    except BillingServiceException as e:
        return error_response("reactivate_failed", status=e.status_code, message=e.message)
    return success_response({"success": True}, message="Subscription reactivated")


@billing_router.get("/subscription/usage")
async def get_usage(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Form and submission counts alongside the limits they are measured against."""
    form_repo = FormRepository(db)
    forms_count = await form_repo.count_forms(user.id)
    submissions_count = await form_repo.count_submissions(user.id)

    usage = UsageStats(
        forms_count=forms_count,
        submissions_count=submissions_count,
        limits=entitlement_service.evaluate(user).to_dict(),
        form_limit_text=entitlement_service.form_limit_text(user, forms_count),
        submission_limit_text=entitlement_service.submission_limit_text(user, submissions_count),
    )
    return success_response(usage.model_dump())
