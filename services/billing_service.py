"""
Billing Service - Stripe checkout, billing view and cancel/reactivate
"""

import logging
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
import stripe

from config import settings
from crud.user import UserRepository
from database_models import User
from utils.stripe_utils import get_field, subscription_period_end

logger = logging.getLogger(__name__)

# Initialize Stripe client
if settings.stripe_secret_key:
    stripe.api_key = settings.stripe_secret_key
else:
    logger.warning("STRIPE_SECRET_KEY is not set. Stripe functionality will be unavailable.")

INTERVAL_MONTHLY = "monthly"
INTERVAL_YEARLY = "yearly"

# Fallback inline pricing (cents) when no Stripe price ids are configured
PLAN_PRICES = {
    INTERVAL_MONTHLY: {"unit_amount": 900, "interval": "month"},
    INTERVAL_YEARLY: {"unit_amount": 9000, "interval": "year"},
}
PRODUCT_NAME = "ClientZap Pro"
PRODUCT_DESCRIPTION = "Unlimited forms, submissions, and custom branding"


class BillingServiceException(Exception):
    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _line_item(interval: str) -> dict:
    price_id = (
        settings.stripe_yearly_price_id if interval == INTERVAL_YEARLY
        else settings.stripe_monthly_price_id
    )
    if price_id:
        return {"price": price_id, "quantity": 1}

    price = PLAN_PRICES[interval]
    return {
        "price_data": {
            "currency": "usd",
            "product_data": {
                "name": PRODUCT_NAME,
                "description": PRODUCT_DESCRIPTION,
            },
            "unit_amount": price["unit_amount"],
            "recurring": {"interval": price["interval"]},
        },
        "quantity": 1,
    }


class BillingService:
    """
    Service class for the user-initiated side of billing.
    Subscription state itself is only written by StripeWebhookService.
    """

    def __init__(self, db: AsyncSession, user_repo: Optional[UserRepository] = None):
        """
        Initialize the billing service.

        Args:
            db: AsyncSession instance for database operations
            user_repo: optional UserRepository (defaults to one bound to db)
        """
        self.db = db
        self.user_repo = user_repo or UserRepository(db)

    async def ensure_customer(self, user: User) -> str:
        """
        Return the user's Stripe customer id, creating the customer on first use.

        The new id is committed before returning so a later failure in the
        checkout call cannot orphan a second customer on retry.
        """
        if user.stripe_customer_id:
            return user.stripe_customer_id

        customer = await stripe.Customer.create_async(
            email=user.email,
            name=user.username,
            metadata={"user_id": str(user.id)},
        )
        await self.user_repo.update_user(user, {"stripe_customer_id": customer.id})
        await self.db.commit()
        logger.info(f"Created Stripe customer {customer.id} for user {user.id}")
        return customer.id

    async def create_checkout_session(self, user: User, interval: str) -> dict:
        """
        Create a hosted Stripe Checkout session for the Pro plan.

        Args:
            user: authenticated User
            interval: "monthly" or "yearly"

        Returns:
            {"url": <checkout url>, "session_id": <cs_...>}

        Raises:
            BillingServiceException: on bad interval or any Stripe failure
        """
        if interval not in PLAN_PRICES:
            raise BillingServiceException(f"Unsupported billing interval: {interval}", status_code=400)

        frontend_url = settings.frontend_url or "http://localhost:5000"
        try:
            customer_id = await self.ensure_customer(user)
            checkout_session = await stripe.checkout.Session.create_async(
                customer=customer_id,
                payment_method_types=["card"],
                line_items=[_line_item(interval)],
                mode="subscription",
                success_url=f"{frontend_url}/billing?success=true",
                cancel_url=f"{frontend_url}/billing?canceled=true",
                metadata={
                    "user_id": str(user.id),
                    "interval": interval,
                },
            )
        except stripe.StripeError as e:
            logger.error(f"Failed to create checkout session for user {user.id}: {e}", exc_info=True)
            raise BillingServiceException("Failed to create checkout session", status_code=502) from e

        return {"url": checkout_session.url, "session_id": checkout_session.id}

    async def get_billing_info(self, user: User) -> dict:
        """
        Local subscription fields, enriched with live Stripe data when available.
        Never writes.
        """
        billing = {
            "has_subscription": bool(user.stripe_subscription_id),
            "subscription_type": user.subscription_type,
            "subscription_status": user.subscription_status,
        }
        if not user.stripe_subscription_id:
            return billing

        billing["subscription_ends_at"] = (
            user.subscription_ends_at.isoformat() if user.subscription_ends_at else None
        )

        try:
            subscription = await stripe.Subscription.retrieve_async(user.stripe_subscription_id)
        except stripe.StripeError as e:
            logger.warning(f"Could not fetch subscription {user.stripe_subscription_id}: {e}")
            return billing

        billing["current_period_end"] = subscription_period_end(subscription)
        billing["cancel_at_period_end"] = bool(get_field(subscription, "cancel_at_period_end", False))

        if user.stripe_customer_id:
            try:
                upcoming = await stripe.Invoice.create_preview_async(
                    customer=user.stripe_customer_id,
                    subscription=user.stripe_subscription_id,
                )
                billing["next_bill_date"] = get_field(upcoming, "next_payment_attempt")
                billing["next_bill_amount"] = get_field(upcoming, "amount_due")
            except stripe.StripeError as e:
                # No upcoming invoice once the subscription is set to cancel
                logger.info(f"No upcoming invoice for customer {user.stripe_customer_id}: {e}")

        return billing

    async def set_cancel_at_period_end(self, user: User, cancel: bool) -> None:
        """
        Toggle auto-renewal on the Stripe subscription.
        Local status changes only once Stripe reports back through the webhook.
        """
        if not user.stripe_subscription_id:
            message = "No active subscription found" if cancel else "No subscription found"
            raise BillingServiceException(message, status_code=400)

        try:
            await stripe.Subscription.modify_async(
                user.stripe_subscription_id,
                cancel_at_period_end=cancel,
            )
        except stripe.StripeError as e:
            action = "cancel" if cancel else "reactivate"
            logger.error(f"Failed to {action} subscription {user.stripe_subscription_id}: {e}", exc_info=True)
            raise BillingServiceException(f"Failed to {action} subscription", status_code=502) from e

        logger.info(
            f"Subscription {user.stripe_subscription_id} cancel_at_period_end={cancel} for user {user.id}"
        )
