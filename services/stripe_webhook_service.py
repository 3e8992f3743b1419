"""Stripe Webhook Service - keeps local subscription state in step with Stripe.

Events handled:
- checkout.session.completed   -> pro / active, stores the subscription id
- invoice.paid                 -> active, refreshes subscription_ends_at
- invoice.payment_failed       -> past_due
- customer.subscription.deleted -> free / inactive, clears subscription fields

Every other event type is acknowledged and ignored. Each branch is an
unconditional field-set on the resolved user, so Stripe's at-least-once
redelivery converges. Events older than the last one applied to a user
are dropped, except that a late invoice.paid for the user's current
subscription still refreshes subscription_ends_at (see _apply).
"""
import json
import logging
from datetime import datetime
from typing import Any, Optional

import stripe
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from crud.user import UserRepository
from database_models import (
    User,
    SUBSCRIPTION_FREE,
    SUBSCRIPTION_PRO,
    STATUS_ACTIVE,
    STATUS_INACTIVE,
    STATUS_PAST_DUE,
)
from utils.stripe_utils import (
    from_timestamp,
    get_field,
    invoice_subscription_id,
    stripe_id,
    subscription_period_end,
)

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
INVOICE_PAID = "invoice.paid"
INVOICE_PAYMENT_FAILED = "invoice.payment_failed"
SUBSCRIPTION_DELETED = "customer.subscription.deleted"


class WebhookSignatureError(Exception):
    """The payload could not be authenticated. Never retried."""


def verify_event(payload: bytes, signature: Optional[str], secret: Optional[str]) -> dict:
    """
    Check the Stripe-Signature header and decode the event.

    Returns the event as a plain dict.

    Raises:
        WebhookSignatureError: missing secret/header, bad signature, or a
            body that is not a JSON object
    """
    if not secret:
        raise WebhookSignatureError("Webhook secret not configured")
    if not signature:
        raise WebhookSignatureError("Missing Stripe-Signature header")

    if isinstance(payload, (bytes, bytearray)):
        try:
            body = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise WebhookSignatureError(f"Invalid payload encoding: {e}") from e
    else:
        body = payload

    try:
        stripe.WebhookSignature.verify_header(
            body, signature, secret, stripe.Webhook.DEFAULT_TOLERANCE
        )
    except stripe.SignatureVerificationError as e:
        raise WebhookSignatureError(str(e)) from e

    try:
        event = json.loads(body)
    except ValueError as e:
        raise WebhookSignatureError(f"Invalid payload format: {e}") from e
    if not isinstance(event, dict) or "type" not in event:
        raise WebhookSignatureError("Invalid payload format: not a Stripe event")
    return event


class StripeWebhookService:
    """
    Applies verified Stripe events to the user store.
    """

    def __init__(self, db: AsyncSession, user_repo: Optional[UserRepository] = None):
        self.db = db
        self.user_repo = user_repo or UserRepository(db)

    async def handle_webhook(self, payload: bytes, signature: Optional[str]) -> dict:
        """
        Entry point for the HTTP route: verify, then process.

        Raises:
            WebhookSignatureError: authentication failed; nothing was touched
        """
        event = verify_event(payload, signature, settings.stripe_webhook_secret)
        return await self.process_event(event)

    async def process_event(self, event: dict) -> dict:
        """
        Dispatch a verified event.

        Returns:
            {"event_type": str, "handled": bool, "user_id": str | None}
            handled is False for ignored types and for unresolvable users.
        """
        event_type = event.get("type")
        obj = (event.get("data") or {}).get("object") or {}
        created = from_timestamp(event.get("created"))
        logger.info(f"Processing Stripe webhook event {event.get('id')} ({event_type})")

        handlers = {
            CHECKOUT_COMPLETED: self._on_checkout_completed,
            INVOICE_PAID: self._on_invoice_paid,
            INVOICE_PAYMENT_FAILED: self._on_invoice_payment_failed,
            SUBSCRIPTION_DELETED: self._on_subscription_deleted,
        }
        handler = handlers.get(event_type)
        if handler is None:
            logger.debug(f"Ignoring unhandled Stripe event type {event_type}")
            return {"event_type": event_type, "handled": False, "user_id": None}

        user = await handler(obj, created)
        return {
            "event_type": event_type,
            "handled": user is not None,
            "user_id": user.id if user is not None else None,
        }

    # ------------------------------------------------------------------
    # Event branches
    # ------------------------------------------------------------------

    async def _on_checkout_completed(self, session: Any, created: Optional[datetime]) -> Optional[User]:
        metadata = get_field(session, "metadata") or {}
        user_id = get_field(metadata, "user_id")
        subscription_id = stripe_id(get_field(session, "subscription"))
        if not user_id or not subscription_id:
            logger.info(f"Checkout session {get_field(session, 'id')} has no user_id or subscription; skipping")
            return None

        user = await self.user_repo.get_user_by_id(user_id)
        if user is None:
            logger.warning(f"Checkout session {get_field(session, 'id')} references unknown user {user_id}")
            return None

        return await self._apply(user, created, {
            "subscription_type": SUBSCRIPTION_PRO,
            "subscription_status": STATUS_ACTIVE,
            "stripe_subscription_id": subscription_id,
        })

    async def _on_invoice_paid(self, invoice: Any, created: Optional[datetime]) -> Optional[User]:
        subscription_id = invoice_subscription_id(invoice)
        if not subscription_id:
            return None

        subscription = await stripe.Subscription.retrieve_async(subscription_id)
        user = await self._resolve_user(get_field(subscription, "customer"))
        if user is None:
            return None

        return await self._apply(
            user,
            created,
            {
                "subscription_status": STATUS_ACTIVE,
                "subscription_ends_at": from_timestamp(subscription_period_end(subscription)),
            },
            subscription_id=subscription_id,
            live_fields=("subscription_ends_at",),
        )

    async def _on_invoice_payment_failed(self, invoice: Any, created: Optional[datetime]) -> Optional[User]:
        customer = get_field(invoice, "customer")
        if customer is None:
            subscription_id = invoice_subscription_id(invoice)
            if not subscription_id:
                return None
            subscription = await stripe.Subscription.retrieve_async(subscription_id)
            customer = get_field(subscription, "customer")

        user = await self._resolve_user(customer)
        if user is None:
            return None

        return await self._apply(user, created, {"subscription_status": STATUS_PAST_DUE})

    async def _on_subscription_deleted(self, subscription: Any, created: Optional[datetime]) -> Optional[User]:
        user = await self._resolve_user(get_field(subscription, "customer"))
        if user is None:
            return None

        return await self._apply(user, created, {
            "subscription_type": SUBSCRIPTION_FREE,
            "subscription_status": STATUS_INACTIVE,
            "stripe_subscription_id": None,
            "subscription_ends_at": None,
        })

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _resolve_user(self, customer: Any) -> Optional[User]:
        """
        Customer -> local user, via customer.metadata.user_id first and the
        stored stripe_customer_id second. None means "not ours".
        """
        customer_id = stripe_id(customer)
        if not customer_id:
            return None

        if isinstance(customer, str):
            customer = await stripe.Customer.retrieve_async(customer_id)

        if get_field(customer, "deleted"):
            metadata = {}
        else:
            metadata = get_field(customer, "metadata") or {}

        user_id = get_field(metadata, "user_id")
        if user_id:
            user = await self.user_repo.get_user_by_id(user_id)
            if user is not None:
                return user

        user = await self.user_repo.get_user_by_stripe_customer_id(customer_id)
        if user is None:
            logger.info(f"No local user for Stripe customer {customer_id}; event ignored")
        return user

    async def _apply(
        self,
        user: User,
        created: Optional[datetime],
        updates: dict,
        subscription_id: Optional[str] = None,
        live_fields: tuple = (),
    ) -> Optional[User]:
        """
        Write the fields unless the event predates the last one applied.
        Equal timestamps are applied so that redelivery is a no-op overwrite.

        live_fields were read from Stripe while handling the event, so they
        are current whatever the event's age. A stale event about the
        subscription the user still holds writes only those.
        """
        last_applied = user.subscription_event_at
        if created is not None and last_applied is not None and created < last_applied:
            live_updates = {key: updates[key] for key in live_fields if key in updates}
            if live_updates and subscription_id and subscription_id == user.stripe_subscription_id:
                logger.info(
                    f"Late Stripe event for user {user.id} (event at {created.isoformat()}); "
                    f"refreshing {', '.join(live_updates)} only"
                )
                return await self.user_repo.update_user(user, live_updates)

            logger.warning(
                f"Dropping stale Stripe event for user {user.id}: "
                f"event at {created.isoformat()} < last applied {last_applied.isoformat()}"
            )
            return None

        if created is not None:
            updates = {**updates, "subscription_event_at": created}
        user = await self.user_repo.update_user(user, updates)
        logger.info(
            f"User {user.id} subscription now {user.subscription_type}/{user.subscription_status}"
        )
        return user
