"""
Helpers for reading Stripe objects.

Webhook payloads arrive as plain dicts while SDK calls return StripeObjects,
and several fields moved between API versions (invoice.subscription,
subscription.current_period_end). These helpers read both shapes.
"""
from datetime import datetime, timezone
from typing import Any, Optional


def get_field(obj: Any, key: str, default: Any = None) -> Any:
    if obj is None:
        return default
    if isinstance(obj, dict):
        return obj.get(key, default)
    return getattr(obj, key, default)


def stripe_id(value: Any) -> Optional[str]:
    """Return the id of a Stripe reference that may be a string or an expanded object."""
    if value is None or isinstance(value, str):
        return value
    return get_field(value, "id")


def from_timestamp(ts: Optional[int]) -> Optional[datetime]:
    """Unix seconds -> naive UTC datetime, matching how the DB columns are stored."""
    if ts is None:
        return None
    return datetime.fromtimestamp(int(ts), tz=timezone.utc).replace(tzinfo=None)


def invoice_subscription_id(invoice: Any) -> Optional[str]:
    subscription = get_field(invoice, "subscription")
    if subscription:
        return stripe_id(subscription)
    # Basil API versions moved it under parent.subscription_details
    parent = get_field(invoice, "parent")
    details = get_field(parent, "subscription_details")
    return stripe_id(get_field(details, "subscription"))


def subscription_period_end(subscription: Any) -> Optional[int]:
    period_end = get_field(subscription, "current_period_end")
    if period_end is not None:
        return period_end
    items = get_field(get_field(subscription, "items"), "data") or []
    if items:
        return get_field(items[0], "current_period_end")
    return None
