"""
Entitlements: plan limits derived from a user's subscription fields.

Everything here is pure. A user is on the paid plan only when
subscription_type is "pro" AND subscription_status is "active"; every
other combination (past_due, canceled, pro/inactive, ...) gets free-tier caps.
"""
from dataclasses import dataclass, asdict
from typing import Optional

from database_models import SUBSCRIPTION_PRO, STATUS_ACTIVE, STATUS_PAST_DUE

FREE_MAX_FORMS = 1
FREE_MAX_SUBMISSIONS = 3

# None means "no limit"
UNLIMITED = None


@dataclass(frozen=True)
class Limits:
    max_forms: Optional[int]
    max_submissions: Optional[int]
    custom_branding: bool
    saved_contracts: bool
    multi_form_flows: bool

    def to_dict(self) -> dict:
        return asdict(self)


PRO_LIMITS = Limits(
    max_forms=UNLIMITED,
    max_submissions=UNLIMITED,
    custom_branding=True,
    saved_contracts=True,
    multi_form_flows=True,
)

FREE_LIMITS = Limits(
    max_forms=FREE_MAX_FORMS,
    max_submissions=FREE_MAX_SUBMISSIONS,
    custom_branding=False,
    saved_contracts=False,
    multi_form_flows=False,
)


def is_pro(user) -> bool:
    return (
        getattr(user, "subscription_type", None) == SUBSCRIPTION_PRO
        and getattr(user, "subscription_status", None) == STATUS_ACTIVE
    )


def is_past_due(user) -> bool:
    return getattr(user, "subscription_status", None) == STATUS_PAST_DUE


def evaluate(user) -> Limits:
    """Map a user record to the plan limits it is entitled to."""
    return PRO_LIMITS if is_pro(user) else FREE_LIMITS


def _under_limit(limit: Optional[int], current_count: int) -> bool:
    return limit is UNLIMITED or current_count < limit


def can_create_form(user, current_form_count: int) -> bool:
    return _under_limit(evaluate(user).max_forms, current_form_count)


def can_create_submission(user, current_submission_count: int) -> bool:
    return _under_limit(evaluate(user).max_submissions, current_submission_count)


def form_limit_text(user, forms_count: int) -> str:
    limits = evaluate(user)
    if limits.max_forms is UNLIMITED:
        return "Unlimited forms"
    return f"{forms_count}/{limits.max_forms} forms used"


def submission_limit_text(user, submissions_count: int) -> str:
    limits = evaluate(user)
    if limits.max_submissions is UNLIMITED:
        return "Unlimited submissions"
    return f"{submissions_count}/{limits.max_submissions} submissions used"
