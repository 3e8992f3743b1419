"""
Billing request/response models
"""
from pydantic import BaseModel
from typing import Literal, Optional, Dict, Any


class CheckoutRequest(BaseModel):
    """Request model for starting a Stripe checkout"""
    interval: Literal["monthly", "yearly"] = "monthly"


class CheckoutResponse(BaseModel):
    url: str
    session_id: str


class BillingInfo(BaseModel):
    """Local subscription fields plus optional live Stripe enrichment"""
    has_subscription: bool
    subscription_type: str
    subscription_status: str
    subscription_ends_at: Optional[str] = None
    current_period_end: Optional[int] = None
    cancel_at_period_end: Optional[bool] = None
    next_bill_date: Optional[int] = None
    next_bill_amount: Optional[int] = None


class UsageStats(BaseModel):
    forms_count: int
    submissions_count: int
    limits: Dict[str, Any]
    form_limit_text: str
    submission_limit_text: str
