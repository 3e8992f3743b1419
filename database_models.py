import uuid
from datetime import datetime

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, JSON, Text
from database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


# Subscription enums, stored as plain strings
SUBSCRIPTION_FREE = "free"
SUBSCRIPTION_PRO = "pro"

STATUS_INACTIVE = "inactive"
STATUS_ACTIVE = "active"
STATUS_PAST_DUE = "past_due"
STATUS_CANCELED = "canceled"


class User(Base):
    """
    Freelancer account. Only the billing-relevant columns are written by
    the webhook sync; everything else belongs to the account owner.
    """
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String, unique=True, nullable=False, index=True)
    username = Column(String, unique=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    zap_link = Column(String(6), unique=True, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    subscription_type = Column(String, default=SUBSCRIPTION_FREE, nullable=False)
    subscription_status = Column(String, default=STATUS_INACTIVE, nullable=False)
    stripe_customer_id = Column(String, nullable=True, index=True)
    stripe_subscription_id = Column(String, nullable=True)
    subscription_ends_at = Column(DateTime, nullable=True)
    # created time of the last Stripe event applied to this row
    subscription_event_at = Column(DateTime, nullable=True)


class Form(Base):
    __tablename__ = "forms"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    fields = Column(JSON, nullable=False, default=list)
    is_published = Column(Boolean, default=False, nullable=False)
    shareable_link = Column(String(36), unique=True, nullable=False, default=_uuid)
    calendly_link = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class FormSubmission(Base):
    __tablename__ = "form_submissions"

    id = Column(String(36), primary_key=True, default=_uuid)
    form_id = Column(String(36), ForeignKey("forms.id", ondelete="CASCADE"), nullable=False, index=True)
    client_name = Column(String, nullable=False)
    client_email = Column(String, nullable=False)
    submission_data = Column(JSON, nullable=False, default=dict)
    submitted_at = Column(DateTime, default=datetime.utcnow, nullable=False)
