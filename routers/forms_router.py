"""
Forms Router - the parts of form handling that are subject to plan limits
"""

import logging
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user
from crud.form import FormRepository
from crud.user import UserRepository
from database import get_db
from database_models import User, Form
from models.form import FormCreate, SubmissionCreate
from services.entitlement_service import can_create_form, can_create_submission
from utils.responses import success_response, error_response, limit_reached_response

logger = logging.getLogger(__name__)

forms_router = APIRouter(prefix="/api", tags=["forms"])


def _serialize_form(form: Form) -> dict:
    return {
        "id": form.id,
        "title": form.title,
        "description": form.description,
        "fields": form.fields,
        "is_published": form.is_published,
        "shareable_link": form.shareable_link,
        "calendly_link": form.calendly_link,
        "created_at": form.created_at.isoformat() if form.created_at else None,
    }


@forms_router.get("/forms")
async def list_forms(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    forms = await FormRepository(db).list_forms(user.id)
    return success_response({"forms": [_serialize_form(f) for f in forms]})


@forms_router.post("/forms")
async def create_form(
    body: FormCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Create a form, provided the user's plan has room for another one."""
    form_repo = FormRepository(db)
    forms_count = await form_repo.count_forms(user.id)
    if not can_create_form(user, forms_count):
        return limit_reached_response(
            "form_limit_reached",
            "Form limit reached. Upgrade to Pro for unlimited forms.",
        )

    form = await form_repo.create_form(user.id, body.model_dump())
    return success_response(_serialize_form(form), status=201)


@forms_router.post("/public/forms/{shareable_link}/submit")
async def submit_form(
    shareable_link: str,
    body: SubmissionCreate,
    db: AsyncSession = Depends(get_db)
):
    """
    Public submission endpoint. Counts against the form owner's plan,
    not the (anonymous) submitter's.
    """
    form_repo = FormRepository(db)
    form = await form_repo.get_form_by_shareable_link(shareable_link)
    if not form or not form.is_published:
        return error_response("not_found", status=404, message="Form not found")

    owner = await UserRepository(db).get_user_by_id(form.user_id)
    if owner is None:
        return error_response("not_found", status=404, message="Form not found")

    submissions_count = await form_repo.count_submissions(owner.id)
    if not can_create_submission(owner, submissions_count):
        logger.info(f"Submission rejected for form {form.id}: owner {owner.id} is at the plan limit")
        return limit_reached_response(
            "submission_limit_reached",
            "This form is not accepting submissions right now.",
            needs_upgrade=False,
        )

    submission = await form_repo.create_submission(form, body.model_dump())
    return success_response(
        {
            "submission_id": submission.id,
            "form_title": form.title,
            "calendly_link": form.calendly_link,
        },
        status=201,
    )
