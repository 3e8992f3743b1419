"""
FormRepository for the Form and FormSubmission models.
Billing only needs the counts; create/list exist so the counts have
something to count.
"""

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from database_models import Form, FormSubmission


class FormRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_forms(self, user_id: str) -> list[Form]:
        result = await self.db.execute(
            select(Form).where(Form.user_id == user_id).order_by(Form.created_at)
        )
        return list(result.scalars().all())

    async def get_form_by_shareable_link(self, link: str) -> Optional[Form]:
        result = await self.db.execute(
            select(Form).where(Form.shareable_link == link)
        )
        return result.scalar_one_or_none()

    async def count_forms(self, user_id: str) -> int:
        result = await self.db.execute(
            select(func.count(Form.id)).where(Form.user_id == user_id)
        )
        return result.scalar_one()

    async def count_submissions(self, user_id: str) -> int:
        """Count submissions across every form the user owns."""
        result = await self.db.execute(
            select(func.count(FormSubmission.id))
            .join(Form, FormSubmission.form_id == Form.id)
            .where(Form.user_id == user_id)
        )
        return result.scalar_one()

    async def create_form(self, user_id: str, form_data: dict) -> Form:
        form = Form(
            user_id=user_id,
            title=form_data["title"],
            description=form_data.get("description"),
            fields=form_data.get("fields") or [],
            is_published=form_data.get("is_published", False),
            calendly_link=form_data.get("calendly_link"),
        )
        self.db.add(form)
        await self.db.flush()
        await self.db.refresh(form)
        return form

    async def create_submission(self, form: Form, submission_data: dict) -> FormSubmission:
        submission = FormSubmission(
            form_id=form.id,
            client_name=submission_data["client_name"],
            client_email=submission_data["client_email"],
            submission_data=submission_data.get("submission_data") or {},
        )
        self.db.add(submission)
        await self.db.flush()
        await self.db.refresh(submission)
        return submission
