"""
Ownership-scoped data access for forms and submissions

Every owner-facing operation takes the verified subject and filters on it in
the query itself. A record that exists but belongs to someone else is reported
exactly like a record that does not exist.
"""
import secrets
import uuid
from ipaddress import IPv4Address, IPv6Address
from typing import Any, Dict, List, Tuple, Union

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from config.logging_config import LoggingConfig
from models.errors import NotFoundError
from models.models import Form, Submission, Users

logger = LoggingConfig.get_logger(__name__)

IPAddress = Union[IPv4Address, IPv6Address]


def generate_form_secret() -> str:
    return secrets.token_hex(32)


class FormStore:
    """Forms and submissions, as seen by one subject (or by the public secret)"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_form(self, subject: uuid.UUID, name: str) -> Form:
        form = Form(user_id=subject, name=name, secret=generate_form_secret())
        self.db.add(form)
        await self.db.commit()
        logger.info("User %s created form %s", subject, form.id)
        return form

    async def list_forms(self, subject: uuid.UUID) -> List[Form]:
        result = await self.db.execute(
            select(Form)
            .where(Form.user_id == subject)
            .order_by(Form.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_form(self, subject: uuid.UUID, form_id: uuid.UUID) -> Form:
        result = await self.db.execute(
            select(Form).where(Form.id == form_id, Form.user_id == subject)
        )
        form = result.scalar_one_or_none()
        if form is None:
            raise NotFoundError("Form not found")
        return form

    async def delete_form(self, subject: uuid.UUID, form_id: uuid.UUID) -> None:
        result = await self.db.execute(
            delete(Form)
            .where(Form.id == form_id, Form.user_id == subject)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        if result.rowcount == 0:
            raise NotFoundError("Form not found")
        logger.info("User %s deleted form %s", subject, form_id)

    async def list_submissions(self, subject: uuid.UUID, form_id: uuid.UUID) -> List[Submission]:
        # unknown or foreign form is a 404, not an empty list
        await self.get_form(subject, form_id)

        result = await self.db.execute(
            select(Submission)
            .join(Form, Submission.form_id == Form.id)
            .where(Form.id == form_id, Form.user_id == subject)
            .order_by(Submission.created_at.desc())
        )
        return list(result.scalars().all())

    async def delete_submission(self, subject: uuid.UUID, submission_id: uuid.UUID) -> None:
        owned_forms = select(Form.id).where(Form.user_id == subject)
        result = await self.db.execute(
            delete(Submission)
            .where(Submission.id == submission_id, Submission.form_id.in_(owned_forms))
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        if result.rowcount == 0:
            raise NotFoundError("Submission not found")
        logger.info("User %s deleted submission %s", subject, submission_id)

    async def find_by_secret(self, secret: str) -> Tuple[Form, str]:
        """Resolve a public secret to its form and the owner's email"""
        result = await self.db.execute(
            select(Form, Users.email)
            .join(Users, Form.user_id == Users.id)
            .where(Form.secret == secret)
        )
        row = result.first()
        if row is None:
            raise NotFoundError("Form not found")
        return row[0], row[1]

    async def add_submission(self, form_id: uuid.UUID, data: Dict[str, Any],
                             ip_address: IPAddress) -> Submission:
        submission = Submission(form_id=form_id, data=data, ip_address=str(ip_address))
        self.db.add(submission)
        await self.db.commit()
        return submission
