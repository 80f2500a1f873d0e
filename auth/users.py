from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config.logging_config import LoggingConfig
from models.errors import EmailExistsError
from models.models import Users

logger = LoggingConfig.get_logger(__name__)


class UserStore:
    """Creates users and looks them up by email"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_user(self, email: str, password_hash: str) -> Users:
        """
        Insert a new user

        Raises:
            EmailExistsError: If the email is already registered
        """
        user = Users(email=email, password_hash=password_hash)
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise EmailExistsError(email) from e

        logger.info("Registered new user %s", email)
        return user

    async def get_by_email(self, email: str) -> Optional[Users]:
        result = await self.db.execute(select(Users).where(Users.email == email))
        return result.scalar_one_or_none()
