"""
UserRepository for database operations on User model
"""

import logging
import secrets
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from database_models import User

logger = logging.getLogger(__name__)

ZAP_LINK_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
ZAP_LINK_LENGTH = 6
ZAP_LINK_MAX_ATTEMPTS = 100


class ZapLinkExhaustedError(RuntimeError):
    """Raised when no free zap link could be found within the retry budget."""


def generate_zap_link() -> str:
    return "".join(secrets.choice(ZAP_LINK_ALPHABET) for _ in range(ZAP_LINK_LENGTH))


class UserRepository:
    """
    Repository class for User database operations.
    Encapsulates all database logic for the User model.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the repository with a database session.

        Args:
            db: AsyncSession instance for database operations
        """
        self.db = db

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """
        Retrieve a user by email address.

        Args:
            email: User's email address (case-insensitive search)

        Returns:
            User object if found, None otherwise
        """
        result = await self.db.execute(
            select(User).where(User.email == email.lower())
        )
        return result.scalar_one_or_none()

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        """
        Retrieve a user by ID.

        Args:
            user_id: User's ID

        Returns:
            User object if found, None otherwise
        """
        result = await self.db.execute(
            select(User).where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_user_by_username(self, username: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.username == username)
        )
        return result.scalar_one_or_none()

    async def get_user_by_zap_link(self, zap_link: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.zap_link == zap_link)
        )
        return result.scalar_one_or_none()

    async def get_user_by_stripe_customer_id(self, customer_id: str) -> Optional[User]:
        """
        Retrieve the user linked to a Stripe customer.

        Args:
            customer_id: Stripe customer ID (cus_...)

        Returns:
            User object if found, None otherwise
        """
        result = await self.db.execute(
            select(User).where(User.stripe_customer_id == customer_id)
        )
        return result.scalars().first()

    async def generate_unique_zap_link(self) -> str:
        """
        Draw random zap links until one is not taken.

        Raises:
            ZapLinkExhaustedError: after ZAP_LINK_MAX_ATTEMPTS collisions
        """
        for _ in range(ZAP_LINK_MAX_ATTEMPTS):
            zap_link = generate_zap_link()
            if await self.get_user_by_zap_link(zap_link) is None:
                return zap_link
        logger.error(f"No free zap link after {ZAP_LINK_MAX_ATTEMPTS} attempts")
        raise ZapLinkExhaustedError("Unable to generate unique zap link after maximum attempts")

    async def create_user(self, user_data: dict) -> User:
        """
        Create a new user in the database.

        Args:
            user_data: Dictionary containing user data. Must include:
                - email: str
                - username: str
                - hashed_password: str
                Optional:
                - is_active: bool (defaults to True)

        Returns:
            Created User object with free/inactive subscription defaults
        """
        user = User(
            email=user_data["email"].lower(),
            username=user_data["username"],
            hashed_password=user_data["hashed_password"],
            is_active=user_data.get("is_active", True),
            zap_link=await self.generate_unique_zap_link(),
        )
        self.db.add(user)
        await self.db.flush()  # Flush to get the defaults without committing
        await self.db.refresh(user)
        return user

    async def update_user(self, user: User, updates: dict) -> User:
        """
        Update user fields.

        Args:
            user: User object to update
            updates: Dictionary of fields to update (e.g., {"subscription_status": "active"})

        Returns:
            Updated User object
        """
        for key, value in updates.items():
            if hasattr(user, key):
                setattr(user, key, value)

        await self.db.flush()
        await self.db.refresh(user)
        return user

    async def update_user_by_id(self, user_id: str, updates: dict) -> Optional[User]:
        """
        Update a user looked up by ID. Returns None when no such user exists.
        """
        user = await self.get_user_by_id(user_id)
        if user is None:
            return None
        return await self.update_user(user, updates)

    async def delete_user(self, user_id: str) -> bool:
        result = await self.db.execute(delete(User).where(User.id == user_id))
        await self.db.flush()
        return result.rowcount > 0
