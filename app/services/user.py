"""
Service layer for user operations.

Users are the actors recorded on every activity entry. Authentication is
handled upstream; this service only maintains the identity records.
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.exceptions import BudgetTrackerError
from app.db.session import unit_of_work
from app.models.user import User
from app.schemas.user import UserCreate
from app.core.logging import logger


class UserService:
    """Service class for user operations."""

    @staticmethod
    async def create(db: AsyncSession, user_in: UserCreate) -> User:
        """
        Create a new user.

        Args:
            db: Database session
            user_in: User creation data

        Returns:
            Created user

        Raises:
            BudgetTrackerError: If the email is already registered
        """
        logger.info(f"Creating new user: {user_in.email}")

        async with unit_of_work(db):
            if await UserService.get_by_email(db, user_in.email):
                logger.warning(f"User already exists with email: {user_in.email}")
                raise BudgetTrackerError(f"User with email {user_in.email} already exists")
            user = User(**user_in.model_dump())
            db.add(user)
            await db.flush()

        logger.info(f"Created user with ID: {user.id}")
        return user

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: UUID) -> Optional[User]:
        logger.debug(f"Getting user by ID: {user_id}")
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalars().first()

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> Optional[User]:
        logger.debug(f"Getting user by email: {email}")
        result = await db.execute(select(User).where(User.email == email))
        return result.scalars().first()

    @staticmethod
    async def get_all(db: AsyncSession, skip: int = 0, limit: int = 100) -> List[User]:
        result = await db.execute(select(User).order_by(User.created_at).offset(skip).limit(limit))
        return list(result.scalars().all())
