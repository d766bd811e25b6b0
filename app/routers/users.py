"""
User endpoints.
This module provides endpoints for registering the actors recorded on the
activity log.
"""
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.session import get_db
from app.schemas.user import User, UserCreate
from app.services.user import UserService
from app.core.logging import logger
from uuid import UUID

router = APIRouter()


@router.post("/", response_model=User, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_in: UserCreate,
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Register a user.

    Args:
        user_in: User creation data
        db: Database session

    Returns:
        Created user
    """
    logger.info(f"User registration for: {user_in.email}")
    return await UserService.create(db, user_in)


@router.get("/", response_model=List[User])
async def list_users(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db)
) -> List[User]:
    return await UserService.get_all(db, skip=skip, limit=limit)


@router.get("/{user_id}", response_model=User)
async def get_user(user_id: UUID, db: AsyncSession = Depends(get_db)) -> User:
    user = await UserService.get_by_id(db, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user
