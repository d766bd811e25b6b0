"""
Dependencies for FastAPI endpoints.

Authentication happens upstream of this service; the acting user is passed
in the X-User-Id header and resolved to a User here.
"""

from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import logger
from app.db.session import get_db
from app.models.user import User
from app.utils.pagination import PaginationParams


def get_pagination_params(
    page: int = Query(1, ge=1, description="Page number"),
    size: Optional[int] = Query(None, ge=1, description="Page size"),
    sort_by: str = Query("timestamp", description="Field to sort by"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$", description="Sort order")
) -> PaginationParams:
    """
    Get pagination parameters from request query.

    Returns:
        PaginationParams object with extracted values
    """
    return PaginationParams(
        page=page,
        size=size,
        sort_by=sort_by,
        sort_order=sort_order
    )


async def get_current_actor(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Resolve the acting user from the X-User-Id header.

    Raises:
        HTTPException: 401 when the header is missing or malformed,
            404 when no such user exists, 403 when the user is inactive
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-Id header required",
        )
    try:
        user_id = UUID(x_user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-Id header must be a UUID",
        )

    user = await db.get(User, user_id)
    if user is None:
        logger.warning(f"Unknown actor in X-User-Id: {user_id}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")
    return user
