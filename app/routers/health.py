"""
Health check endpoints.

This module provides endpoints for checking the health of the application,
including database connectivity.
"""

from typing import Dict

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text

from app.core.config import settings
from app.core.logging import logger
from app.db.session import get_db

router = APIRouter()


@router.get("/", response_model=Dict[str, str])
async def health_check() -> Dict[str, str]:
    """
    Basic health check endpoint.

    Returns:
        Health status with the running environment and version
    """
    logger.debug("Health check endpoint called")
    return {
        "status": "ok",
        "environment": settings.environment.value,
        "version": settings.api.version,
    }


@router.get("/db", response_model=Dict[str, str])
async def database_health_check(
    db: AsyncSession = Depends(get_db)
) -> Dict[str, str]:
    """
    Database health check endpoint.

    Args:
        db: Database session

    Returns:
        Database health status
    """
    logger.debug("Database health check endpoint called")

    try:
        result = await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database health check failed: {str(e)}")
        return {"status": "error", "database": "unreachable"}
    if result.scalar() != 1:
        logger.error("Database health check failed - unexpected result")
        return {"status": "error", "database": "unexpected_result"}
    return {
        "status": "ok",
        "database": "sqlite" if settings.database.is_sqlite else "postgresql",
    }
