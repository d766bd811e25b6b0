"""
Main application entry point.

This module initializes the FastAPI application, maps the domain exceptions
to HTTP responses and includes all routers.
"""

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.core.config import settings
from app.core.exceptions import BudgetTrackerError, NotFoundError, PreconditionFailedError
from app.core.logging import logger
from app.db.session import init_models
from app.routers.activities import router as activities_router
from app.routers.breakdowns import router as breakdowns_router
from app.routers.budget_items import router as budget_items_router
from app.routers.health import router as health_router
from app.routers.projects import router as projects_router
from app.routers.remarks import router as remarks_router
from app.routers.trash import router as trash_router
from app.routers.users import router as users_router


app = FastAPI(
    title=settings.api.title,
    description=settings.api.description,
    version=settings.api.version,
    debug=settings.debug,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
    allow_headers=["*"],
)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(PreconditionFailedError)
async def precondition_failed_handler(request: Request, exc: PreconditionFailedError) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": str(exc), "blocking_count": exc.blocking_count},
    )


@app.exception_handler(BudgetTrackerError)
async def domain_error_handler(request: Request, exc: BudgetTrackerError) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


# Include routers with /api prefix
app.include_router(health_router, prefix=f"{settings.api.prefix}/health", tags=["health"])
app.include_router(users_router, prefix=f"{settings.api.prefix}/users", tags=["users"])
app.include_router(budget_items_router, prefix=f"{settings.api.prefix}/budget-items", tags=["budget-items"])
app.include_router(projects_router, prefix=f"{settings.api.prefix}/projects", tags=["projects"])
app.include_router(breakdowns_router, prefix=f"{settings.api.prefix}/breakdowns", tags=["breakdowns"])
app.include_router(trash_router, prefix=f"{settings.api.prefix}/trash", tags=["trash"])
app.include_router(remarks_router, prefix=f"{settings.api.prefix}/remarks", tags=["remarks"])
app.include_router(activities_router, prefix=f"{settings.api.prefix}/activities", tags=["activities"])


@app.on_event("startup")
async def startup_event():
    """Actions to run on application startup."""
    logger.info(f"Starting {settings.api.title}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Debug mode: {settings.debug}")
    logger.info(f"Database URL: {settings.database.url[:20]}...")
    await init_models()
    logger.info(f"API Docs available at: http://{settings.api.host}:{settings.api.port}/docs")


@app.on_event("shutdown")
async def shutdown_event():
    """Actions to run on application shutdown."""
    logger.info(f"Shutting down {settings.api.title}")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": settings.api.title,
        "version": settings.api.version,
        "docs": "/docs",
    }
