from typing import Optional, Any, List, TypeVar, Generic
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from pydantic import BaseModel
from app.core.config import settings
from app.core.logging import logger

T = TypeVar('T')
DEFAULT_SORT = "timestamp"

class PaginatedResponse(BaseModel, Generic[T]):
    """Response wrapper for paginated results."""

    items: List[T]
    total: int
    page: int
    size: int
    pages: int
    has_next: bool
    has_prev: bool

class PaginationParams:
    """Parameters for pagination."""

    def __init__(
        self,
        page: int = 1,
        size: Optional[int] = None,
        sort_by: str = DEFAULT_SORT,
        sort_order: str = "desc"
    ):
        limits = settings.aggregation
        self.page = max(page, 1)
        self.size = min(size or limits.activity_default_page_size, limits.activity_max_page_size)
        self.sort_by = sort_by
        self.sort_order = sort_order

async def paginate_query(
    db: AsyncSession,
    query: Any,
    pagination: PaginationParams,
    model: Any = None,
) -> PaginatedResponse[Any]:
    """
    Paginate an ORM select with sorting.

    Only a column of the model can be sorted on; any other sort_by falls
    back to the default sort column. The model's primary key is always
    appended as a secondary sort key so rows with equal sort values (e.g.
    identical timestamps) keep insertion order and pages never overlap.

    Args:
        db: Database session
        query: SQLAlchemy select query
        pagination: Pagination parameters
        model: Model for sorting
    """
    descending = pagination.sort_order == "desc"
    if model is not None:
        columns = model.__table__.columns.keys()
        sort_by = pagination.sort_by
        if sort_by not in columns:
            logger.debug(f"Invalid sort field '{sort_by}' for model {model.__name__}, using '{DEFAULT_SORT}'")
            sort_by = DEFAULT_SORT if DEFAULT_SORT in columns else None
        if sort_by is not None:
            sort_col = getattr(model, sort_by)
            query = query.order_by(sort_col.desc() if descending else sort_col.asc())
        query = query.order_by(model.id.desc() if descending else model.id.asc())

    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await db.execute(count_query)).scalar() or 0

    offset = (pagination.page - 1) * pagination.size
    result = await db.execute(query.offset(offset).limit(pagination.size))
    items = result.scalars().all()

    pages = (total + pagination.size - 1) // pagination.size if total else 0
    return PaginatedResponse(
        items=items,
        total=total,
        page=pagination.page,
        size=pagination.size,
        pages=pages,
        has_next=pagination.page < pages,
        has_prev=pagination.page > 1,
    )
