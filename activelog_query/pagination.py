"""Pagination engine: LIMIT/OFFSET, metadata and paginated responses."""

import logging
from math import ceil
from typing import TYPE_CHECKING, Any, Dict, List, Union

from sqlalchemy import Select
from sqlmodel import Session
from sqlmodel.ext.asyncio.session import AsyncSession

from activelog_query.config import DEFAULT_LIMIT, DEFAULT_PAGE
from activelog_query.models import PaginatedResult, PaginationMeta

if TYPE_CHECKING:
    from activelog_query.query import QueryBuilder

logger = logging.getLogger(__name__)


def normalize_page(page: int) -> int:
    """Page number, 1 when below 1."""
    return page if page >= 1 else DEFAULT_PAGE


def normalize_limit(limit: int) -> int:
    """Page size, 10 when below 1."""
    return limit if limit >= 1 else DEFAULT_LIMIT


def calculate_pagination_meta(page: int, limit: int, total_records: int) -> PaginationMeta:
    """
    Pagination metadata for one page of a result set.

    Example:
        calculate_pagination_meta(page=3, limit=3, total_records=7)
        # page=3, limit=3, count=1, previousPage=2, nextPage=False,
        # pageCount=3, totalRecords=7

    Args:
        page: Requested page (values below 1 become 1)
        limit: Page size (values below 1 become 10)
        total_records: Rows matching the filters across all pages

    Returns:
        PaginationMeta: Metadata for the requested page
    """
    page = normalize_page(page)
    limit = normalize_limit(limit)

    page_count = ceil(total_records / limit) if total_records > 0 else 0
    offset = (page - 1) * limit
    count = max(0, min(limit, total_records - offset))

    previous_page: Union[int, bool] = page - 1 if page > 1 else False
    next_page: Union[int, bool] = page + 1 if page < page_count else False

    return PaginationMeta(
        page=page,
        limit=limit,
        count=count,
        previous_page=previous_page,
        next_page=next_page,
        page_count=page_count,
        total_records=total_records,
    )


class PaginationEngine:
    """
    Engine for paginating queries and building paginated responses.

    The engine only shapes SQL and results; executing statements is left to
    the caller's session through ``paginate`` / ``paginate_async``.
    """

    def __init__(self, page: int = DEFAULT_PAGE, limit: int = DEFAULT_LIMIT):
        """
        Initialize PaginationEngine.

        Args:
            page: Requested page number
            limit: Requested page size
        """
        self.page = normalize_page(page)
        self.limit = normalize_limit(limit)

    @property
    def offset(self) -> int:
        """Rows skipped before the requested page."""
        return (self.page - 1) * self.limit

    def apply_pagination(self, query: Select) -> Select:
        """
        Apply LIMIT and OFFSET.

        Args:
            query: SQLAlchemy Select query

        Returns:
            Select: Query limited to the requested page
        """
        return query.limit(self.limit).offset(self.offset)

    def build_response(self, data: List[Any], total_records: int) -> PaginatedResult[Any]:
        """
        Wrap one page of rows and its metadata.

        Args:
            data: Rows of the requested page
            total_records: Total rows matching the filters

        Returns:
            PaginatedResult: ``{data, meta}`` envelope
        """
        return PaginatedResult(
            data=data,
            meta=calculate_pagination_meta(self.page, self.limit, total_records),
        )

    # --- Execution through a caller-owned session ---

    def paginate(self, session: Session, builder: "QueryBuilder") -> PaginatedResult[Dict[str, Any]]:
        """
        Count, fetch and wrap one page.

        Args:
            session: Database session owned by the caller
            builder: Query builder holding the query description

        Returns:
            PaginatedResult: Rows as dictionaries plus metadata
        """
        total = session.exec(builder.count()).scalar_one()
        rows = session.exec(builder.select()).mappings().all()
        logger.debug("fetched %d of %d row(s) from %s", len(rows), total, builder.table_name)
        return self.build_response([dict(row) for row in rows], total)

    async def paginate_async(
        self, session: AsyncSession, builder: "QueryBuilder"
    ) -> PaginatedResult[Dict[str, Any]]:
        """
        Async version of paginate.

        Args:
            session: Async database session owned by the caller
            builder: Query builder holding the query description

        Returns:
            PaginatedResult: Rows as dictionaries plus metadata
        """
        total = (await session.exec(builder.count())).scalar_one()
        result = await session.exec(builder.select())
        rows = result.mappings().all()
        logger.debug("fetched %d of %d row(s) from %s", len(rows), total, builder.table_name)
        return self.build_response([dict(row) for row in rows], total)
