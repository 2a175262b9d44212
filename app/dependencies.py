from typing import Literal

from fastapi import Query

from app.config import settings
from app.filters import PostFilter

SortField = Literal["created_at", "updated_at", "title", "author", "averageRating"]


class PostListParams:
    """
    Reusable FastAPI dependency that parses the post listing query string.

    Usage in a router::

        @router.get("")
        async def list_posts(params: PostListParams = Depends()):
            ...

    Attributes
    ----------
    page:
        1-based page number (minimum 1).  Non-numeric input is rejected
        with 422 rather than reaching the query.
    limit:
        Number of posts per page; values above ``settings.MAX_PAGE_SIZE``
        are rejected with 422.
    sort_by:
        Public field name to sort by, or None for insertion order.
    sort_order:
        ``"asc"`` (default) or ``"desc"``.
    filters:
        Immutable ``PostFilter`` assembled from the ``filterBy*`` options.
    """

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number (1-based)."),
        limit: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            ge=1,
            le=settings.MAX_PAGE_SIZE,
            description="Number of posts returned per page.",
        ),
        sort_by: SortField | None = Query(None, alias="sortBy"),
        sort_order: str = Query("asc", alias="sortOrder", pattern="^(asc|desc)$"),
        filter_by_average_rating: float | None = Query(None, alias="filterByAverageRating"),
        filter_by_author: str | None = Query(None, alias="filterByAuthor"),
        filter_by_date: str | None = Query(
            None,
            alias="filterByDate",
            description="Inclusive creation-date range, e.g. '2023-01-01,2023-12-31'.",
        ),
    ) -> None:
        self.page = page
        self.limit = limit
        self.sort_by = sort_by
        self.sort_order = sort_order
        self.filters = PostFilter.from_query(
            average_rating=filter_by_average_rating,
            author=filter_by_author,
            date_range=filter_by_date,
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit
