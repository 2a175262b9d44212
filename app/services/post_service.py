"""
Post service — business logic for the Post aggregate.

Design notes
------------
- List and detail reads go through the cache-aside pattern (Redis →
  fallback to DB).  List keys encode page, limit, sort and every filter
  field so one listing never answers for another.
- Ratings and comments are loaded with ``selectinload``; the relationships
  are ``noload`` by default, so a post fetched without them serialises
  with empty collections.
- Every store call runs inside ``store_errors`` so SQLAlchemy failures
  are logged once and surface as ``ServerError``.
- Write functions commit before returning, so a failed commit reaches
  the client as ``ServerError`` instead of a reply that was already sent.
  Cache entries are dropped only after the commit succeeds; a read that
  races the write can then only re-cache committed data.
"""
import logging
import math
from datetime import datetime, timezone

from sqlalchemy import asc, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.cache import cache
from app.config import settings
from app.errors import ForbiddenError, NotFoundError, store_errors
from app.filters import PostFilter
from app.models import Post
from app.schemas import PaginatedResponse, PostCreate, PostUpdate

logger = logging.getLogger(__name__)

# Public sort names mapped to columns; anything else never reaches SQL.
_SORT_COLUMNS = {
    "created_at": Post.created_at,
    "updated_at": Post.updated_at,
    "title": Post.title,
    "author": Post.author,
    "averageRating": Post.average_rating,
}


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def post_to_dict(post: Post) -> dict:
    """Serialise a Post with whatever ratings/comments were loaded."""
    return {
        "id": post.id,
        "title": post.title,
        "content": post.content,
        "author": post.author,
        "created_at": _isoformat(post.created_at),
        "updated_at": _isoformat(post.updated_at),
        "ratings": [{"user": r.user, "value": r.value} for r in post.ratings],
        "averageRating": post.average_rating,
        "comments": [
            {"user": c.user, "text": c.text, "created_at": _isoformat(c.created_at)}
            for c in post.comments
        ],
    }


async def load_post(db: AsyncSession, post_id: str, *, for_update: bool = False) -> Post:
    """
    Fetch *post_id* with ratings and comments, or raise ``NotFoundError``.

    ``for_update`` takes a row lock so read-modify-write sequences on the
    same post run one at a time (ignored by SQLite).
    """
    q = (
        select(Post)
        .where(Post.id == post_id)
        .options(selectinload(Post.ratings), selectinload(Post.comments))
    )
    if for_update:
        q = q.with_for_update()
    with store_errors("load post"):
        result = await db.execute(q)
        post = result.scalar_one_or_none()
    if post is None:
        raise NotFoundError()
    return post


def _ensure_author(post: Post, caller: str) -> None:
    if post.author != caller:
        logger.info("User %s denied write access to post %s", caller, post.id)
        raise ForbiddenError()


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def get_posts(
    db: AsyncSession,
    page: int = 1,
    limit: int = settings.DEFAULT_PAGE_SIZE,
    sort_by: str | None = None,
    sort_order: str = "asc",
    filters: PostFilter | None = None,
) -> PaginatedResponse:
    """
    Return one page of posts matching *filters*.

    Two SQL statements (plus the eager loads) are issued on a cache miss:
    a COUNT over the filtered set, then the page itself.  Without
    *sort_by* posts come back in creation order.
    """
    filters = filters or PostFilter()
    cache_key = cache.list_key(page, limit, sort_by, sort_order, filters.cache_key())
    cached = await cache.get(cache_key)
    if cached:
        return PaginatedResponse(**cached)

    clauses = filters.clauses()
    order_by = []
    if sort_by is not None:
        column = _SORT_COLUMNS[sort_by]
        direction = desc(column) if sort_order == "desc" else asc(column)
        # Unrated and never-updated posts go last in either direction.
        order_by.append(direction.nulls_last())
    order_by.extend([Post.created_at, Post.id])

    count_q = select(func.count()).select_from(Post).where(*clauses)
    posts_q = (
        select(Post)
        .where(*clauses)
        .options(selectinload(Post.ratings), selectinload(Post.comments))
        .order_by(*order_by)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    with store_errors("list posts"):
        total: int = (await db.execute(count_q)).scalar_one()
        posts = (await db.execute(posts_q)).scalars().all()

    pages = math.ceil(total / limit) if total > 0 else 0
    response = PaginatedResponse(
        items=[post_to_dict(p) for p in posts],
        total=total,
        page=page,
        limit=limit,
        pages=pages,
        has_next=page < pages,
        has_prev=page > 1,
    )
    await cache.set(cache_key, response.model_dump(mode="json"), ttl=settings.CACHE_TTL_LIST)
    return response


async def get_post(db: AsyncSession, post_id: str) -> dict:
    cache_key = cache.detail_key(post_id)
    cached = await cache.get(cache_key)
    if cached:
        return cached

    data = post_to_dict(await load_post(db, post_id))
    await cache.set(cache_key, data, ttl=settings.CACHE_TTL_DETAIL)
    return data


async def create_post(db: AsyncSession, author: str, data: PostCreate) -> dict:
    """Create a post owned by *author* with no ratings or comments yet."""
    post = Post(
        title=data.title,
        content=data.content,
        author=author,
        average_rating=None,
        updated_at=None,
        ratings=[],
        comments=[],
    )
    with store_errors("create post"):
        db.add(post)
        await db.flush()
        await db.commit()

    logger.info("Post %s created by %s", post.id, author)
    await cache.invalidate_post()
    return post_to_dict(post)


async def update_post(db: AsyncSession, post_id: str, caller: str, data: PostUpdate) -> dict:
    """
    Replace title and/or content of a post owned by *caller*.

    Only fields present in the payload with a non-null value change; the
    rest of the post, ratings and comments included, is left as it was.
    """
    post = await load_post(db, post_id, for_update=True)
    _ensure_author(post, caller)

    changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
    if changes:
        for field, value in changes.items():
            setattr(post, field, value)
        post.updated_at = datetime.now(timezone.utc)
        with store_errors("update post"):
            await db.flush()
            await db.commit()
        await cache.invalidate_post(post_id)
    return post_to_dict(post)


async def delete_post(db: AsyncSession, post_id: str, caller: str) -> None:
    """Permanently remove a post owned by *caller* along with its ratings and comments."""
    post = await load_post(db, post_id, for_update=True)
    _ensure_author(post, caller)

    with store_errors("delete post"):
        await db.delete(post)
        await db.commit()

    logger.info("Post %s deleted by %s", post_id, caller)
    await cache.invalidate_post(post_id)
