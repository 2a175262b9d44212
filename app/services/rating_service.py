"""
Rating service — one rating per user per post, with a derived average.

A repeat rating from the same user overwrites the earlier value in place
instead of adding a second entry (the ``ratings`` table also carries a
unique ``(post_id, user)`` constraint).  ``average_rating`` is recomputed
from every rating after each change, under a row lock on the post, so two
concurrent raters cannot both write an average computed from stale data.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.cache import cache
from app.errors import store_errors
from app.models import Post, Rating
from app.services.post_service import load_post, post_to_dict

logger = logging.getLogger(__name__)


def mean_rating(ratings: list[Rating]) -> float | None:
    if not ratings:
        return None
    return sum(r.value for r in ratings) / len(ratings)


def apply_rating(post: Post, user: str, value: float) -> None:
    """Set *user*'s rating on *post* and refresh ``average_rating``."""
    existing = next((r for r in post.ratings if r.user == user), None)
    if existing is not None:
        existing.value = value
    else:
        post.ratings.append(Rating(user=user, value=value))
    post.average_rating = mean_rating(post.ratings)


async def rate_post(db: AsyncSession, post_id: str, user: str, value: float) -> dict:
    """
    Record *user*'s rating of *post_id* and return the updated post.

    Any authenticated user may rate, the author included.
    """
    post = await load_post(db, post_id, for_update=True)
    apply_rating(post, user, value)

    with store_errors("rate post"):
        await db.commit()

    logger.debug(
        "Post %s rated %s by %s (average %.3f over %d)",
        post_id, value, user, post.average_rating, len(post.ratings),
    )
    await cache.invalidate_post(post_id)
    return post_to_dict(post)
