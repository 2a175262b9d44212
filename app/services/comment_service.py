"""
Comment service — append-only comments on a post.

Comments cannot be edited or deleted through the API.  Every write
commits first and then invalidates the parent post's cache entries, so
the next read includes the new comment.
"""
from sqlalchemy.ext.asyncio import AsyncSession

from app.cache import cache
from app.errors import store_errors
from app.models import Comment
from app.services.post_service import load_post, post_to_dict


async def add_comment(db: AsyncSession, post_id: str, user: str, text: str) -> dict:
    """
    Append a comment by *user* to *post_id* and return the updated post.

    Raises ``NotFoundError`` when the post does not exist.
    """
    post = await load_post(db, post_id)
    post.comments.append(Comment(user=user, text=text))

    with store_errors("comment on post"):
        await db.commit()

    await cache.invalidate_post(post_id)
    return post_to_dict(post)
