from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.cache import cache
from app.database import get_db
from app.errors import store_errors
from app.models import Comment, Post, Rating
from app.schemas import MetricsResponse

router = APIRouter(prefix="/api/v1/metrics", tags=["metrics"])


@router.get("", response_model=MetricsResponse)
async def get_metrics(db: AsyncSession = Depends(get_db)):
    with store_errors("collect metrics"):
        total_posts = (await db.execute(select(func.count()).select_from(Post))).scalar_one()
        total_ratings = (await db.execute(select(func.count()).select_from(Rating))).scalar_one()
        total_comments = (await db.execute(select(func.count()).select_from(Comment))).scalar_one()

    return MetricsResponse(
        total_posts=total_posts,
        total_ratings=total_ratings,
        total_comments=total_comments,
        avg_ratings_per_post=round(total_ratings / total_posts, 2) if total_posts else 0,
        avg_comments_per_post=round(total_comments / total_posts, 2) if total_posts else 0,
        cache_info=cache.stats,
    )
