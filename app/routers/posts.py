from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import get_current_user
from app.config import settings
from app.database import get_db
from app.dependencies import PostListParams
from app.schemas import (
    CommentCreate,
    MessageResponse,
    PaginatedResponse,
    PostCreate,
    PostResponse,
    PostUpdate,
    RatingCreate,
)
from app.services import comment_service, post_service, rating_service

router = APIRouter(prefix=settings.API_PREFIX, tags=["posts"])


@router.post("", response_model=PostResponse)
async def create_post(
    data: PostCreate,
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await post_service.create_post(db, user_id, data)


@router.get("", response_model=PaginatedResponse)
async def list_posts(
    params: PostListParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    return await post_service.get_posts(
        db, params.page, params.limit, params.sort_by, params.sort_order, params.filters
    )


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(post_id: str, db: AsyncSession = Depends(get_db)):
    return await post_service.get_post(db, post_id)


@router.put("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: str,
    data: PostUpdate,
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await post_service.update_post(db, post_id, user_id, data)


@router.delete("/{post_id}", response_model=MessageResponse)
async def delete_post(
    post_id: str,
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await post_service.delete_post(db, post_id, user_id)
    return {"msg": "Post deleted successfully"}


@router.post("/{post_id}/rate", response_model=PostResponse)
async def rate_post(
    post_id: str,
    data: RatingCreate,
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await rating_service.rate_post(db, post_id, user_id, data.rating)


@router.post("/{post_id}/comment", response_model=PostResponse)
async def comment_on_post(
    post_id: str,
    data: CommentCreate,
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await comment_service.add_comment(db, post_id, user_id, data.text)
