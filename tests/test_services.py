"""
Direct service-layer tests — exercises business logic without HTTP.

Covers the NotFound / Forbidden rules, the rating aggregate, filtered
listing, and the translation of store failures into ServerError.
"""
import pytest
from httpx import AsyncClient
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.errors import ForbiddenError, NotFoundError, ServerError
from app.filters import PostFilter
from app.main import app
from app.models import Post, Rating
from app.schemas import PostCreate, PostUpdate
from app.services import comment_service, post_service, rating_service
from app.services.rating_service import apply_rating, mean_rating


async def _create(db: AsyncSession, author: str = "u1", title: str = "A") -> dict:
    return await post_service.create_post(db, author, PostCreate(title=title, content="B"))


# ---------------------------------------------------------------------------
# post_service
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_get_posts_empty(db_session: AsyncSession):
    result = await post_service.get_posts(db_session)
    assert result.total == 0
    assert result.items == []
    assert result.pages == 0


@pytest.mark.asyncio
async def test_create_post_via_service(db_session: AsyncSession):
    post = await _create(db_session)
    assert post["author"] == "u1"
    assert post["ratings"] == []
    assert post["comments"] == []
    assert post["averageRating"] is None

    fetched = await post_service.get_post(db_session, post["id"])
    assert fetched["title"] == "A"


@pytest.mark.asyncio
async def test_get_missing_post_raises(db_session: AsyncSession):
    with pytest.raises(NotFoundError):
        await post_service.get_post(db_session, "nope")


@pytest.mark.asyncio
async def test_update_post_partial(db_session: AsyncSession):
    post = await _create(db_session)
    updated = await post_service.update_post(
        db_session, post["id"], "u1", PostUpdate(content="Changed")
    )
    assert updated["title"] == "A"
    assert updated["content"] == "Changed"


@pytest.mark.asyncio
async def test_update_by_other_user_raises_and_leaves_post(db_session: AsyncSession):
    post = await _create(db_session)
    with pytest.raises(ForbiddenError):
        await post_service.update_post(db_session, post["id"], "u2", PostUpdate(title="X"))

    fetched = await post_service.get_post(db_session, post["id"])
    assert fetched["title"] == "A"


@pytest.mark.asyncio
async def test_delete_post_removes_children(db_session: AsyncSession):
    post = await _create(db_session)
    await rating_service.rate_post(db_session, post["id"], "u2", 4)
    await comment_service.add_comment(db_session, post["id"], "u2", "hi")

    await post_service.delete_post(db_session, post["id"], "u1")

    with pytest.raises(NotFoundError):
        await post_service.get_post(db_session, post["id"])
    remaining = (await db_session.execute(Rating.__table__.select())).all()
    assert remaining == []


@pytest.mark.asyncio
async def test_delete_by_other_user_raises(db_session: AsyncSession):
    post = await _create(db_session)
    with pytest.raises(ForbiddenError):
        await post_service.delete_post(db_session, post["id"], "u2")
    assert (await post_service.get_post(db_session, post["id"]))["id"] == post["id"]


@pytest.mark.asyncio
async def test_get_posts_with_filter_and_sort(db_session: AsyncSession):
    await _create(db_session, author="u1", title="b")
    await _create(db_session, author="u2", title="c")
    await _create(db_session, author="u1", title="a")

    result = await post_service.get_posts(
        db_session, sort_by="title", filters=PostFilter(author="u1")
    )
    assert result.total == 2
    assert [p.title for p in result.items] == ["a", "b"]


# ---------------------------------------------------------------------------
# rating_service
# ---------------------------------------------------------------------------

def test_mean_rating_empty_is_none():
    assert mean_rating([]) is None


def test_apply_rating_overwrites_in_place():
    post = Post(title="A", content="B", author="u1", ratings=[])
    apply_rating(post, "u2", 4)
    apply_rating(post, "u3", 5)
    apply_rating(post, "u2", 2)

    assert [(r.user, r.value) for r in post.ratings] == [("u2", 2), ("u3", 5)]
    assert post.average_rating == 3.5


@pytest.mark.asyncio
async def test_rate_post_via_service(db_session: AsyncSession):
    post = await _create(db_session)
    await rating_service.rate_post(db_session, post["id"], "u2", 4)
    rated = await rating_service.rate_post(db_session, post["id"], "u3", 1)
    assert rated["averageRating"] == 2.5
    assert len(rated["ratings"]) == 2


@pytest.mark.asyncio
async def test_rate_missing_post_raises(db_session: AsyncSession):
    with pytest.raises(NotFoundError):
        await rating_service.rate_post(db_session, "nope", "u2", 3)


# ---------------------------------------------------------------------------
# comment_service
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_add_comment_via_service(db_session: AsyncSession):
    post = await _create(db_session)
    result = await comment_service.add_comment(db_session, post["id"], "u2", "Nice")
    assert result["comments"] == [
        {"user": "u2", "text": "Nice", "created_at": result["comments"][0]["created_at"]}
    ]


@pytest.mark.asyncio
async def test_add_comment_missing_post_raises(db_session: AsyncSession):
    with pytest.raises(NotFoundError):
        await comment_service.add_comment(db_session, "nope", "u2", "Nice")


# ---------------------------------------------------------------------------
# Store failures
# ---------------------------------------------------------------------------

class BrokenSession:
    """Stands in for an AsyncSession whose database is unreachable."""

    async def execute(self, *args, **kwargs):
        raise SQLAlchemyError("database unavailable")


@pytest.mark.asyncio
async def test_store_failure_becomes_server_error():
    with pytest.raises(ServerError):
        await post_service.get_post(BrokenSession(), "any")
    with pytest.raises(ServerError):
        await post_service.get_posts(BrokenSession())


@pytest.mark.asyncio
async def test_store_failure_returns_json_500(async_client: AsyncClient):
    async def broken_db():
        yield BrokenSession()

    original = app.dependency_overrides[get_db]
    app.dependency_overrides[get_db] = broken_db
    try:
        resp = await async_client.get("/api/v1/posts/any")
    finally:
        app.dependency_overrides[get_db] = original

    assert resp.status_code == 500
    assert resp.json() == {"msg": "Server Error"}
