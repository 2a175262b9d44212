from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, field_validator

from app.config import settings


# --- Rating ---

class RatingCreate(BaseModel):
    # Strict so JSON booleans and numeric strings are not taken as ratings.
    rating: StrictInt | StrictFloat

    @field_validator("rating")
    @classmethod
    def rating_in_range(cls, value: int | float) -> float:
        if not settings.RATING_MIN <= value <= settings.RATING_MAX:
            raise ValueError(
                f"rating must be between {settings.RATING_MIN:g} and {settings.RATING_MAX:g}"
            )
        return float(value)


class RatingResponse(BaseModel):
    user: str
    value: float
    model_config = ConfigDict(from_attributes=True)


# --- Comment ---

class CommentCreate(BaseModel):
    text: str = Field(min_length=1)


class CommentResponse(BaseModel):
    user: str
    text: str
    created_at: datetime | None = None
    model_config = ConfigDict(from_attributes=True)


# --- Post ---

class PostCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    content: str = Field(min_length=1)


class PostUpdate(BaseModel):
    """Fields left out of the payload (or sent as null) keep their value."""

    title: str | None = Field(None, min_length=1, max_length=300)
    content: str | None = Field(None, min_length=1)


class PostResponse(BaseModel):
    id: str
    title: str
    content: str
    author: str
    created_at: datetime
    updated_at: datetime | None = None
    ratings: list[RatingResponse] = []
    averageRating: float | None = None
    comments: list[CommentResponse] = []


class MessageResponse(BaseModel):
    msg: str


# --- Pagination ---

class PaginatedResponse(BaseModel):
    items: list[PostResponse]
    total: int
    page: int
    limit: int
    pages: int
    has_next: bool
    has_prev: bool


# --- Metrics ---

class MetricsResponse(BaseModel):
    total_posts: int
    total_ratings: int
    total_comments: int
    avg_ratings_per_post: float
    avg_comments_per_post: float
    cache_info: dict = {}
