"""
Filter criteria for the post listing endpoint.

``PostFilter`` is an immutable value built from the optional listing query
parameters.  Parsing and validation happen in ``from_query``; the service
only ever receives a well-formed filter and turns it into SQL with
``clauses()``.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timezone

from app.errors import InvalidQueryError
from app.models import Post


def _parse_boundary(raw: str, *, end: bool) -> datetime:
    """
    Parse one side of a ``start,end`` range.

    A bare date covers the whole day: as a start it means midnight, as an
    end it means the last microsecond of that day.  Naive values are UTC.
    """
    raw = raw.strip()
    try:
        day = date.fromisoformat(raw)
    except ValueError:
        try:
            value = datetime.fromisoformat(raw)
        except ValueError:
            raise InvalidQueryError(f"filterByDate: '{raw}' is not an ISO date") from None
    else:
        value = datetime.combine(day, time.max if end else time.min)

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_date_range(raw: str) -> tuple[datetime, datetime]:
    parts = raw.split(",")
    if len(parts) != 2 or not all(p.strip() for p in parts):
        raise InvalidQueryError("filterByDate must look like 'start,end'")

    start = _parse_boundary(parts[0], end=False)
    end = _parse_boundary(parts[1], end=True)
    if start > end:
        raise InvalidQueryError("filterByDate start is after its end")
    return start, end


@dataclass(frozen=True)
class PostFilter:
    average_rating: float | None = None
    author: str | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None

    @classmethod
    def from_query(
        cls,
        average_rating: float | None = None,
        author: str | None = None,
        date_range: str | None = None,
    ) -> PostFilter:
        created_from = created_to = None
        if date_range:
            created_from, created_to = parse_date_range(date_range)
        return cls(
            average_rating=average_rating,
            author=author or None,
            created_from=created_from,
            created_to=created_to,
        )

    @property
    def is_empty(self) -> bool:
        return self == PostFilter()

    def clauses(self) -> list:
        """SQLAlchemy WHERE clauses, one per constraint present."""
        clauses = []
        if self.average_rating is not None:
            clauses.append(Post.average_rating == self.average_rating)
        if self.author is not None:
            clauses.append(Post.author == self.author)
        if self.created_from is not None:
            clauses.append(Post.created_at >= self.created_from)
        if self.created_to is not None:
            clauses.append(Post.created_at <= self.created_to)
        return clauses

    def cache_key(self) -> str:
        return ":".join(
            "" if v is None else (v.isoformat() if isinstance(v, datetime) else str(v))
            for v in (self.average_rating, self.author, self.created_from, self.created_to)
        )
