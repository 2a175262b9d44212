"""Seed the posts database with random posts, ratings and comments."""
import argparse
import asyncio
import random
import time
from datetime import datetime, timedelta, timezone

from app.database import Base, async_session, engine
from app.models import Comment, Post, Rating
from app.services.rating_service import mean_rating

TOPICS = ["python", "fastapi", "postgresql", "redis", "docker", "testing",
          "performance", "security", "asyncio", "sqlalchemy"]


async def seed(small: bool = False):
    num_users = 10 if small else 50
    num_posts = 100 if small else 5000
    max_ratings = 3 if small else 10
    max_comments = 2 if small else 5

    users = [f"user_{i:04d}" for i in range(num_users)]
    print(f"Seeding: {num_posts} posts by {num_users} users")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    total_ratings = total_comments = 0
    async with async_session() as session:
        batch_size = 500
        for batch_start in range(0, num_posts, batch_size):
            for i in range(batch_start, min(batch_start + batch_size, num_posts)):
                topic = random.choice(TOPICS)
                created = datetime.now(timezone.utc) - timedelta(days=random.randint(0, 365))
                raters = random.sample(users, k=random.randint(0, max_ratings))
                ratings = [Rating(user=u, value=random.randint(1, 5)) for u in raters]
                comments = [
                    Comment(
                        user=random.choice(users),
                        text=f"Thanks for the write-up on {topic}!",
                        created_at=created + timedelta(hours=j + 1),
                    )
                    for j in range(random.randint(0, max_comments))
                ]
                session.add(Post(
                    title=f"Post {i}: notes on {topic}",
                    content=f"This is the full content of post {i} about {topic}. " * 20,
                    author=random.choice(users),
                    created_at=created,
                    ratings=ratings,
                    average_rating=mean_rating(ratings),
                    comments=comments,
                ))
                total_ratings += len(ratings)
                total_comments += len(comments)
            await session.flush()
            print(f"  Batch {batch_start}: posts created")
        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Posts: {num_posts}")
    print(f"  Ratings: {total_ratings}")
    print(f"  Comments: {total_comments}")


def main():
    parser = argparse.ArgumentParser(description="Seed the posts database")
    parser.add_argument("--small", action="store_true", help="Use small dataset (100 posts)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
