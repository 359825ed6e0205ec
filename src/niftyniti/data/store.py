"""Typed SQLite read/write abstraction for blog posts and prediction records.

All SQL is isolated behind BlogStore and PredictionStore.

CRITICAL: prediction prices are stored as TEXT in SQLite, restored as Decimal on read.
"""

import json
import math
import re
import sqlite3
import time
from datetime import date
from decimal import Decimal

from niftyniti.data.database import NiftyNitiDatabase
from niftyniti.data.models import BlogPost, PredictionRecord
from niftyniti.exceptions import DuplicateSlug, InvalidRecord, RecordNotFound
from niftyniti.logging import get_logger

logger = get_logger(__name__)

EXCERPT_LENGTH = 160
WORDS_PER_MINUTE = 200

_BLOG_COLUMNS = (
    "id, title, slug, excerpt, content, read_time, published, "
    "published_at, created_at, updated_at"
)


def _now_ms() -> int:
    return int(time.time() * 1000)


def slugify(title: str) -> str:
    """Lowercase, drop punctuation, hyphenate whitespace, collapse repeated hyphens."""
    slug = re.sub(r"[^\w\s-]", "", title.lower(), flags=re.ASCII)
    slug = re.sub(r"\s+", "-", slug)
    return re.sub(r"--+", "-", slug)


def estimate_read_time(content: str) -> int:
    """Minutes to read ``content`` at 200 words per minute (at least 1)."""
    return max(1, math.ceil(len(content.split()) / WORDS_PER_MINUTE))


def _row_to_post(row: tuple) -> BlogPost:
    return BlogPost(
        id=row[0],
        title=row[1],
        slug=row[2],
        excerpt=row[3],
        content=row[4],
        read_time=row[5],
        published=bool(row[6]),
        published_at=row[7],
        created_at=row[8],
        updated_at=row[9],
    )


class BlogStore:
    """Async SQLite store for blog posts.

    Usage:
        async with NiftyNitiDatabase("data/niftyniti.db") as database:
            blogs = BlogStore(database)
            post = await blogs.create("Weekly outlook", content)
    """

    def __init__(self, database: NiftyNitiDatabase) -> None:
        self._database = database

    # ──────────────────────────────────────────────
    # Write methods
    # ──────────────────────────────────────────────

    async def create(
        self,
        title: str,
        content: str,
        slug: str | None = None,
        excerpt: str | None = None,
        read_time: int | None = None,
        published: bool = False,
    ) -> BlogPost:
        """Insert a new post, deriving slug, excerpt and read time when omitted.

        Raises:
            InvalidRecord: If title or content is empty, or no slug can be derived.
            DuplicateSlug: If the slug is already taken.
        """
        if not title or not content:
            raise InvalidRecord("title and content are required")

        slug = slug or slugify(title)
        if not slug:
            raise InvalidRecord("could not derive a slug from the title")
        excerpt = excerpt or content[:EXCERPT_LENGTH] + "..."
        read_time = read_time or estimate_read_time(content)
        now = _now_ms()

        try:
            await self._database.db.execute(
                "INSERT INTO blog_posts "
                "(title, slug, excerpt, content, read_time, published, "
                "published_at, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    title,
                    slug,
                    excerpt,
                    content,
                    read_time,
                    1 if published else 0,
                    now if published else None,
                    now,
                    now,
                ),
            )
        except sqlite3.IntegrityError as e:
            raise DuplicateSlug(f"a blog with slug {slug!r} already exists") from e
        await self._database.db.commit()

        logger.info("blog_post_created", slug=slug, published=published)
        return await self.get(slug, include_unpublished=True)

    async def update(
        self,
        slug: str,
        *,
        title: str | None = None,
        excerpt: str | None = None,
        content: str | None = None,
        read_time: int | None = None,
        new_slug: str | None = None,
        published: bool | None = None,
    ) -> BlogPost:
        """Update the given fields of a post; None leaves a field unchanged.

        Setting ``published`` stamps published_at when True and clears it
        when False.

        Raises:
            RecordNotFound: If no post has ``slug``.
            DuplicateSlug: If ``new_slug`` is already taken.
        """
        current = await self.get(slug, include_unpublished=True)

        assignments: list[str] = []
        params: list = []
        for column, value in (
            ("title", title),
            ("excerpt", excerpt),
            ("content", content),
            ("read_time", read_time),
        ):
            if value is not None:
                assignments.append(f"{column} = ?")
                params.append(value)

        target_slug = current.slug
        if new_slug and new_slug != current.slug:
            assignments.append("slug = ?")
            params.append(new_slug)
            target_slug = new_slug

        if published is not None:
            assignments.append("published = ?")
            params.append(1 if published else 0)
            assignments.append("published_at = ?")
            params.append(_now_ms() if published else None)

        assignments.append("updated_at = ?")
        params.append(_now_ms())
        params.append(current.id)

        try:
            await self._database.db.execute(
                f"UPDATE blog_posts SET {', '.join(assignments)} WHERE id = ?",
                params,
            )
        except sqlite3.IntegrityError as e:
            raise DuplicateSlug(f"a blog with slug {new_slug!r} already exists") from e
        await self._database.db.commit()

        logger.info("blog_post_updated", slug=target_slug)
        return await self.get(target_slug, include_unpublished=True)

    async def delete(self, slug: str) -> None:
        """Delete a post.

        Raises:
            RecordNotFound: If no post has ``slug``.
        """
        cursor = await self._database.db.execute(
            "DELETE FROM blog_posts WHERE slug = ?", (slug,)
        )
        await self._database.db.commit()
        if cursor.rowcount == 0:
            raise RecordNotFound(f"blog post {slug!r} not found")
        logger.info("blog_post_deleted", slug=slug)

    # ──────────────────────────────────────────────
    # Read methods
    # ──────────────────────────────────────────────

    async def get(self, slug: str, include_unpublished: bool = False) -> BlogPost:
        """Fetch a post by slug. Drafts are hidden unless include_unpublished.

        Raises:
            RecordNotFound: If the post does not exist or is a hidden draft.
        """
        cursor = await self._database.db.execute(
            f"SELECT {_BLOG_COLUMNS} FROM blog_posts WHERE slug = ?", (slug,)
        )
        row = await cursor.fetchone()
        if row is None:
            raise RecordNotFound(f"blog post {slug!r} not found")
        post = _row_to_post(row)
        if not post.published and not include_unpublished:
            raise RecordNotFound(f"blog post {slug!r} not found")
        return post

    async def list_published(self, skip: int = 0, take: int = 10) -> tuple[list[BlogPost], int]:
        """Page through published posts, newest first.

        Returns:
            (posts on this page, total number of published posts).
        """
        cursor = await self._database.db.execute(
            f"SELECT {_BLOG_COLUMNS} FROM blog_posts WHERE published = 1 "
            "ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?",
            (take, skip),
        )
        rows = await cursor.fetchall()

        cursor = await self._database.db.execute(
            "SELECT COUNT(*) FROM blog_posts WHERE published = 1"
        )
        total = (await cursor.fetchone())[0]

        return [_row_to_post(row) for row in rows], total


class PredictionStore:
    """Async SQLite store for one prediction record per trading day."""

    def __init__(self, database: NiftyNitiDatabase) -> None:
        self._database = database

    async def upsert(
        self,
        day: date,
        start: Decimal,
        close: Decimal,
        weights: dict[str, float],
    ) -> PredictionRecord:
        """Create or update the record for ``day``.

        high/low become the max/min of start, close and the existing
        record's high/low, so repeated forecasts during a day widen the
        envelope rather than replace it.

        Raises:
            InvalidRecord: If weights is not a mapping.
        """
        if not isinstance(weights, dict):
            raise InvalidRecord("weights must be a name -> value mapping")

        start, close = Decimal(str(start)), Decimal(str(close))
        existing = await self.get(day)

        high = max(start, close)
        low = min(start, close)
        created_at = _now_ms()
        if existing is not None:
            high = max(high, existing.high)
            low = min(low, existing.low)
            created_at = existing.created_at

        await self._database.db.execute(
            "INSERT OR REPLACE INTO predictions "
            "(date, start, close, high, low, weights, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                day.isoformat(),
                str(start),
                str(close),
                str(high),
                str(low),
                json.dumps(weights),
                created_at,
            ),
        )
        await self._database.db.commit()

        logger.info(
            "prediction_recorded",
            date=day.isoformat(),
            close=str(close),
            updated=existing is not None,
        )
        return PredictionRecord(
            date=day,
            start=start,
            close=close,
            high=high,
            low=low,
            weights=weights,
            created_at=created_at,
        )

    async def get(self, day: date) -> PredictionRecord | None:
        """Return the record for ``day`` or None."""
        cursor = await self._database.db.execute(
            "SELECT date, start, close, high, low, weights, created_at "
            "FROM predictions WHERE date = ?",
            (day.isoformat(),),
        )
        row = await cursor.fetchone()
        return self._row_to_record(row) if row is not None else None

    async def recent(self, limit: int = 30) -> list[PredictionRecord]:
        """Most recent records, newest date first."""
        cursor = await self._database.db.execute(
            "SELECT date, start, close, high, low, weights, created_at "
            "FROM predictions ORDER BY date DESC LIMIT ?",
            (limit,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_record(row) for row in rows]

    @staticmethod
    def _row_to_record(row: tuple) -> PredictionRecord:
        return PredictionRecord(
            date=date.fromisoformat(row[0]),
            start=Decimal(row[1]),
            close=Decimal(row[2]),
            high=Decimal(row[3]),
            low=Decimal(row[4]),
            weights=json.loads(row[5]),
            created_at=row[6],
        )
