"""SQLite connection owner for blog posts and daily prediction records.

One aiosqlite connection per process, opened in WAL mode. The schema is
versioned: each entry in ``_MIGRATIONS`` upgrades the database from the
previous version, and the highest applied version is kept in
``schema_version``.
"""

from pathlib import Path
from typing import Self

import aiosqlite

from niftyniti.logging import get_logger

logger = get_logger(__name__)

_MIGRATIONS: dict[int, str] = {
    1: """
    CREATE TABLE IF NOT EXISTS blog_posts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        slug TEXT NOT NULL UNIQUE,
        excerpt TEXT NOT NULL,
        content TEXT NOT NULL,
        read_time INTEGER NOT NULL,
        published INTEGER NOT NULL DEFAULT 0,
        published_at INTEGER,
        created_at INTEGER NOT NULL,
        updated_at INTEGER NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_blog_published_created
        ON blog_posts(published, created_at);

    -- prices as TEXT so Decimal survives the round trip
    CREATE TABLE IF NOT EXISTS predictions (
        date TEXT PRIMARY KEY,
        start TEXT NOT NULL,
        close TEXT NOT NULL,
        high TEXT NOT NULL,
        low TEXT NOT NULL,
        weights TEXT NOT NULL,
        created_at INTEGER NOT NULL
    );
    """,
}

SCHEMA_VERSION = max(_MIGRATIONS)


class NiftyNitiDatabase:
    """Opens, migrates and closes the application database.

    Usage:
        async with NiftyNitiDatabase("data/niftyniti.db") as database:
            store = BlogStore(database)
    """

    def __init__(self, db_path: str = "data/niftyniti.db") -> None:
        self._db_path = db_path
        self._conn: aiosqlite.Connection | None = None

    @property
    def db(self) -> aiosqlite.Connection:
        """The open connection.

        Raises:
            RuntimeError: If connect() has not been called.
        """
        if self._conn is None:
            raise RuntimeError(f"database {self._db_path} is not open")
        return self._conn

    async def connect(self) -> None:
        """Open the file (creating its directory) and bring the schema up to date."""
        Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)

        self._conn = await aiosqlite.connect(self._db_path)
        await self._conn.execute("PRAGMA journal_mode=WAL")
        await self._conn.execute("PRAGMA synchronous=NORMAL")
        await self._migrate()

        logger.info("database_connected", db_path=self._db_path, schema=SCHEMA_VERSION)

    async def close(self) -> None:
        if self._conn is None:
            return
        await self._conn.close()
        self._conn = None
        logger.info("database_closed", db_path=self._db_path)

    async def _migrate(self) -> None:
        conn = self.db
        await conn.execute(
            "CREATE TABLE IF NOT EXISTS schema_version (version INTEGER PRIMARY KEY)"
        )
        cursor = await conn.execute("SELECT MAX(version) FROM schema_version")
        current = (await cursor.fetchone())[0] or 0

        for version in sorted(v for v in _MIGRATIONS if v > current):
            await conn.executescript(_MIGRATIONS[version])
            await conn.execute("INSERT INTO schema_version (version) VALUES (?)", (version,))
            await conn.commit()
            logger.info("schema_migrated", version=version)

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        await self.close()
