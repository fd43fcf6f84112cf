"""
Async database backends using SQLAlchemy.

Two variants sit behind one interface:
- SQLite via aiosqlite (embedded, one writer per process)
- PostgreSQL via asyncpg (client/server, explicit transactions)

Both build their statements from the same models and the same dialect
`INSERT ... ON CONFLICT` constructs, so the rating semantics cannot drift
between them. Only engine setup and write serialization differ.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager, contextmanager
from dataclasses import dataclass
from typing import AsyncGenerator, Awaitable, Callable, Iterator, TypeVar

from sqlalchemy import event, select, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from radiocalico.config import Settings
from radiocalico.errors import SchemaInitError, StorageError
from radiocalico.models import Base, Rating, Song, User

logger = logging.getLogger(__name__)

T = TypeVar("T")

SQLITE = "sqlite"
POSTGRES = "postgres"
BACKEND_KINDS = (SQLITE, POSTGRES)

# Creation order matters: ratings references songs
SCHEMA_TABLES = (User.__table__, Song.__table__, Rating.__table__)


# ============================================
# Insert-or-fetch result
# ============================================

@dataclass(frozen=True)
class Inserted:
    """The song row was created by this call."""
    song_id: int


@dataclass(frozen=True)
class AlreadyExists:
    """Another writer created the song first; this is its id."""
    song_id: int


SongInsert = Inserted | AlreadyExists


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Translate driver/SQLAlchemy failures into StorageError."""
    try:
        yield
    except StorageError:
        raise
    except (SQLAlchemyError, OSError) as e:
        logger.exception("Database error while trying to %s", operation)
        raise StorageError(f"Failed to {operation}") from e


# ============================================
# Schema
# ============================================

async def initialize_schema(conn: AsyncConnection, backend_kind: str) -> None:
    """
    Create users, songs and ratings (with their constraints) if absent.

    Safe to call on every start. When another process creates the same
    tables concurrently, the creation is re-checked once so tables still
    missing get created; any other failure raises SchemaInitError.
    """
    if backend_kind not in BACKEND_KINDS:
        raise SchemaInitError(f"Unsupported database type: {backend_kind}")

    def _create(sync_conn) -> None:
        Base.metadata.create_all(sync_conn, tables=list(SCHEMA_TABLES), checkfirst=True)

    async def _create_in_savepoint() -> None:
        # A failed CREATE must not abort the enclosing transaction (PostgreSQL)
        async with conn.begin_nested():
            await conn.run_sync(_create)

    try:
        await _create_in_savepoint()
    except SQLAlchemyError as e:
        if not _is_creation_race(e):
            raise SchemaInitError(f"Failed to initialize {backend_kind} schema: {e}") from e
        logger.info("[Database] %s schema created concurrently, re-checking", backend_kind)
        try:
            await _create_in_savepoint()
        except SQLAlchemyError as retry_error:
            raise SchemaInitError(
                f"Failed to initialize {backend_kind} schema: {retry_error}"
            ) from retry_error


def _is_creation_race(error: SQLAlchemyError) -> bool:
    """
    True for errors raised when another process created the same object first:
    "relation ... already exists", or PostgreSQL's unique violation on the
    pg_type row of a table committed while our CREATE TABLE waited.
    """
    message = str(error).lower()
    return "already exists" in message or (
        isinstance(error, IntegrityError) and "pg_type_typname_nsp_index" in message
    )


# ============================================
# Backends
# ============================================

class StorageBackend(ABC):
    """
    Storage handle shared by the rating store and the users directory.

    Subclasses decide how a write unit is serialized; everything else,
    including the insert-or-fetch and upsert statements, lives here.
    """

    kind: str
    # Dialect INSERT supporting on_conflict_do_nothing / on_conflict_do_update
    insert: Callable

    def __init__(self, engine: AsyncEngine, transaction_timeout: float):
        self.engine = engine
        self.transaction_timeout = transaction_timeout
        self._sessionmaker = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Session for reads and simple writes.

        Usage:
            async with backend.session() as session:
                result = await session.execute(...)
        """
        async with self._sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def run_write(self, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """
        Run `work(session)` as one atomic unit.

        Everything `work` does commits together or not at all. The whole unit,
        including waiting for the writer, is bounded by `transaction_timeout`.
        """
        try:
            return await asyncio.wait_for(self._run_write(work), self.transaction_timeout)
        except asyncio.TimeoutError as e:
            logger.error(
                "[Database] Write unit exceeded %.1fs on %s", self.transaction_timeout, self.kind
            )
            raise StorageError("Timed out waiting for the database") from e

    @abstractmethod
    async def _run_write(self, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        ...

    async def insert_song(
        self,
        session: AsyncSession,
        song_hash: str,
        title: str,
        artist: str,
        album: str | None,
    ) -> SongInsert:
        """
        Insert a song, or find the row another writer already created.

        The unique index on song_hash turns a lost race into "no row
        returned"; the existing id is then re-read in the same transaction.
        """
        stmt = (
            self.insert(Song)
            .values(title=title, artist=artist, album=album, song_hash=song_hash)
            .on_conflict_do_nothing(index_elements=[Song.song_hash])
            .returning(Song.id)
        )
        song_id = (await session.execute(stmt)).scalar_one_or_none()
        if song_id is not None:
            return Inserted(song_id)

        existing = await session.execute(select(Song.id).where(Song.song_hash == song_hash))
        return AlreadyExists(existing.scalar_one())

    async def upsert_rating(self, session: AsyncSession, song_id: int, user_id: str, value: int) -> None:
        """Insert the (song, user) vote or overwrite its value in place."""
        stmt = self.insert(Rating).values(song_id=song_id, user_id=user_id, rating=value)
        stmt = stmt.on_conflict_do_update(
            index_elements=[Rating.song_id, Rating.user_id],
            set_={"rating": stmt.excluded.rating},
        )
        await session.execute(stmt)

    async def init_schema(self) -> None:
        """Create tables at startup. Raises SchemaInitError on failure."""
        try:
            async with self.engine.begin() as conn:
                await initialize_schema(conn, self.kind)
        except SchemaInitError:
            raise
        except (SQLAlchemyError, OSError) as e:
            raise SchemaInitError(f"Failed to initialize {self.kind} schema: {e}") from e
        logger.info("[Database] %s tables created/verified", self.kind)

    async def ping(self) -> bool:
        """Return True when a trivial query succeeds."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, OSError):
            return False

    async def close(self) -> None:
        """Close database connections. Called at application shutdown."""
        await self.engine.dispose()
        logger.info("[Database] %s connections closed", self.kind)


class SqliteBackend(StorageBackend):
    """
    Embedded store. All writes of the process go through one asyncio lock,
    so a write unit never interleaves with another one.
    """

    kind = SQLITE
    insert = staticmethod(sqlite.insert)

    def __init__(self, engine: AsyncEngine, transaction_timeout: float):
        super().__init__(engine, transaction_timeout)
        self._writer = asyncio.Lock()
        _configure_sqlite(engine)

    async def _run_write(self, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        async with self._writer:
            async with self._sessionmaker() as session:
                async with session.begin():
                    return await work(session)


class PostgresBackend(StorageBackend):
    """
    Client/server store. Write units are plain transactions; lock waits and
    statements inside them are capped server-side as well.
    """

    kind = POSTGRES
    insert = staticmethod(postgresql.insert)

    async def _run_write(self, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        timeout_ms = max(1, int(self.transaction_timeout * 1000))
        async with self._sessionmaker() as session:
            async with session.begin():
                await session.execute(text(f"SET LOCAL lock_timeout = {timeout_ms}"))
                await session.execute(text(f"SET LOCAL statement_timeout = {timeout_ms}"))
                return await work(session)


def _configure_sqlite(engine: AsyncEngine) -> None:
    """Enable foreign keys and let SQLAlchemy own BEGIN/COMMIT."""

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Stop the driver from issuing its own deferred BEGIN
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def resolve_database_url(url: str) -> tuple[str, str]:
    """
    Map a configured URL onto an async driver URL and a backend kind.

    postgresql:// becomes postgresql+asyncpg://, sqlite:// becomes
    sqlite+aiosqlite://.
    """
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1), POSTGRES
    if url.startswith("postgresql+asyncpg://"):
        return url, POSTGRES
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1), SQLITE
    if url.startswith("sqlite+aiosqlite://"):
        return url, SQLITE
    raise ValueError(f"Unsupported database URL: {url.split('://', 1)[0]}://...")


def create_backend(settings: Settings) -> StorageBackend:
    """Build the backend matching `settings.database_url`."""
    url, kind = resolve_database_url(settings.database_url)

    if kind == POSTGRES:
        engine = create_async_engine(
            url,
            echo=settings.debug,
            pool_pre_ping=True,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
        )
        backend: StorageBackend = PostgresBackend(engine, settings.rating_transaction_timeout)
    else:
        engine = create_async_engine(
            url,
            echo=settings.debug,
            connect_args={"timeout": settings.rating_transaction_timeout},
        )
        backend = SqliteBackend(engine, settings.rating_transaction_timeout)

    logger.info("[Database] Using %s backend", kind)
    return backend
