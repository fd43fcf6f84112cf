"""
Rating store: thumbs up / thumbs down per (song, user).

Each (song_hash, user_id) pair moves Unrated -> Rated(+1|-1) and then only
flips between the two values. There is no way back to Unrated. A submission
creates the song when needed, upserts the vote and recounts the song's
totals inside a single write unit of the storage backend.
"""
import logging
from dataclasses import dataclass

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from radiocalico.errors import InvalidRating, MissingField
from radiocalico.models import Rating, Song
from radiocalico.services.database import AlreadyExists, StorageBackend, storage_errors

logger = logging.getLogger(__name__)

THUMBS_UP = 1
THUMBS_DOWN = -1
VALID_RATINGS = (THUMBS_UP, THUMBS_DOWN)

_thumbs_up = func.coalesce(func.sum(case((Rating.rating == THUMBS_UP, 1), else_=0)), 0)
_thumbs_down = func.coalesce(func.sum(case((Rating.rating == THUMBS_DOWN, 1), else_=0)), 0)


@dataclass(frozen=True)
class RatingAggregate:
    """Vote counts for one song."""
    thumbs_up: int = 0
    thumbs_down: int = 0

    def to_dict(self) -> dict:
        return {"thumbs_up": self.thumbs_up, "thumbs_down": self.thumbs_down}


@dataclass(frozen=True)
class SongSummary:
    """One song with its vote counts, as listed in the ratings summary."""
    song_hash: str
    title: str
    artist: str
    album: str | None
    thumbs_up: int
    thumbs_down: int

    @property
    def total_ratings(self) -> int:
        return self.thumbs_up + self.thumbs_down

    def to_dict(self) -> dict:
        return {
            "song_hash": self.song_hash,
            "title": self.title,
            "artist": self.artist,
            "album": self.album,
            "thumbs_up": self.thumbs_up,
            "thumbs_down": self.thumbs_down,
            "total_ratings": self.total_ratings,
        }


def validate_rating(value) -> int:
    """Accept exactly 1 or -1. bool is rejected even though True == 1."""
    if isinstance(value, bool) or not isinstance(value, int) or value not in VALID_RATINGS:
        raise InvalidRating(value)
    return value


def _require(**fields) -> None:
    for name, value in fields.items():
        if not isinstance(value, str) or not value:
            raise MissingField(name)


class RatingStore:
    """
    Upsert and aggregate ratings on top of an injected storage backend.

    Args:
        backend: SQLite or PostgreSQL backend; the store holds no other state
    """

    def __init__(self, backend: StorageBackend):
        self.backend = backend

    async def _ensure_song(
        self,
        session: AsyncSession,
        song_hash: str,
        title: str,
        artist: str,
        album: str | None,
    ) -> int:
        result = await self.backend.insert_song(session, song_hash, title, artist, album)
        if isinstance(result, AlreadyExists):
            logger.debug("Song %s already stored as id=%d", song_hash, result.song_id)
        return result.song_id

    async def _aggregate_for_song(self, session: AsyncSession, song_id: int) -> RatingAggregate:
        result = await session.execute(
            select(_thumbs_up, _thumbs_down).where(Rating.song_id == song_id)
        )
        up, down = result.one()
        return RatingAggregate(thumbs_up=int(up), thumbs_down=int(down))

    async def ensure_song(self, song_hash: str, title: str, artist: str, album: str | None = None) -> int:
        """
        Return the internal id for `song_hash`, creating the song if needed.

        Losing the insert race against a concurrent submission is not an
        error: the row the winner created is returned instead.
        """
        _require(songHash=song_hash, title=title, artist=artist)

        async def work(session: AsyncSession) -> int:
            return await self._ensure_song(session, song_hash, title, artist, album)

        with storage_errors("store song"):
            return await self.backend.run_write(work)

    async def submit_rating(
        self,
        song_hash: str,
        user_id: str,
        value: int,
        title: str,
        artist: str,
        album: str | None = None,
    ) -> RatingAggregate:
        """
        Record `user_id`'s vote on a song and return the song's new totals.

        Validation happens before any storage access. Song creation, the
        vote upsert and the recount commit together; on failure nothing is
        written.

        Raises:
            MissingField: song_hash, user_id, title or artist empty
            InvalidRating: value is not exactly 1 or -1
            StorageError: database failure or timeout
        """
        _require(songHash=song_hash, userId=user_id, title=title, artist=artist)
        value = validate_rating(value)

        async def work(session: AsyncSession) -> RatingAggregate:
            song_id = await self._ensure_song(session, song_hash, title, artist, album)
            await self.backend.upsert_rating(session, song_id, user_id, value)
            return await self._aggregate_for_song(session, song_id)

        with storage_errors("submit rating"):
            aggregate = await self.backend.run_write(work)

        logger.info(
            "Rating %+d on %s by %s -> up=%d down=%d",
            value, song_hash, user_id, aggregate.thumbs_up, aggregate.thumbs_down,
        )
        return aggregate

    async def get_aggregate(self, song_hash: str) -> RatingAggregate:
        """Totals for a song; an unknown song simply has zero votes."""
        with storage_errors("load ratings"):
            async with self.backend.session() as session:
                result = await session.execute(
                    select(_thumbs_up, _thumbs_down)
                    .select_from(Song)
                    .join(Rating, Rating.song_id == Song.id)
                    .where(Song.song_hash == song_hash)
                )
                up, down = result.one()
        return RatingAggregate(thumbs_up=int(up), thumbs_down=int(down))

    async def get_user_rating(self, song_hash: str, user_id: str) -> int | None:
        """The user's current vote, or None if they never rated this song."""
        with storage_errors("load user rating"):
            async with self.backend.session() as session:
                result = await session.execute(
                    select(Rating.rating)
                    .join(Song, Song.id == Rating.song_id)
                    .where(Song.song_hash == song_hash, Rating.user_id == user_id)
                )
                return result.scalar_one_or_none()

    async def list_song_summaries(self, limit: int = 20) -> list[SongSummary]:
        """Most recently added songs with their totals (unrated songs count zero)."""
        with storage_errors("load rating summary"):
            async with self.backend.session() as session:
                result = await session.execute(
                    select(Song.song_hash, Song.title, Song.artist, Song.album, _thumbs_up, _thumbs_down)
                    .outerjoin(Rating, Rating.song_id == Song.id)
                    .group_by(Song.id, Song.song_hash, Song.title, Song.artist, Song.album, Song.created_at)
                    .order_by(Song.created_at.desc(), Song.id.desc())
                    .limit(limit)
                )
                rows = result.all()

        return [
            SongSummary(
                song_hash=row[0],
                title=row[1],
                artist=row[2],
                album=row[3],
                thumbs_up=int(row[4]),
                thumbs_down=int(row[5]),
            )
            for row in rows
        ]
