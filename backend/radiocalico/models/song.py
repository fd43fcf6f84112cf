"""
SQLAlchemy model for songs.
A song row is created the first time anybody rates a track and is never updated.
"""
from sqlalchemy import Column, Integer, String, DateTime, Index
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""
    pass


class Song(Base):
    """
    A track that has received at least one rating.

    `song_hash` is the key clients know the song by (see services.hashing);
    `id` is only used to join ratings.
    """
    __tablename__ = "songs"

    id = Column(Integer, primary_key=True)
    title = Column(String(255), nullable=False)
    artist = Column(String(255), nullable=False)
    album = Column(String(255), nullable=True)
    song_hash = Column(String(100), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_songs_created_at", "created_at"),
        Index("idx_songs_artist_title", "artist", "title"),
    )

    def __repr__(self) -> str:
        return f"<Song(hash={self.song_hash}, artist={self.artist}, title={self.title})>"
