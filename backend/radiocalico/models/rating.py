"""
SQLAlchemy model for thumbs up / thumbs down ratings.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, CheckConstraint, Index
from sqlalchemy.sql import func

from radiocalico.models.song import Base


class Rating(Base):
    """
    One vote per (song, user).

    `user_id` is the opaque client identifier sent by the player, not a
    reference to the users table. A row is only ever created once and then
    has its `rating` overwritten.
    """
    __tablename__ = "ratings"

    id = Column(Integer, primary_key=True)
    song_id = Column(Integer, ForeignKey("songs.id"), nullable=False)
    user_id = Column(String(255), nullable=False)
    rating = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("song_id", "user_id", name="uq_ratings_song_user"),
        CheckConstraint("rating IN (-1, 1)", name="ck_ratings_rating_sign"),
        Index("idx_ratings_user_id", "user_id"),
        Index("idx_ratings_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Rating(song={self.song_id}, user={self.user_id}, rating={self.rating})>"
