"""Database models."""
from radiocalico.models.song import Base, Song
from radiocalico.models.rating import Rating
from radiocalico.models.user import User

__all__ = ["Base", "Song", "Rating", "User"]
