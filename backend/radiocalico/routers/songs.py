"""
Song listing and song key helper routes.
"""
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from radiocalico.dependencies import get_rating_store
from radiocalico.services.hashing import song_hash
from radiocalico.services.ratings import RatingStore

router = APIRouter()


class SongRatingSummary(BaseModel):
    """One song with its vote totals."""
    song_hash: str
    title: str
    artist: str
    album: str | None
    thumbs_up: int
    thumbs_down: int
    total_ratings: int


class SongHashResponse(BaseModel):
    song_hash: str


@router.get("/songs/ratings-summary", response_model=list[SongRatingSummary])
async def get_ratings_summary(
    limit: int = Query(20, ge=1, le=100, description="Max songs"),
    store: RatingStore = Depends(get_rating_store),
):
    """Most recently added songs with thumbs up/down totals."""
    summaries = await store.list_song_summaries(limit)
    return [s.to_dict() for s in summaries]


@router.get("/song-hash", response_model=SongHashResponse)
async def get_song_hash(
    artist: str = Query("", description="Artist name"),
    title: str = Query("", description="Song title"),
    album: str | None = Query(None, description="Album name"),
):
    """
    Compute the song key the player uses, for clients that can't run the
    browser helper.
    """
    return {"song_hash": song_hash(artist, title, album)}
