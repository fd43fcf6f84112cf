"""
Song rating routes used by the player's thumbs up / thumbs down widget.
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr

from radiocalico.dependencies import get_rating_store
from radiocalico.errors import MissingField
from radiocalico.services.ratings import RatingStore

router = APIRouter()


class RateSongRequest(BaseModel):
    """Vote plus the track metadata needed to create the song on first rating."""
    model_config = ConfigDict(populate_by_name=True)

    rating: StrictInt | None = None
    user_id: StrictStr | None = Field(None, alias="userId")
    title: StrictStr | None = None
    artist: StrictStr | None = None
    album: StrictStr | None = None


class RatingCounts(BaseModel):
    """Aggregate votes for a song."""
    thumbs_up: int
    thumbs_down: int


class RateSongResponse(RatingCounts):
    message: str


class UserRatingResponse(BaseModel):
    """Current vote of one client (null when not rated)."""
    rating: int | None


@router.get("/{song_hash}/ratings", response_model=RatingCounts)
async def get_song_ratings(song_hash: str, store: RatingStore = Depends(get_rating_store)):
    """Thumbs up/down counts. Unknown songs report zeros."""
    aggregate = await store.get_aggregate(song_hash)
    return aggregate.to_dict()


@router.post("/{song_hash}/rate", response_model=RateSongResponse)
async def rate_song(
    song_hash: str,
    request: RateSongRequest,
    store: RatingStore = Depends(get_rating_store),
):
    """
    Submit or change a vote.

    The song is created from `title`/`artist`/`album` the first time it is
    rated. Returns the song's updated totals.
    """
    if request.rating is None:
        raise MissingField("rating")

    aggregate = await store.submit_rating(
        song_hash,
        user_id=request.user_id,
        value=request.rating,
        title=request.title,
        artist=request.artist,
        album=request.album,
    )
    return {"message": "Rating submitted successfully", **aggregate.to_dict()}


@router.get("/{song_hash}/user-rating/{user_id}", response_model=UserRatingResponse)
async def get_user_rating(song_hash: str, user_id: str, store: RatingStore = Depends(get_rating_store)):
    """The given client's vote on a song, or null."""
    return {"rating": await store.get_user_rating(song_hash, user_id)}
