"""
FastAPI dependencies.

The storage backend is created in the app lifespan and kept on `app.state`;
services are thin wrappers built per request around it.
"""
from fastapi import Depends, Request

from radiocalico.services.database import StorageBackend
from radiocalico.services.ratings import RatingStore
from radiocalico.services.users import UserDirectory


def get_backend(request: Request) -> StorageBackend:
    return request.app.state.backend


def get_rating_store(backend: StorageBackend = Depends(get_backend)) -> RatingStore:
    return RatingStore(backend)


def get_user_directory(backend: StorageBackend = Depends(get_backend)) -> UserDirectory:
    return UserDirectory(backend)
