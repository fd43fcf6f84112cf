"""
Legacy user routes.
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, StrictStr

from radiocalico.dependencies import get_user_directory
from radiocalico.services.users import UserDirectory

router = APIRouter()


class CreateUserRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: StrictStr | None = None
    email: StrictStr | None = None


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    created_at: str | None


@router.get("", response_model=list[UserResponse])
async def list_users(users: UserDirectory = Depends(get_user_directory)):
    """All users, newest first."""
    return [u.to_dict() for u in await users.list_users()]


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(request: CreateUserRequest, users: UserDirectory = Depends(get_user_directory)):
    """Register a user. Emails are unique."""
    user = await users.create_user(request.name, request.email)
    return user.to_dict()
