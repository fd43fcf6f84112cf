"""
Legacy users directory (name + unique email).
Kept for API compatibility; ratings never reference it.
"""
from sqlalchemy import select

from radiocalico.errors import DuplicateEmail, MissingField
from radiocalico.models import User
from radiocalico.services.database import StorageBackend, storage_errors


class UserDirectory:
    """CRUD operations on the users table."""

    def __init__(self, backend: StorageBackend):
        self.backend = backend

    async def list_users(self) -> list[User]:
        """All users, newest first."""
        with storage_errors("list users"):
            async with self.backend.session() as session:
                result = await session.execute(
                    select(User).order_by(User.created_at.desc(), User.id.desc())
                )
                return list(result.scalars().all())

    async def create_user(self, name: str | None, email: str | None) -> User:
        """
        Create a user.

        Raises:
            MissingField: name or email empty
            DuplicateEmail: email is already registered
        """
        if not name or not email:
            raise MissingField("name" if not name else "email", "Name and email are required")

        stmt = (
            self.backend.insert(User)
            .values(name=name, email=email)
            .on_conflict_do_nothing(index_elements=[User.email])
            .returning(User)
        )
        with storage_errors("create user"):
            async with self.backend.session() as session:
                user = (await session.scalars(stmt)).one_or_none()

        if user is None:
            raise DuplicateEmail(email)
        return user
