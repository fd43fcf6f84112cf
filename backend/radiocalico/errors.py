"""
Error types raised by the ratings backend.

InputError subclasses are answered with 400, StorageError with 500.
"""


class RadioCalicoError(Exception):
    """Base class for all application errors."""


class InputError(RadioCalicoError):
    """Request data rejected before any storage access."""


class InvalidRating(InputError):
    def __init__(self, value=None):
        self.value = value
        super().__init__("Rating must be 1 (thumbs up) or -1 (thumbs down)")


class MissingField(InputError):
    def __init__(self, field: str, message: str | None = None):
        self.field = field
        super().__init__(message or f"Missing required fields: {field}")


class InvalidArgument(InputError):
    """A helper was called with an argument of the wrong type or shape."""


class DuplicateEmail(InputError):
    def __init__(self, email: str):
        self.email = email
        super().__init__("Email already exists")


class StorageError(RadioCalicoError):
    """The database failed, timed out or is unreachable."""


class SchemaInitError(StorageError):
    """Tables or constraints could not be created at startup."""
