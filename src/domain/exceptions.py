"""
Store-agnostic error signals raised by the data access layer.

They subclass ValueError, matching how the services signal domain failures,
so callers can catch either the specific type or ValueError.
"""


class DataAccessError(ValueError):
    """The store failed for a reason other than a known constraint."""


class DuplicateEmailError(DataAccessError):
    """An insert would violate the unique email index."""

    def __init__(self, email: str | None):
        self.email = email
        super().__init__(f"A user with email '{email}' already exists.")


class UserNotFoundError(ValueError):
    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"User with ID {user_id} not found")
