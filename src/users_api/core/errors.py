"""Error taxonomy shared by the store, the patch applier and the HTTP layer."""

from enum import Enum


class ErrorKind(str, Enum):
    """Kinds of failure an operation on the Users resource can report."""

    NOT_FOUND = "not_found"
    VALIDATION_FAILED = "validation_failed"
    INTERNAL = "internal"


class UserServiceError(Exception):
    """Failure raised by the store or handler layers.

    ``errors`` maps a field name or patch path to its messages and is only
    populated for ``ErrorKind.VALIDATION_FAILED``.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        errors: dict[str, list[str]] | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.errors = errors or {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r})"


class UserNotFoundError(UserServiceError):
    def __init__(self, user_id: int) -> None:
        super().__init__(ErrorKind.NOT_FOUND, f"User {user_id} not found")
        self.user_id = user_id


class UserValidationError(UserServiceError):
    def __init__(self, errors: dict[str, list[str]]) -> None:
        super().__init__(ErrorKind.VALIDATION_FAILED, "Validation failed", errors)


class UserStoreError(UserServiceError):
    """The relational store rejected or failed a statement."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorKind.INTERNAL, message)
