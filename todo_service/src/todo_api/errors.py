from __future__ import annotations

from enum import Enum


class TodoServiceError(Exception):
    """Base class for all errors raised by the todo core."""


class ValidationErrorKind(str, Enum):
    """Business rules a ToDo payload can violate."""

    EMPTY_NAME = "EmptyName"


# PUBLIC_INTERFACE
class ValidationError(TodoServiceError):
    """
    Caller-supplied data violates a business rule.

    Always raised before any storage call is made.
    """

    def __init__(self, kind: ValidationErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


# PUBLIC_INTERFACE
class NotFoundError(TodoServiceError):
    """The referenced ToDo does not exist."""

    def __init__(self, todo_id: int) -> None:
        super().__init__(f"requested ToDo item {todo_id} not found")
        self.todo_id = todo_id


class StorageError(TodoServiceError):
    """Opaque failure of the underlying persistence backend."""


class RecordNotFound(StorageError):
    """Raised by repositories when a ToDo id has no stored record."""

    def __init__(self, todo_id: int) -> None:
        super().__init__(f"no stored ToDo with id {todo_id}")
        self.todo_id = todo_id
