from __future__ import annotations

import logging
from typing import List

from .errors import NotFoundError, RecordNotFound, ValidationError, ValidationErrorKind
from .models import TodoEntity
from .repositories import Repository
from .schemas import TodoIn

logger = logging.getLogger(__name__)


def _validate(todo: TodoIn) -> None:
    """
    Enforce the business rules storage does not know about: the ToDo and each
    of its tasks need a non-blank name.

    Raises:
        ValidationError(EMPTY_NAME) on the first violation.
    """
    if not todo.name.strip():
        raise ValidationError(ValidationErrorKind.EMPTY_NAME, "name must not be empty")
    for position, task in enumerate(todo.tasks):
        if not task.name.strip():
            raise ValidationError(
                ValidationErrorKind.EMPTY_NAME,
                f"name of task at position {position} must not be empty",
            )


# PUBLIC_INTERFACE
class TodoService:
    """
    Core application logic for ToDo items.

    Validates input before anything is written and delegates persistence to a
    Repository. A missing ToDo surfaces as NotFoundError; any other storage
    failure propagates unchanged as a StorageError.
    """

    def __init__(self, repository: Repository) -> None:
        self._repository = repository

    def create(self, todo: TodoIn) -> TodoEntity:
        """Create a new ToDo. Ids in the payload are ignored."""
        _validate(todo)
        created = self._repository.create(todo)
        logger.info("Created ToDo %s with %d tasks", created["id"], len(created["tasks"]))
        return created

    def find_all(self) -> List[TodoEntity]:
        """Return all ToDos; callers must not rely on the order."""
        return self._repository.find_all()

    def find_by_id(self, todo_id: int) -> TodoEntity:
        try:
            return self._repository.find_by_id(todo_id)
        except RecordNotFound as e:
            raise NotFoundError(todo_id) from e

    def update(self, todo_id: int, desired: TodoIn) -> TodoEntity:
        """
        Replace the ToDo with the given id by ``desired``.

        Tasks carrying an id keep it and are overwritten, tasks without one are
        created, and stored tasks missing from ``desired`` are deleted.
        """
        _validate(desired)
        try:
            updated = self._repository.update(todo_id, desired)
        except RecordNotFound as e:
            raise NotFoundError(todo_id) from e
        logger.info("Updated ToDo %s, now %d tasks", todo_id, len(updated["tasks"]))
        return updated

    def delete(self, todo_id: int) -> None:
        """Delete the ToDo with the given id along with its tasks."""
        try:
            self._repository.delete(todo_id)
        except RecordNotFound as e:
            raise NotFoundError(todo_id) from e
        logger.info("Deleted ToDo %s", todo_id)
