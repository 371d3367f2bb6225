from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from threading import Lock, RLock
from typing import Dict, List, Optional

from .errors import RecordNotFound, StorageError
from .models import TodoEntity, copy_todo
from .reconcile import reconcile
from .schemas import TodoIn
from .settings import get_settings

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class Repository(ABC):
    """Abstract repository contract for ToDo storage backends."""

    @abstractmethod
    def initialize(self) -> None:
        """
        Set up the storage if it hasn't been set up yet. Safe to call more than
        once; the other methods may be used afterwards.
        """

    @abstractmethod
    def create(self, data: TodoIn) -> TodoEntity:
        """Store a new ToDo, assigning fresh ids to it and all of its tasks."""

    @abstractmethod
    def find_all(self) -> List[TodoEntity]:
        """Return every stored ToDo with its tasks. The order is unspecified."""

    @abstractmethod
    def find_by_id(self, todo_id: int) -> TodoEntity:
        """Return the ToDo with the given id. Raise RecordNotFound if there is none."""

    @abstractmethod
    def update(self, todo_id: int, data: TodoIn) -> TodoEntity:
        """
        Reconcile the stored ToDo with ``data`` and return the result. Raise
        RecordNotFound if there is no ToDo with the given id.
        """

    @abstractmethod
    def delete(self, todo_id: int) -> None:
        """Delete a ToDo along with its tasks. Raise RecordNotFound if there is none."""

    @abstractmethod
    def remove(self) -> None:
        """Wipe the storage. Inverse of initialize; call before close when discarding it."""

    def close(self) -> None:
        """Release held resources."""


class InMemoryRepository(Repository):
    """
    Thread-safe in-memory repository living as long as the process.

    Every operation holds a single lock, so reconciliations of the same ToDo
    never interleave and no id is handed out twice.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: Optional[Dict[int, TodoEntity]] = None
        self._next_todo_id = 1
        self._next_task_id = 1

    def _store(self) -> Dict[int, TodoEntity]:
        if self._items is None:
            raise StorageError("in-memory storage is not initialized")
        return self._items

    def _allocate_todo_id(self) -> int:
        with self._lock:
            i = self._next_todo_id
            self._next_todo_id += 1
            return i

    def _allocate_task_id(self) -> int:
        with self._lock:
            i = self._next_task_id
            self._next_task_id += 1
            return i

    def initialize(self) -> None:
        with self._lock:
            if self._items is None:
                self._items = {}

    def create(self, data: TodoIn) -> TodoEntity:
        with self._lock:
            items = self._store()
            entity: TodoEntity = {
                "id": self._allocate_todo_id(),
                "name": data.name,
                "description": data.description,
                "tasks": [
                    {"id": self._allocate_task_id(), "name": t.name, "description": t.description}
                    for t in data.tasks
                ],
            }
            items[entity["id"]] = entity
            logger.debug("Stored ToDo %s with %d tasks", entity["id"], len(entity["tasks"]))
            return copy_todo(entity)

    def find_all(self) -> List[TodoEntity]:
        with self._lock:
            return [copy_todo(t) for t in self._store().values()]

    def find_by_id(self, todo_id: int) -> TodoEntity:
        with self._lock:
            item = self._store().get(todo_id)
            if item is None:
                raise RecordNotFound(todo_id)
            return copy_todo(item)

    def update(self, todo_id: int, data: TodoIn) -> TodoEntity:
        with self._lock:
            items = self._store()
            existing = items.get(todo_id)
            if existing is None:
                raise RecordNotFound(todo_id)

            result = reconcile(existing, data, self._allocate_task_id)
            # Swapping the whole entity applies deletes, overwrites and inserts at once.
            items[todo_id] = copy_todo(result.todo)
            logger.debug(
                "Reconciled ToDo %s: %d deleted, %d overwritten, %d inserted",
                todo_id,
                len(result.deletes),
                len(result.overwrites),
                len(result.inserts),
            )
            return copy_todo(result.todo)

    def delete(self, todo_id: int) -> None:
        with self._lock:
            if self._store().pop(todo_id, None) is None:
                raise RecordNotFound(todo_id)

    def remove(self) -> None:
        with self._lock:
            self._items = None
            self._next_todo_id = 1
            self._next_task_id = 1


def create_repository(backend: str, sqlite_db_path: str) -> Repository:
    """
    Build and initialize a repository for the given backend name.
    - memory: InMemoryRepository
    - sqlite: SQLiteRepository backed by the file at ``sqlite_db_path``
    """
    if backend == "sqlite":
        from .db import SQLiteRepository

        repo: Repository = SQLiteRepository(sqlite_db_path)
    elif backend == "memory":
        repo = InMemoryRepository()
    else:
        raise ValueError(f"unsupported persistence backend: {backend!r}")
    repo.initialize()
    logger.info("Using %s persistence backend", backend)
    return repo


_repository: Optional[Repository] = None
_repository_lock = Lock()


# PUBLIC_INTERFACE
def get_repository() -> Repository:
    """
    Return the process-wide repository configured by the settings.

    FastAPI resolves this dependency in its threadpool; creation is guarded so
    that concurrent first requests share a single store.
    """
    global _repository
    if _repository is None:
        with _repository_lock:
            if _repository is None:
                settings = get_settings()
                _repository = create_repository(settings.persistence_backend, settings.sqlite_db_path)
    return _repository
