from __future__ import annotations

from typing import List, Optional, TypedDict

# Identifiers are unsigned 64-bit integers; 0 means "not persisted yet".
MAX_ID = 2**64 - 1


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    A stored sub-task of a ToDo item.

    Fields:
    - id: Non-zero identifier, unique across all tasks and never reused
    - name: Non-empty name
    - description: Optional detailed description
    """

    id: int
    name: str
    description: Optional[str]


# PUBLIC_INTERFACE
class TodoEntity(TypedDict):
    """
    A lightweight domain model representing a ToDo item for the storage
    backends.

    Fields:
    - id: Identifier assigned by storage on creation
    - name: Non-empty name (enforced by the service layer)
    - description: Optional detailed description
    - tasks: Sub-tasks in the order the caller supplied them
    """

    id: int
    name: str
    description: Optional[str]
    tasks: List[TaskEntity]


def copy_todo(todo: TodoEntity) -> TodoEntity:
    """Return a copy of a ToDo that shares no mutable state with the original."""
    return {
        "id": todo["id"],
        "name": todo["name"],
        "description": todo["description"],
        "tasks": [task.copy() for task in todo["tasks"]],
    }
