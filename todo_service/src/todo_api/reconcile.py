"""
Task reconciliation for ToDo updates.

An update carries the complete desired state of a ToDo, including its tasks.
The stored task list is brought in line with it by the following rules:

1. A task with an id claims the stored task with that id, whose name and
   description are overwritten. Its id never changes.
2. A task without an id (id 0) is new and receives a freshly allocated id.
3. A stored task whose id is not claimed is deleted.

Tasks are overwritten regardless of whether they actually changed. The engine
does not touch storage; it returns a ``Reconciliation`` that the repository
applies inside its own critical section or transaction.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List

from .models import TaskEntity, TodoEntity
from .schemas import TodoIn

logger = logging.getLogger(__name__)

# Returns an id that has never been handed out before.
TaskIdAllocator = Callable[[], int]


@dataclass
class Reconciliation:
    """
    Storage mutations that turn a stored ToDo into the desired one.

    Backends apply them in field order: deletes, overwrites, inserts, then the
    ToDo's own fields. ``todo`` is the resulting canonical entity.
    """

    todo: TodoEntity
    deletes: List[int] = field(default_factory=list)
    overwrites: List[TaskEntity] = field(default_factory=list)
    inserts: List[TaskEntity] = field(default_factory=list)
    ignored_claims: List[int] = field(default_factory=list)


# PUBLIC_INTERFACE
def reconcile(existing: TodoEntity, desired: TodoIn, allocate_task_id: TaskIdAllocator) -> Reconciliation:
    """
    Compute the mutations that reconcile ``existing`` with ``desired``.

    Args:
        existing: The stored ToDo, tasks included.
        desired: The target state supplied by the caller.
        allocate_task_id: Source of fresh task ids, called once per new task.

    Returns:
        A Reconciliation whose ``todo`` keeps ``existing["id"]``, carries the
        desired name and description, and lists the tasks in caller order.

    Claimed ids that are not stored tasks of this ToDo are ignored and
    reported in ``ignored_claims``. When the same id is claimed more than once
    the last occurrence wins and the task keeps the position of the first.
    """
    stored_ids = {task["id"] for task in existing["tasks"]}

    # Final values of each claimed id, in order of first claim.
    claimed: Dict[int, TaskEntity] = {}
    ordered: List[TaskEntity] = []
    inserts: List[TaskEntity] = []
    ignored: List[int] = []

    for task in desired.tasks:
        if task.id == 0:
            continue
        if task.id not in stored_ids:
            if task.id not in ignored:
                ignored.append(task.id)
            continue
        if task.id in claimed:
            # Duplicate claim; overwrite the values of the earlier occurrence in place.
            claimed[task.id]["name"] = task.name
            claimed[task.id]["description"] = task.description
            continue
        claimed[task.id] = {"id": task.id, "name": task.name, "description": task.description}

    seen: set = set()
    for task in desired.tasks:
        if task.id == 0:
            new_task: TaskEntity = {
                "id": allocate_task_id(),
                "name": task.name,
                "description": task.description,
            }
            inserts.append(new_task)
            ordered.append(new_task)
        elif task.id in claimed and task.id not in seen:
            seen.add(task.id)
            ordered.append(claimed[task.id])

    deletes = [task["id"] for task in existing["tasks"] if task["id"] not in claimed]

    if ignored:
        logger.warning("ToDo %s: ignoring claims on unknown task ids %s", existing["id"], ignored)

    todo: TodoEntity = {
        "id": existing["id"],
        "name": desired.name,
        "description": desired.description,
        "tasks": ordered,
    }
    return Reconciliation(
        todo=todo,
        deletes=deletes,
        overwrites=list(claimed.values()),
        inserts=inserts,
        ignored_claims=ignored,
    )
