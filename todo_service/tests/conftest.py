import os

import pytest

# Ensure we default to memory backend for tests to avoid filesystem dependencies
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")

from todo_api.repositories import Repository, create_repository  # noqa: E402
from todo_api.schemas import TodoIn  # noqa: E402


def make_todo(name="ToDo 1", description=None, tasks=()):
    """
    Build an input ToDo. ``tasks`` holds (id, name) pairs or dicts.
    """
    task_list = []
    for t in tasks:
        if isinstance(t, dict):
            task_list.append(t)
        else:
            task_id, task_name = t
            task_list.append({"id": task_id, "name": task_name})
    return TodoIn(name=name, description=description, tasks=task_list)


@pytest.fixture(params=["memory", "sqlite"])
def repository(request, tmp_path) -> Repository:
    """An initialized, empty repository; runs each test once per backend."""
    repo = create_repository(request.param, str(tmp_path / "todos.db"))
    yield repo
    repo.remove()
    repo.close()
