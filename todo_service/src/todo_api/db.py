from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Generator, List, Optional

from .errors import StorageError, RecordNotFound
from .models import TaskEntity, TodoEntity
from .reconcile import reconcile
from .repositories import Repository
from .schemas import TodoIn

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Tables:
    todos: str = "todos"
    tasks: str = "tasks"
    sequences: str = "id_sequences"


_T = _Tables()

# SQLite stores signed 64-bit integers; larger ids cannot name a row.
_MAX_ROWID = 2**63 - 1


class SQLiteRepository(Repository):
    """
    SQLite repository implementing the Repository interface.

    Tasks live in their own table referencing the ToDo with a cascading
    foreign key. Ids for both tables come from a sequence table that is only
    ever incremented, so an id is never handed out twice, not even after the
    row it was given to has been deleted.

    Each operation opens its own connection and runs in a single transaction.
    Writes use BEGIN IMMEDIATE, which serializes writers on the database.
    """

    def __init__(self, db_path: str) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path

    @contextmanager
    def _transaction(self, write: bool = True) -> Generator[sqlite3.Connection, None, None]:
        try:
            conn = sqlite3.connect(self._db_path, isolation_level=None)
        except sqlite3.Error as e:
            raise StorageError(f"cannot open database {self._db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute("BEGIN IMMEDIATE" if write else "BEGIN")
            try:
                yield conn
            except BaseException:
                # SQLite may already have rolled back on its own, e.g. after SQLITE_FULL.
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e
        finally:
            conn.close()

    def _next_id(self, conn: sqlite3.Connection, name: str) -> int:
        conn.execute(f"UPDATE {_T.sequences} SET value = value + 1 WHERE name = ?", (name,))
        row = conn.execute(f"SELECT value FROM {_T.sequences} WHERE name = ?", (name,)).fetchone()
        if row is None:
            raise StorageError(f"id sequence {name!r} is missing; was the storage initialized?")
        return int(row["value"])

    def initialize(self) -> None:
        with self._transaction() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_T.todos} (
                    id INTEGER PRIMARY KEY,
                    name TEXT NOT NULL,
                    description TEXT NULL
                )
                """
            )
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_T.tasks} (
                    id INTEGER PRIMARY KEY,
                    todo_id INTEGER NOT NULL REFERENCES {_T.todos}(id) ON DELETE CASCADE,
                    position INTEGER NOT NULL DEFAULT 0,
                    name TEXT NOT NULL,
                    description TEXT NULL
                )
                """
            )
            conn.execute(f"CREATE INDEX IF NOT EXISTS idx_{_T.tasks}_todo_id ON {_T.tasks}(todo_id)")
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_T.sequences} (
                    name TEXT PRIMARY KEY,
                    value INTEGER NOT NULL
                )
                """
            )
            conn.executemany(
                f"INSERT OR IGNORE INTO {_T.sequences} (name, value) VALUES (?, 0)",
                [(_T.todos,), (_T.tasks,)],
            )

    def _row_to_task(self, row: sqlite3.Row) -> TaskEntity:
        return {
            "id": int(row["id"]),
            "name": str(row["name"]),
            "description": row["description"],
        }

    def _load(self, conn: sqlite3.Connection, todo_id: int) -> Optional[TodoEntity]:
        row = conn.execute(
            f"SELECT id, name, description FROM {_T.todos} WHERE id = ?", (todo_id,)
        ).fetchone()
        if row is None:
            return None
        tasks = conn.execute(
            f"SELECT id, name, description FROM {_T.tasks} WHERE todo_id = ? ORDER BY position, id",
            (todo_id,),
        ).fetchall()
        return {
            "id": int(row["id"]),
            "name": str(row["name"]),
            "description": row["description"],
            "tasks": [self._row_to_task(t) for t in tasks],
        }

    def _insert_task(self, conn: sqlite3.Connection, todo_id: int, position: int, task: TaskEntity) -> None:
        conn.execute(
            f"INSERT INTO {_T.tasks} (id, todo_id, position, name, description) VALUES (?, ?, ?, ?, ?)",
            (task["id"], todo_id, position, task["name"], task["description"]),
        )

    def create(self, data: TodoIn) -> TodoEntity:
        with self._transaction() as conn:
            todo_id = self._next_id(conn, _T.todos)
            conn.execute(
                f"INSERT INTO {_T.todos} (id, name, description) VALUES (?, ?, ?)",
                (todo_id, data.name, data.description),
            )
            tasks: List[TaskEntity] = []
            for position, t in enumerate(data.tasks):
                task: TaskEntity = {
                    "id": self._next_id(conn, _T.tasks),
                    "name": t.name,
                    "description": t.description,
                }
                self._insert_task(conn, todo_id, position, task)
                tasks.append(task)
        logger.debug("Stored ToDo %s with %d tasks", todo_id, len(tasks))
        return {"id": todo_id, "name": data.name, "description": data.description, "tasks": tasks}

    def find_all(self) -> List[TodoEntity]:
        with self._transaction(write=False) as conn:
            rows = conn.execute(f"SELECT id, name, description FROM {_T.todos}").fetchall()
            task_rows = conn.execute(
                f"SELECT id, todo_id, name, description FROM {_T.tasks} ORDER BY todo_id, position, id"
            ).fetchall()

        tasks_by_todo: Dict[int, List[TaskEntity]] = {}
        for r in task_rows:
            tasks_by_todo.setdefault(int(r["todo_id"]), []).append(self._row_to_task(r))
        return [
            {
                "id": int(r["id"]),
                "name": str(r["name"]),
                "description": r["description"],
                "tasks": tasks_by_todo.get(int(r["id"]), []),
            }
            for r in rows
        ]

    def find_by_id(self, todo_id: int) -> TodoEntity:
        if todo_id > _MAX_ROWID:
            raise RecordNotFound(todo_id)
        with self._transaction(write=False) as conn:
            todo = self._load(conn, todo_id)
        if todo is None:
            raise RecordNotFound(todo_id)
        return todo

    def update(self, todo_id: int, data: TodoIn) -> TodoEntity:
        if todo_id > _MAX_ROWID:
            raise RecordNotFound(todo_id)
        with self._transaction() as conn:
            existing = self._load(conn, todo_id)
            if existing is None:
                raise RecordNotFound(todo_id)

            result = reconcile(existing, data, lambda: self._next_id(conn, _T.tasks))
            positions = {task["id"]: i for i, task in enumerate(result.todo["tasks"])}

            conn.executemany(
                f"DELETE FROM {_T.tasks} WHERE id = ? AND todo_id = ?",
                [(task_id, todo_id) for task_id in result.deletes],
            )
            conn.executemany(
                f"UPDATE {_T.tasks} SET name = ?, description = ?, position = ? WHERE id = ? AND todo_id = ?",
                [
                    (task["name"], task["description"], positions[task["id"]], task["id"], todo_id)
                    for task in result.overwrites
                ],
            )
            for task in result.inserts:
                self._insert_task(conn, todo_id, positions[task["id"]], task)
            conn.execute(
                f"UPDATE {_T.todos} SET name = ?, description = ? WHERE id = ?",
                (data.name, data.description, todo_id),
            )
        logger.debug(
            "Reconciled ToDo %s: %d deleted, %d overwritten, %d inserted",
            todo_id,
            len(result.deletes),
            len(result.overwrites),
            len(result.inserts),
        )
        return result.todo

    def delete(self, todo_id: int) -> None:
        if todo_id > _MAX_ROWID:
            raise RecordNotFound(todo_id)
        with self._transaction() as conn:
            # Tasks go with it through ON DELETE CASCADE.
            cur = conn.execute(f"DELETE FROM {_T.todos} WHERE id = ?", (todo_id,))
            if cur.rowcount == 0:
                raise RecordNotFound(todo_id)

    def remove(self) -> None:
        with self._transaction() as conn:
            conn.execute(f"DROP TABLE IF EXISTS {_T.tasks}")
            conn.execute(f"DROP TABLE IF EXISTS {_T.todos}")
            conn.execute(f"DROP TABLE IF EXISTS {_T.sequences}")
