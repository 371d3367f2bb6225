from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import MAX_ID, TaskEntity, TodoEntity


def _zero_if_missing(value: Any) -> Any:
    """Treat an explicit null id the same way as an absent one: 0 means new."""
    return 0 if value is None else value


def _none_if_empty(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return None
    return value


# PUBLIC_INTERFACE
class TaskIn(BaseModel):
    """
    Schema for a sub-task inside an incoming ToDo payload.

    An id of 0 (or no id at all) marks a new task. A non-zero id claims an
    existing task of the ToDo, whose name and description are overwritten.
    """

    id: int = Field(default=0, ge=0, le=MAX_ID, description="Id of an existing task, 0 for a new one")
    name: str = Field(default="", description="Name of the task")
    description: Optional[str] = Field(default=None, description="Optional detailed description")

    @field_validator("id", mode="before")
    @classmethod
    def normalize_id(cls, v: Any) -> Any:
        return _zero_if_missing(v)

    @field_validator("description")
    @classmethod
    def normalize_description(cls, v: Optional[str]) -> Optional[str]:
        """Store an empty description as no description."""
        return _none_if_empty(v)


# PUBLIC_INTERFACE
class TodoIn(BaseModel):
    """
    Schema for creating or replacing a ToDo item.

    The ToDo id is advisory and ignored; the target id of an update comes from
    the URL. Names are deliberately not constrained here so that empty names
    reach the service layer, which rejects them with a ValidationError.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Groceries",
                "description": "Weekly shopping",
                "tasks": [
                    {"id": 1, "name": "Milk"},
                    {"name": "Bread", "description": "Whole grain"},
                ],
            }
        }
    )

    id: int = Field(default=0, ge=0, le=MAX_ID, description="Ignored on input")
    name: str = Field(default="", description="Name of the ToDo item")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    tasks: List[TaskIn] = Field(default_factory=list, description="Desired sub-tasks, in display order")

    @field_validator("id", mode="before")
    @classmethod
    def normalize_id(cls, v: Any) -> Any:
        return _zero_if_missing(v)

    @field_validator("description")
    @classmethod
    def normalize_description(cls, v: Optional[str]) -> Optional[str]:
        """Store an empty description as no description."""
        return _none_if_empty(v)

    @field_validator("tasks", mode="before")
    @classmethod
    def normalize_tasks(cls, v: Any) -> Any:
        """A null task list is the same as an empty one."""
        return [] if v is None else v


# PUBLIC_INTERFACE
class TaskOut(BaseModel):
    """Schema returned by the API for a sub-task."""

    id: int = Field(..., description="Unique identifier of the task")
    name: str = Field(..., description="Name of the task")
    description: Optional[str] = Field(default=None, description="Optional detailed description")


# PUBLIC_INTERFACE
class TodoOut(BaseModel):
    """
    Schema returned by the API for a ToDo item.

    Routes serialize it with ``response_model_exclude_none`` so that an empty
    description or an empty task list is omitted from the JSON body.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 1,
                "name": "Groceries",
                "description": "Weekly shopping",
                "tasks": [
                    {"id": 1, "name": "Milk"},
                    {"id": 3, "name": "Bread", "description": "Whole grain"},
                ],
            }
        }
    )

    id: int = Field(..., description="Unique identifier of the ToDo item")
    name: str = Field(..., description="Name of the ToDo item")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    tasks: Optional[List[TaskOut]] = Field(default=None, description="Sub-tasks; omitted when empty")

    @classmethod
    def from_entity(cls, entity: TodoEntity) -> "TodoOut":
        """Build the wire representation of a stored ToDo."""
        tasks: List[TaskEntity] = entity["tasks"]
        return cls(
            id=entity["id"],
            name=entity["name"],
            description=_none_if_empty(entity["description"]),
            tasks=[
                TaskOut(id=t["id"], name=t["name"], description=_none_if_empty(t["description"]))
                for t in tasks
            ]
            or None,
        )
