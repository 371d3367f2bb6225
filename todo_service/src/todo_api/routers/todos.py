from __future__ import annotations

from typing import Annotated, List

from fastapi import APIRouter, Depends, Path, status

from ..models import MAX_ID
from ..repositories import Repository, get_repository
from ..schemas import TodoIn, TodoOut
from ..service import TodoService

router = APIRouter(
    prefix="/todos",
    tags=["todos"],
)

TodoId = Annotated[int, Path(ge=0, le=MAX_ID, description="Id of the ToDo item")]


def get_service(repo: Repository = Depends(get_repository)) -> TodoService:
    """
    Dependency providing the service bound to the configured repository.
    """
    return TodoService(repo)


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=TodoOut,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    summary="Create ToDo",
    description="Create a new ToDo item with its tasks. Ids in the payload are ignored.",
    responses={
        201: {"description": "ToDo created successfully"},
        422: {"description": "Validation error"},
    },
)
def create_todo(payload: TodoIn, service: TodoService = Depends(get_service)) -> TodoOut:
    """
    Create a new ToDo.
    """
    return TodoOut.from_entity(service.create(payload))


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=List[TodoOut],
    response_model_exclude_none=True,
    summary="List ToDos",
    description="List all ToDo items with their tasks. The order is unspecified.",
)
def list_todos(service: TodoService = Depends(get_service)) -> List[TodoOut]:
    """
    List all ToDos.
    """
    return [TodoOut.from_entity(t) for t in service.find_all()]


# PUBLIC_INTERFACE
@router.get(
    "/{todo_id}",
    response_model=TodoOut,
    response_model_exclude_none=True,
    summary="Get ToDo",
    description="Get a single ToDo item by ID.",
    responses={
        200: {"description": "ToDo found"},
        404: {"description": "ToDo not found"},
    },
)
def get_todo(todo_id: TodoId, service: TodoService = Depends(get_service)) -> TodoOut:
    """
    Retrieve a single ToDo item by its ID.
    """
    return TodoOut.from_entity(service.find_by_id(todo_id))


# PUBLIC_INTERFACE
@router.put(
    "/{todo_id}",
    response_model=TodoOut,
    response_model_exclude_none=True,
    summary="Replace ToDo",
    description=(
        "Replace an existing ToDo item. Tasks with an id keep it and are overwritten, "
        "tasks without an id are created, and stored tasks left out of the payload are deleted."
    ),
    responses={
        200: {"description": "ToDo updated"},
        404: {"description": "ToDo not found"},
        422: {"description": "Validation error"},
    },
)
def put_todo(todo_id: TodoId, payload: TodoIn, service: TodoService = Depends(get_service)) -> TodoOut:
    """
    Full update (replace) of a ToDo item and reconciliation of its tasks.
    """
    return TodoOut.from_entity(service.update(todo_id, payload))


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete ToDo",
    description="Delete a ToDo item by ID along with all of its tasks.",
    responses={
        204: {"description": "ToDo deleted"},
        404: {"description": "ToDo not found"},
    },
)
def delete_todo(todo_id: TodoId, service: TodoService = Depends(get_service)) -> None:
    """
    Delete a ToDo. Returns 204 on success, 404 if not found.
    """
    service.delete(todo_id)
    return None
