from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Request, status

from ..repositories import Repository
from ..schemas import MessageOut, TaskCreate, TaskOut, TaskUpdate

router = APIRouter(
    prefix="/api/tasks",
    tags=["tasks"],
)

TASK_DELETED = "Task deleted"


def get_repo(request: Request) -> Repository:
    """
    Dependency returning the process-wide repository created at startup.
    """
    return request.app.state.repository


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[TaskOut],
    summary="List Tasks",
    description="Return every task in the store's natural order.",
)
def list_tasks(repo: Repository = Depends(get_repo)) -> List[TaskOut]:
    return [TaskOut(**t) for t in repo.list_all()]  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TaskOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="Create a new task and return the stored record with id and timestamps.",
    responses={
        201: {"description": "Task created successfully"},
        422: {"description": "Validation error"},
    },
)
def create_task(payload: TaskCreate, repo: Repository = Depends(get_repo)) -> TaskOut:
    """
    Create a new Task. Fields not sent take their defaults (priority Low,
    isCompleted false).
    """
    created = repo.create(payload)
    return TaskOut(**created)  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.put(
    "/{task_id}",
    response_model=Optional[TaskOut],
    summary="Update Task",
    description=(
        "Overwrite the fields sent in the body and refresh updatedAt. "
        "Answers 200 with null when no task has the given id."
    ),
    responses={
        200: {"description": "Updated task, or null if the id is unknown"},
        422: {"description": "Validation error"},
    },
)
def update_task(task_id: str, payload: TaskUpdate, repo: Repository = Depends(get_repo)) -> Optional[TaskOut]:
    updated = repo.update_by_id(task_id, payload)
    if updated is None:
        return None
    return TaskOut(**updated)  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.delete(
    "/{task_id}",
    response_model=MessageOut,
    summary="Delete Task",
    description="Delete a task by id. Unknown ids are acknowledged the same way.",
)
def delete_task(task_id: str, repo: Repository = Depends(get_repo)) -> MessageOut:
    """
    Hard delete; always answers with the deletion message.
    """
    repo.delete_by_id(task_id)
    return MessageOut(message=TASK_DELETED)
