# personaflow/api/v1/endpoints/task.py
from fastapi import APIRouter, Query, status, Depends
from typing import List, Optional

from personaflow.api.v1.deps import get_persistence, to_http_error
from personaflow.core.exceptions import HierarchyError
from personaflow.schemas.dependency import DeleteResult
from personaflow.schemas.task import TaskCounts, TaskCreate, TaskInDB, TaskStatusUpdate, TaskUpdate
from personaflow.services.persistence import PersistenceService

router = APIRouter()


@router.post(
    "/",
    response_model=TaskInDB,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task"
)
async def create_task(
    task_data: TaskCreate,
    persistence: PersistenceService = Depends(get_persistence)
):
    try:
        return await persistence.create_task(task_data)
    except HierarchyError as e:
        raise to_http_error(e)

@router.get(
    "/",
    response_model=List[TaskInDB],
    summary="Retrieve All Tasks"
)
async def get_all_tasks(
    workstream_id: Optional[str] = None,
    persistence: PersistenceService = Depends(get_persistence)
):
    try:
        return await persistence.list_tasks(workstream_id=workstream_id)
    except HierarchyError as e:
        raise to_http_error(e)

# Declared before "/{task_id}" so the literal paths win
@router.get(
    "/counts",
    response_model=TaskCounts,
    summary="Task Counts by Status"
)
async def get_task_counts_by_status(
    workstream_id: Optional[str] = None,
    persona_id: Optional[str] = None,
    persistence: PersistenceService = Depends(get_persistence)
):
    try:
        counts = await persistence.get_task_counts_by_status(workstream_id=workstream_id, persona_id=persona_id)
    except HierarchyError as e:
        raise to_http_error(e)
    return TaskCounts(counts=counts, workstream_id=workstream_id, persona_id=persona_id)

@router.get(
    "/kanban",
    response_model=List[TaskInDB],
    summary="Tasks for the Kanban Board"
)
async def get_kanban_tasks(
    workstream_id: Optional[str] = None,
    statuses: Optional[List[str]] = Query(None),
    persistence: PersistenceService = Depends(get_persistence)
):
    try:
        return await persistence.get_kanban_tasks(workstream_id=workstream_id, statuses=statuses)
    except HierarchyError as e:
        raise to_http_error(e)

@router.get(
    "/{task_id}",
    response_model=TaskInDB,
    summary="Retrieve Task by ID"
)
async def get_task(
    task_id: str,
    persistence: PersistenceService = Depends(get_persistence)
):
    try:
        return await persistence.get_task(task_id)
    except HierarchyError as e:
        raise to_http_error(e)

@router.put(
    "/{task_id}",
    response_model=TaskInDB,
    summary="Update Task by ID"
)
async def update_task(
    task_id: str,
    task_update: TaskUpdate,
    persistence: PersistenceService = Depends(get_persistence)
):
    try:
        return await persistence.update_task(task_id, task_update)
    except HierarchyError as e:
        raise to_http_error(e)

@router.patch(
    "/{task_id}/status",
    response_model=TaskInDB,
    summary="Move Task to another Status"
)
async def update_task_status(
    task_id: str,
    status_update: TaskStatusUpdate,
    persistence: PersistenceService = Depends(get_persistence)
):
    try:
        return await persistence.update_task_status(task_id, status_update.status)
    except HierarchyError as e:
        raise to_http_error(e)

@router.delete(
    "/{task_id}",
    response_model=DeleteResult,
    summary="Delete Task by ID"
)
async def delete_task(
    task_id: str,
    persistence: PersistenceService = Depends(get_persistence)
):
    """Tasks own nothing, so they delete without confirmation."""
    try:
        message = await persistence.delete_task(task_id)
    except HierarchyError as e:
        raise to_http_error(e)
    return DeleteResult(message=message, removed_tasks=1)
