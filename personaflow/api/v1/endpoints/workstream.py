# personaflow/api/v1/endpoints/workstream.py
from fastapi import APIRouter, status, Depends
from loguru import logger
from typing import List, Optional

from personaflow.api.v1.deps import get_persistence, get_resolver, to_http_error
from personaflow.core.exceptions import HierarchyError
from personaflow.schemas.dependency import DeleteResult, DependencyReport, EntityType
from personaflow.services.dependency_resolver import DependencyResolver
from personaflow.schemas.workstream import WorkstreamCreate, WorkstreamInDB, WorkstreamUpdate
from personaflow.services.persistence import PersistenceService

router = APIRouter()


@router.post(
    "/",
    response_model=WorkstreamInDB,
    status_code=status.HTTP_201_CREATED,
    summary="Create Workstream"
)
async def create_workstream(
    workstream_data: WorkstreamCreate,
    persistence: PersistenceService = Depends(get_persistence)
):
    """
    Creates a workstream under an existing persona.
    """
    try:
        return await persistence.create_workstream(workstream_data)
    except HierarchyError as e:
        raise to_http_error(e)

@router.get(
    "/",
    response_model=List[WorkstreamInDB],
    summary="Retrieve All Workstreams"
)
async def get_all_workstreams(
    persona_id: Optional[str] = None,
    persistence: PersistenceService = Depends(get_persistence)
):
    try:
        return await persistence.list_workstreams(persona_id=persona_id)
    except HierarchyError as e:
        raise to_http_error(e)

@router.get(
    "/{workstream_id}",
    response_model=WorkstreamInDB,
    summary="Retrieve Workstream by ID"
)
async def get_workstream(
    workstream_id: str,
    persistence: PersistenceService = Depends(get_persistence)
):
    try:
        return await persistence.get_workstream(workstream_id)
    except HierarchyError as e:
        raise to_http_error(e)

@router.put(
    "/{workstream_id}",
    response_model=WorkstreamInDB,
    summary="Update Workstream by ID"
)
async def update_workstream(
    workstream_id: str,
    workstream_update: WorkstreamUpdate,
    persistence: PersistenceService = Depends(get_persistence)
):
    try:
        return await persistence.update_workstream(workstream_id, workstream_update)
    except HierarchyError as e:
        raise to_http_error(e)

@router.get(
    "/{workstream_id}/dependencies",
    response_model=DependencyReport,
    summary="Count Tasks owned by a Workstream"
)
async def check_workstream_dependencies(
    workstream_id: str,
    resolver: DependencyResolver = Depends(get_resolver)
):
    try:
        return await resolver.resolve(EntityType.WORKSTREAM, workstream_id)
    except HierarchyError as e:
        raise to_http_error(e)

@router.delete(
    "/{workstream_id}",
    response_model=DeleteResult,
    summary="Delete Workstream by ID"
)
async def delete_workstream(
    workstream_id: str,
    acknowledge_cascade: bool = False,
    persistence: PersistenceService = Depends(get_persistence),
    resolver: DependencyResolver = Depends(get_resolver)
):
    """
    Deletes a workstream. Refused with 409 while it owns tasks unless
    acknowledge_cascade=true.
    """
    try:
        report = await resolver.confirm_delete(EntityType.WORKSTREAM, workstream_id, acknowledge_cascade)
        message = await persistence.delete_workstream(workstream_id)
    except HierarchyError as e:
        raise to_http_error(e)

    logger.info(f"Workstream {workstream_id} deleted via API (cascade acknowledged: {acknowledge_cascade}).")
    return DeleteResult(message=message, removed_tasks=report.task_count or 0)
