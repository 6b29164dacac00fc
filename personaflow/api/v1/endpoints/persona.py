# personaflow/api/v1/endpoints/persona.py
from fastapi import APIRouter, status, Depends
from loguru import logger
from typing import List

from personaflow.api.v1.deps import get_persistence, get_resolver, to_http_error
from personaflow.core.exceptions import HierarchyError
from personaflow.schemas.dependency import DeleteResult, DependencyReport, EntityType
from personaflow.services.dependency_resolver import DependencyResolver
from personaflow.schemas.persona import PersonaCreate, PersonaInDB, PersonaUpdate
from personaflow.services.persistence import PersistenceService

router = APIRouter()


@router.post(
    "/",
    response_model=PersonaInDB,
    status_code=status.HTTP_201_CREATED,
    summary="Create Persona"
)
async def create_persona(
    persona_data: PersonaCreate,
    persistence: PersistenceService = Depends(get_persistence)
):
    """
    Creates a new persona. Color falls back to the configured default.
    """
    try:
        return await persistence.create_persona(persona_data)
    except HierarchyError as e:
        raise to_http_error(e)

@router.get(
    "/",
    response_model=List[PersonaInDB],
    summary="Retrieve All Personas"
)
async def get_all_personas(
    active_only: bool = False,
    persistence: PersistenceService = Depends(get_persistence)
):
    """
    Retrieves all personas, most recently created first.
    """
    try:
        return await persistence.list_personas(active_only=active_only)
    except HierarchyError as e:
        raise to_http_error(e)

@router.get(
    "/{persona_id}",
    response_model=PersonaInDB,
    summary="Retrieve Persona by ID"
)
async def get_persona(
    persona_id: str,
    persistence: PersistenceService = Depends(get_persistence)
):
    try:
        return await persistence.get_persona(persona_id)
    except HierarchyError as e:
        raise to_http_error(e)

@router.put(
    "/{persona_id}",
    response_model=PersonaInDB,
    summary="Update Persona by ID"
)
async def update_persona(
    persona_id: str,
    persona_update: PersonaUpdate,
    persistence: PersistenceService = Depends(get_persistence)
):
    """
    Updates the provided fields of an existing persona.
    """
    try:
        return await persistence.update_persona(persona_id, persona_update)
    except HierarchyError as e:
        raise to_http_error(e)

@router.get(
    "/{persona_id}/dependencies",
    response_model=DependencyReport,
    summary="Count Workstreams and Tasks owned by a Persona"
)
async def check_persona_dependencies(
    persona_id: str,
    resolver: DependencyResolver = Depends(get_resolver)
):
    try:
        return await resolver.resolve(EntityType.PERSONA, persona_id)
    except HierarchyError as e:
        raise to_http_error(e)

@router.delete(
    "/{persona_id}",
    response_model=DeleteResult,
    summary="Delete Persona by ID"
)
async def delete_persona(
    persona_id: str,
    acknowledge_cascade: bool = False,
    persistence: PersistenceService = Depends(get_persistence),
    resolver: DependencyResolver = Depends(get_resolver)
):
    """
    Deletes a persona. When it still owns workstreams or tasks the request is
    refused with 409 unless acknowledge_cascade=true.
    """
    try:
        report = await resolver.confirm_delete(EntityType.PERSONA, persona_id, acknowledge_cascade)
        message = await persistence.delete_persona(persona_id)
    except HierarchyError as e:
        raise to_http_error(e)

    logger.info(f"Persona {persona_id} deleted via API (cascade acknowledged: {acknowledge_cascade}).")
    return DeleteResult(
        message=message,
        removed_workstreams=report.workstream_count or 0,
        removed_tasks=report.task_count or 0,
    )
