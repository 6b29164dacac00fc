# personaflow/api/v1/deps.py
from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import async_sessionmaker

from personaflow.core.database import get_session_factory
from personaflow.core.exceptions import (
    DependencyBlockedError,
    EntityNotFoundError,
    EntityValidationError,
    HierarchyError,
)
from personaflow.services.dependency_resolver import DependencyResolver
from personaflow.services.persistence import PersistenceService


async def get_persistence(
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> PersistenceService:
    return PersistenceService(session_factory)


def get_resolver(persistence: PersistenceService = Depends(get_persistence)) -> DependencyResolver:
    return DependencyResolver(persistence)


def to_http_error(error: HierarchyError) -> HTTPException:
    """Maps core failures onto HTTP status codes."""
    if isinstance(error, EntityNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=error.message)
    if isinstance(error, EntityValidationError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=error.message)
    if isinstance(error, DependencyBlockedError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": error.message, "dependencies": error.report.model_dump(mode="json")},
        )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=error.message)
