# personaflow/api/v1/endpoints/health.py
from fastapi import APIRouter, Depends, Response, status
from loguru import logger

from personaflow.api.v1.deps import get_persistence
from personaflow.core.exceptions import PersistenceError
from personaflow.services.persistence import PersistenceService

router = APIRouter()

@router.get("/")
async def health(persistence: PersistenceService = Depends(get_persistence)):
    """Liveness plus a round trip to the store of record."""
    try:
        await persistence.ping()
    except PersistenceError as e:
        logger.error(f"Health check failed: {e.message}")
        return Response("database unavailable", media_type="text/plain", status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response("ok", media_type="text/plain", status_code=status.HTTP_200_OK)
