# personaflow/api/v1/router.py
from fastapi import APIRouter
from personaflow.api.v1.endpoints import persona, workstream, task
from personaflow.api.v1.endpoints import health as health_endpoint


api_router = APIRouter()

api_router.include_router(persona.router, prefix="/personas", tags=["Personas"])
api_router.include_router(workstream.router, prefix="/workstreams", tags=["Workstreams"])
api_router.include_router(task.router, prefix="/tasks", tags=["Tasks"])

api_router.include_router(health_endpoint.router, prefix="/health", tags=["Health"])
