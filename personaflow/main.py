from fastapi import FastAPI
from contextlib import asynccontextmanager
from loguru import logger
from personaflow.api.v1.router import api_router
from personaflow.core.database import init_db, dispose_db
from personaflow.core.logging import configure_logging

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Handles startup and shutdown events for the FastAPI application.
    Opens and closes the database engine backing the persistence service.
    """
    configure_logging()
    logger.info("Personaflow service starting up (Lifespan event)...")

    await init_db()
    logger.info("Database startup initialization complete.")

    yield # This line separates startup from shutdown

    logger.info("Personaflow service shutting down (Lifespan event)...")
    await dispose_db()


app=FastAPI(
    title="Personaflow",
    description="Persona, workstream and task hierarchy service.",
    version="1.0.0",
    lifespan=lifespan
)

app.include_router(api_router,prefix="/v1")
