# personaflow/services/persistence.py
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Iterable, List, Optional

from loguru import logger
from sqlalchemy import delete, func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from personaflow.core.config import settings
from personaflow.core.exceptions import EntityNotFoundError, HierarchyError, PersistenceError
from personaflow.core.normalizer import TASK_STATUSES, normalize_task_status
from personaflow.models.common import utcnow
from personaflow.models.persona import Persona
from personaflow.models.task import Task
from personaflow.models.workstream import Workstream
from personaflow.schemas.dependency import DependencyReport, EntityType
from personaflow.schemas.persona import PersonaCreate, PersonaInDB, PersonaUpdate
from personaflow.schemas.task import TaskCreate, TaskInDB, TaskUpdate
from personaflow.schemas.workstream import WorkstreamCreate, WorkstreamInDB, WorkstreamUpdate

# Columns that may be cleared through an update; everything else ignores None
_NULLABLE_FIELDS = {"description"}


def _changes(update) -> Dict[str, object]:
    update_data = update.model_dump(exclude_unset=True) # Only update fields that are provided
    return {key: value for key, value in update_data.items() if value is not None or key in _NULLABLE_FIELDS}


class PersistenceService:
    """
    Durable store of record for personas, workstreams and tasks.

    Every public coroutine opens its own session, so one instance can be shared
    by the hierarchy store and the HTTP endpoints. Failures of any kind surface
    as PersistenceError with a human readable message.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    @asynccontextmanager
    async def _session(self, action: str) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as db:
            try:
                yield db
            except HierarchyError:
                await db.rollback()
                raise
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(f"Failed to {action}: {e}")
                raise PersistenceError(f"Failed to {action}: {e}") from e

    # --- Personas ---

    async def list_personas(self, active_only: bool = False) -> List[PersonaInDB]:
        async with self._session("load personas") as db:
            query = select(Persona).order_by(Persona.created_at.desc())
            if active_only:
                query = query.where(Persona.is_active.is_(True))
            result = await db.execute(query)
            return [PersonaInDB.model_validate(p) for p in result.scalars().all()]

    async def get_persona(self, persona_id: str) -> PersonaInDB:
        async with self._session("load persona") as db:
            return PersonaInDB.model_validate(await self._require_persona(db, persona_id))

    async def create_persona(self, persona_data: PersonaCreate) -> PersonaInDB:
        async with self._session("create persona") as db:
            values = persona_data.model_dump()
            values["color"] = values.get("color") or settings.DEFAULT_PERSONA_COLOR
            db_persona = Persona(**values)
            db.add(db_persona)
            await db.commit()
            await db.refresh(db_persona)
            logger.info(f"Created persona: {db_persona.name} with ID: {db_persona.id} in the database.")
            return PersonaInDB.model_validate(db_persona)

    async def update_persona(self, persona_id: str, persona_update: PersonaUpdate) -> PersonaInDB:
        async with self._session("update persona") as db:
            db_persona = await self._require_persona(db, persona_id)
            for key, value in _changes(persona_update).items():
                setattr(db_persona, key, value)
            db_persona.updated_at = utcnow()
            await db.commit()
            await db.refresh(db_persona)
            logger.info(f"Updated persona with ID: {persona_id} in the database.")
            return PersonaInDB.model_validate(db_persona)

    async def delete_persona(self, persona_id: str) -> str:
        """Deletes the persona together with its workstreams and their tasks."""
        async with self._session("delete persona") as db:
            db_persona = await self._require_persona(db, persona_id)
            name = db_persona.name
            workstream_ids = select(Workstream.id).where(Workstream.persona_id == persona_id)
            await db.execute(delete(Task).where(Task.workstream_id.in_(workstream_ids)))
            await db.execute(delete(Workstream).where(Workstream.persona_id == persona_id))
            await db.delete(db_persona)
            await db.commit()
            logger.info(f"Deleted persona with ID: {persona_id} from the database.")
            return f"Persona '{name}' deleted successfully"

    async def check_persona_dependencies(self, persona_id: str) -> DependencyReport:
        async with self._session("check persona dependencies") as db:
            await self._require_persona(db, persona_id)
            workstream_count = await db.scalar(
                select(func.count(Workstream.id)).where(Workstream.persona_id == persona_id)
            )
            task_count = await db.scalar(
                select(func.count(Task.id))
                .join(Workstream, Task.workstream_id == Workstream.id)
                .where(Workstream.persona_id == persona_id)
            )
            return DependencyReport(
                entity_type=EntityType.PERSONA,
                entity_id=persona_id,
                has_dependencies=bool(workstream_count or task_count),
                workstream_count=workstream_count or 0,
                task_count=task_count or 0,
            )

    # --- Workstreams ---

    def _workstream_query(self):
        return (
            select(Workstream, Persona.name, Persona.color)
            .join(Persona, Workstream.persona_id == Persona.id)
            .order_by(Workstream.created_at.desc())
        )

    @staticmethod
    def _to_workstream(row) -> WorkstreamInDB:
        db_workstream, persona_name, persona_color = row
        return WorkstreamInDB.model_validate(db_workstream).model_copy(
            update={"persona_name": persona_name, "persona_color": persona_color}
        )

    async def _load_workstream(self, db: AsyncSession, workstream_id: str) -> WorkstreamInDB:
        result = await db.execute(self._workstream_query().where(Workstream.id == workstream_id))
        row = result.one_or_none()
        if row is None:
            raise EntityNotFoundError("Workstream not found")
        return self._to_workstream(row)

    async def list_workstreams(self, persona_id: Optional[str] = None) -> List[WorkstreamInDB]:
        async with self._session("load workstreams") as db:
            query = self._workstream_query()
            if persona_id is not None:
                query = query.where(Workstream.persona_id == persona_id)
            result = await db.execute(query)
            return [self._to_workstream(row) for row in result.all()]

    async def get_workstream(self, workstream_id: str) -> WorkstreamInDB:
        async with self._session("load workstream") as db:
            return await self._load_workstream(db, workstream_id)

    async def create_workstream(self, workstream_data: WorkstreamCreate) -> WorkstreamInDB:
        async with self._session("create workstream") as db:
            await self._require_persona(db, workstream_data.persona_id)
            db_workstream = Workstream(**workstream_data.model_dump())
            db.add(db_workstream)
            await db.commit()
            logger.info(f"Created workstream: {db_workstream.name} with ID: {db_workstream.id} in the database.")
            return await self._load_workstream(db, db_workstream.id)

    async def update_workstream(self, workstream_id: str, workstream_update: WorkstreamUpdate) -> WorkstreamInDB:
        async with self._session("update workstream") as db:
            db_workstream = await self._require(db, Workstream, workstream_id)
            for key, value in _changes(workstream_update).items():
                setattr(db_workstream, key, value)
            db_workstream.updated_at = utcnow()
            await db.commit()
            logger.info(f"Updated workstream with ID: {workstream_id} in the database.")
            return await self._load_workstream(db, workstream_id)

    async def delete_workstream(self, workstream_id: str) -> str:
        """Deletes the workstream together with its tasks."""
        async with self._session("delete workstream") as db:
            db_workstream = await self._require(db, Workstream, workstream_id)
            name = db_workstream.name
            await db.execute(delete(Task).where(Task.workstream_id == workstream_id))
            await db.delete(db_workstream)
            await db.commit()
            logger.info(f"Deleted workstream with ID: {workstream_id} from the database.")
            return f"Workstream '{name}' deleted successfully"

    async def check_workstream_dependencies(self, workstream_id: str) -> DependencyReport:
        async with self._session("check workstream dependencies") as db:
            await self._require(db, Workstream, workstream_id)
            task_count = await db.scalar(
                select(func.count(Task.id)).where(Task.workstream_id == workstream_id)
            )
            return DependencyReport(
                entity_type=EntityType.WORKSTREAM,
                entity_id=workstream_id,
                has_dependencies=bool(task_count),
                task_count=task_count or 0,
            )

    # --- Tasks ---

    def _task_query(self):
        return (
            select(Task, Workstream.name, Workstream.persona_id, Persona.color)
            .join(Workstream, Task.workstream_id == Workstream.id)
            .join(Persona, Workstream.persona_id == Persona.id)
            .order_by(Task.created_at.desc())
        )

    @staticmethod
    def _to_task(row) -> TaskInDB:
        db_task, workstream_name, persona_id, persona_color = row
        return TaskInDB.model_validate(db_task).model_copy(
            update={"workstream_name": workstream_name, "persona_id": persona_id, "persona_color": persona_color}
        )

    async def _load_task(self, db: AsyncSession, task_id: str) -> TaskInDB:
        result = await db.execute(self._task_query().where(Task.id == task_id))
        row = result.one_or_none()
        if row is None:
            raise EntityNotFoundError("Task not found")
        return self._to_task(row)

    async def list_tasks(self, workstream_id: Optional[str] = None) -> List[TaskInDB]:
        async with self._session("load tasks") as db:
            query = self._task_query()
            if workstream_id is not None:
                query = query.where(Task.workstream_id == workstream_id)
            result = await db.execute(query)
            return [self._to_task(row) for row in result.all()]

    async def get_task(self, task_id: str) -> TaskInDB:
        async with self._session("load task") as db:
            return await self._load_task(db, task_id)

    async def create_task(self, task_data: TaskCreate) -> TaskInDB:
        async with self._session("create task") as db:
            await self._require(db, Workstream, task_data.workstream_id)
            db_task = Task(**task_data.model_dump())
            db.add(db_task)
            await db.commit()
            logger.info(f"Created task: {db_task.title} with ID: {db_task.id} in the database.")
            return await self._load_task(db, db_task.id)

    async def update_task(self, task_id: str, task_update: TaskUpdate) -> TaskInDB:
        async with self._session("update task") as db:
            db_task = await self._require(db, Task, task_id)
            for key, value in _changes(task_update).items():
                setattr(db_task, key, value)
            db_task.updated_at = utcnow()
            await db.commit()
            logger.info(f"Updated task with ID: {task_id} in the database.")
            return await self._load_task(db, task_id)

    async def update_task_status(self, task_id: str, status: str) -> TaskInDB:
        async with self._session("update task status") as db:
            db_task = await self._require(db, Task, task_id)
            db_task.status = normalize_task_status(status)
            db_task.updated_at = utcnow()
            await db.commit()
            logger.info(f"Task {task_id} moved to status '{db_task.status}'.")
            return await self._load_task(db, task_id)

    async def delete_task(self, task_id: str) -> str:
        async with self._session("delete task") as db:
            db_task = await self._require(db, Task, task_id)
            title = db_task.title
            await db.delete(db_task)
            await db.commit()
            logger.info(f"Deleted task with ID: {task_id} from the database.")
            return f"Task '{title}' deleted successfully"

    async def get_task_counts_by_status(
        self, workstream_id: Optional[str] = None, persona_id: Optional[str] = None
    ) -> Dict[str, int]:
        """
        Per-status totals, zero-filled for every known status. Raw stored values
        are normalized before being counted, so legacy variants of one status
        land in the same bucket.
        """
        async with self._session("load task counts") as db:
            query = select(Task.status, func.count(Task.id)).group_by(Task.status)
            if workstream_id is not None:
                query = query.where(Task.workstream_id == workstream_id)
            if persona_id is not None:
                query = query.join(Workstream, Task.workstream_id == Workstream.id).where(
                    Workstream.persona_id == persona_id
                )
            result = await db.execute(query)
            counts = {status: 0 for status in TASK_STATUSES}
            for raw_status, count in result.all():
                counts[normalize_task_status(raw_status)] += count
            return counts

    async def get_kanban_tasks(
        self, workstream_id: Optional[str] = None, statuses: Optional[Iterable[str]] = None
    ) -> List[TaskInDB]:
        tasks = await self.list_tasks(workstream_id=workstream_id)
        if statuses is None:
            return tasks
        wanted = {normalize_task_status(status) for status in statuses}
        return [task for task in tasks if task.status in wanted]

    async def ping(self) -> None:
        async with self._session("reach database") as db:
            await db.execute(text("SELECT 1"))

    # --- Lookups ---

    async def _require(self, db: AsyncSession, model, entity_id: str):
        instance = await db.get(model, entity_id) # AsyncSession.get() is a direct fetch by PK
        if instance is None:
            raise EntityNotFoundError(f"{model.__name__} not found")
        return instance

    async def _require_persona(self, db: AsyncSession, persona_id: str) -> Persona:
        return await self._require(db, Persona, persona_id)
