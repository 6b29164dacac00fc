# personaflow/services/hierarchy_store.py
import functools
import itertools
from typing import Dict, List, Optional, Sequence, TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError

from personaflow.core.exceptions import EntityValidationError, HierarchyError
from personaflow.core.workflow import WorkflowState
from personaflow.schemas.dependency import DeleteResult, DependencyReport, EntityType
from personaflow.schemas.persona import PersonaCreate, PersonaInDB, PersonaUpdate
from personaflow.schemas.task import TaskCreate, TaskInDB, TaskUpdate
from personaflow.schemas.workstream import WorkstreamCreate, WorkstreamInDB, WorkstreamUpdate
from personaflow.services.dependency_resolver import DependencyResolver
from personaflow.services.persistence import PersistenceService

WORKFLOWS = ("personas", "workstreams", "tasks", "delete")

EntityT = TypeVar("EntityT", PersonaInDB, WorkstreamInDB, TaskInDB)
SchemaT = TypeVar("SchemaT", bound=BaseModel)


def tracked(workflow: str):
    """Record the outcome of a store operation in ``self.states[workflow]``."""
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            self.states[workflow] = WorkflowState.loading()
            try:
                result = await func(self, *args, **kwargs)
            except HierarchyError as e:
                self.states[workflow] = WorkflowState.error(e.message)
                raise
            self.states[workflow] = WorkflowState.loaded(result)
            return result
        return wrapper
    return decorator


def _build(schema: type[SchemaT], **values) -> SchemaT:
    try:
        return schema(**values)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"])
        raise EntityValidationError(f"Invalid {field}: {first['msg']}") from e


def _require_text(value: Optional[str], message: str) -> str:
    if value is None or not value.strip():
        raise EntityValidationError(message)
    return value.strip()


def _clean_description(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def _index_of(collection: Sequence[EntityT], entity_id: str) -> Optional[int]:
    for index, entity in enumerate(collection):
        if entity.id == entity_id:
            return index
    return None


class HierarchyStore:
    """
    Authoritative in-memory copies of personas, workstreams and tasks.

    Local collections change only after the persistence service confirms a
    call. Collections are ordered most-recent-first: creates prepend, updates
    replace in place, deletes remove (cascading to children explicitly).
    """

    def __init__(self, persistence: PersistenceService, resolver: Optional[DependencyResolver] = None):
        self.persistence = persistence
        self.resolver = resolver or DependencyResolver(persistence)
        self.personas: List[PersonaInDB] = []
        self.workstreams: List[WorkstreamInDB] = []
        self.tasks: List[TaskInDB] = []
        self.states: Dict[str, WorkflowState] = {name: WorkflowState.idle() for name in WORKFLOWS}
        self._sequence = itertools.count(1)
        self._latest: Dict[str, int] = {}

    # --- Request sequencing ---

    def issue(self, entity_id: str) -> int:
        """Take a sequence number for a mutation of ``entity_id``."""
        ticket = next(self._sequence)
        self._latest[entity_id] = ticket
        return ticket

    def is_current(self, entity_id: str, ticket: int) -> bool:
        return self._latest.get(entity_id) == ticket

    # --- Loading ---

    @tracked("personas")
    async def load_personas(self) -> List[PersonaInDB]:
        self.personas[:] = await self.persistence.list_personas()
        return self.personas

    @tracked("workstreams")
    async def load_workstreams(self) -> List[WorkstreamInDB]:
        self.workstreams[:] = await self.persistence.list_workstreams()
        return self.workstreams

    @tracked("tasks")
    async def load_tasks(self) -> List[TaskInDB]:
        self.tasks[:] = await self.persistence.list_tasks()
        return self.tasks

    async def load_all(self) -> None:
        await self.load_personas()
        await self.load_workstreams()
        await self.load_tasks()
        logger.info(
            f"Loaded {len(self.personas)} personas, {len(self.workstreams)} workstreams, {len(self.tasks)} tasks."
        )

    # --- Lookups ---

    def get_persona(self, persona_id: str) -> Optional[PersonaInDB]:
        index = _index_of(self.personas, persona_id)
        return None if index is None else self.personas[index]

    def get_workstream(self, workstream_id: str) -> Optional[WorkstreamInDB]:
        index = _index_of(self.workstreams, workstream_id)
        return None if index is None else self.workstreams[index]

    def get_task(self, task_id: str) -> Optional[TaskInDB]:
        index = _index_of(self.tasks, task_id)
        return None if index is None else self.tasks[index]

    def active_personas(self) -> List[PersonaInDB]:
        return [persona for persona in self.personas if persona.is_active]

    def workstreams_for(self, persona_id: str) -> List[WorkstreamInDB]:
        return [workstream for workstream in self.workstreams if workstream.persona_id == persona_id]

    def tasks_for(self, workstream_id: str) -> List[TaskInDB]:
        return [task for task in self.tasks if task.workstream_id == workstream_id]

    # --- Personas ---

    @tracked("personas")
    async def create_persona(
        self, name: str, description: Optional[str] = None, color: Optional[str] = None, is_active: bool = True
    ) -> PersonaInDB:
        persona_data = _build(
            PersonaCreate,
            name=_require_text(name, "Persona name is required"),
            description=_clean_description(description),
            color=color,
            is_active=is_active,
        )
        created = await self.persistence.create_persona(persona_data)
        self.personas.insert(0, created)
        return created

    @tracked("personas")
    async def update_persona(self, persona_id: str, **changes) -> PersonaInDB:
        if "name" in changes:
            changes["name"] = _require_text(changes["name"], "Persona name is required")
        if "description" in changes:
            changes["description"] = _clean_description(changes["description"])
        persona_update = _build(PersonaUpdate, **changes)

        ticket = self.issue(persona_id)
        updated = await self.persistence.update_persona(persona_id, persona_update)
        if not self.is_current(persona_id, ticket):
            return self._discard_stale("persona", persona_id, updated, self.get_persona(persona_id))
        if self._replace(self.personas, updated):
            self._refresh_persona_fields(updated)
        return updated

    @tracked("delete")
    async def delete_persona(self, persona_id: str, acknowledge_cascade: bool = False) -> DeleteResult:
        report = await self.resolver.confirm_delete(EntityType.PERSONA, persona_id, acknowledge_cascade)

        self.issue(persona_id)
        message = await self.persistence.delete_persona(persona_id)

        workstream_ids = {w.id for w in self.workstreams if w.persona_id == persona_id}
        removed_tasks = self._remove_tasks(lambda task: task.workstream_id in workstream_ids)
        self.workstreams[:] = [w for w in self.workstreams if w.id not in workstream_ids]
        self.personas[:] = [p for p in self.personas if p.id != persona_id]

        result = DeleteResult(message=message, removed_workstreams=len(workstream_ids), removed_tasks=removed_tasks)
        await self._reconcile(report, result)
        return result

    # --- Workstreams ---

    @tracked("workstreams")
    async def create_workstream(
        self, persona_id: Optional[str], name: str, description: Optional[str] = None, status: str = "planning"
    ) -> WorkstreamInDB:
        name = _require_text(name, "Workstream name is required")
        if not persona_id:
            raise EntityValidationError("Please select a persona")
        persona = self.get_persona(persona_id)
        if persona is not None and not persona.is_active:
            raise EntityValidationError(f"Persona '{persona.name}' is inactive")

        workstream_data = _build(
            WorkstreamCreate,
            persona_id=persona_id,
            name=name,
            description=_clean_description(description),
            status=status,
        )
        created = await self.persistence.create_workstream(workstream_data)
        self.workstreams.insert(0, created)
        return created

    @tracked("workstreams")
    async def update_workstream(self, workstream_id: str, **changes) -> WorkstreamInDB:
        if "name" in changes:
            changes["name"] = _require_text(changes["name"], "Workstream name is required")
        if "description" in changes:
            changes["description"] = _clean_description(changes["description"])
        workstream_update = _build(WorkstreamUpdate, **changes)

        ticket = self.issue(workstream_id)
        updated = await self.persistence.update_workstream(workstream_id, workstream_update)
        if not self.is_current(workstream_id, ticket):
            return self._discard_stale("workstream", workstream_id, updated, self.get_workstream(workstream_id))
        if self._replace(self.workstreams, updated):
            self.tasks[:] = [
                task.model_copy(update={"workstream_name": updated.name}) if task.workstream_id == workstream_id else task
                for task in self.tasks
            ]
        return updated

    @tracked("delete")
    async def delete_workstream(self, workstream_id: str, acknowledge_cascade: bool = False) -> DeleteResult:
        report = await self.resolver.confirm_delete(EntityType.WORKSTREAM, workstream_id, acknowledge_cascade)

        self.issue(workstream_id)
        message = await self.persistence.delete_workstream(workstream_id)

        removed_tasks = self._remove_tasks(lambda task: task.workstream_id == workstream_id)
        self.workstreams[:] = [w for w in self.workstreams if w.id != workstream_id]

        result = DeleteResult(message=message, removed_tasks=removed_tasks)
        await self._reconcile(report, result)
        return result

    # --- Tasks ---

    @tracked("tasks")
    async def create_task(
        self,
        workstream_id: Optional[str],
        title: str,
        description: Optional[str] = None,
        status: str = "todo",
        priority: str = "medium",
    ) -> TaskInDB:
        if not workstream_id or title is None or not title.strip():
            raise EntityValidationError("Task title and workstream are required.")

        task_data = _build(
            TaskCreate,
            workstream_id=workstream_id,
            title=title.strip(),
            description=_clean_description(description),
            status=status,
            priority=priority,
        )
        created = await self.persistence.create_task(task_data)
        self.tasks.insert(0, created)
        return created

    @tracked("tasks")
    async def update_task(self, task_id: str, **changes) -> TaskInDB:
        if "title" in changes:
            changes["title"] = _require_text(changes["title"], "Task title is required.")
        if "description" in changes:
            changes["description"] = _clean_description(changes["description"])
        task_update = _build(TaskUpdate, **changes)

        ticket = self.issue(task_id)
        updated = await self.persistence.update_task(task_id, task_update)
        if not self.is_current(task_id, ticket):
            return self._discard_stale("task", task_id, updated, self.get_task(task_id))
        self._replace(self.tasks, updated)
        return updated

    @tracked("delete")
    async def delete_task(self, task_id: str) -> DeleteResult:
        self.issue(task_id)
        message = await self.persistence.delete_task(task_id)
        removed = self._remove_tasks(lambda task: task.id == task_id)
        return DeleteResult(message=message, removed_tasks=removed)

    async def dependencies_for(self, entity_type: EntityType, entity_id: str) -> DependencyReport:
        """Dependency check shown before a delete is confirmed."""
        return await self.resolver.resolve(entity_type, entity_id)

    # --- Local task edits used by the transition controller ---

    def set_task_status(self, task_id: str, status: str) -> Optional[TaskInDB]:
        """Overwrite the local status of a task; returns the copy it replaced."""
        index = _index_of(self.tasks, task_id)
        if index is None:
            return None
        previous = self.tasks[index]
        self.tasks[index] = previous.model_copy(update={"status": status})
        return previous

    def apply_task(self, task: TaskInDB) -> bool:
        return self._replace(self.tasks, task)

    # --- Internals ---

    async def _reconcile(self, report: DependencyReport, result: DeleteResult) -> None:
        expected_workstreams = report.workstream_count or 0
        expected_tasks = report.task_count or 0
        if result.removed_workstreams == expected_workstreams and result.removed_tasks == expected_tasks:
            return
        logger.warning(
            f"Local cascade for {report.entity_type.value} {report.entity_id} removed "
            f"{result.removed_workstreams} workstreams/{result.removed_tasks} tasks, backend reported "
            f"{expected_workstreams}/{expected_tasks}. Reloading."
        )
        await self.load_all()

    def _remove_tasks(self, predicate) -> int:
        before = len(self.tasks)
        self.tasks[:] = [task for task in self.tasks if not predicate(task)]
        return before - len(self.tasks)

    def _replace(self, collection: List[EntityT], entity: EntityT) -> bool:
        index = _index_of(collection, entity.id)
        if index is None:
            # Removed locally while the call was in flight; do not resurrect it
            return False
        collection[index] = entity
        return True

    def _refresh_persona_fields(self, persona: PersonaInDB) -> None:
        workstream_ids = set()
        for index, workstream in enumerate(self.workstreams):
            if workstream.persona_id == persona.id:
                workstream_ids.add(workstream.id)
                self.workstreams[index] = workstream.model_copy(
                    update={"persona_name": persona.name, "persona_color": persona.color}
                )
        for index, task in enumerate(self.tasks):
            if task.workstream_id in workstream_ids:
                self.tasks[index] = task.model_copy(update={"persona_color": persona.color})

    def _discard_stale(self, kind: str, entity_id: str, response: EntityT, current: Optional[EntityT]) -> EntityT:
        logger.warning(f"Discarding stale {kind} response for {entity_id}; a newer mutation was issued.")
        return current if current is not None else response
