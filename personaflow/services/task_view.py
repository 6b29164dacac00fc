# personaflow/services/task_view.py
from enum import Enum
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Sequence

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, field_validator

from personaflow.core.normalizer import (
    PRIORITY_OPTIONS,
    TASK_STATUS_OPTIONS,
    TASK_STATUSES,
    normalize_task_status,
    tag_rank,
)
from personaflow.schemas.task import TaskInDB
from personaflow.schemas.workstream import WorkstreamInDB

ALL = "all"


class SortField(str, Enum):
    TITLE = "title"
    STATUS = "status"
    PRIORITY = "priority"
    WORKSTREAM_NAME = "workstream_name"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class TaskFilters(BaseModel):
    """Active filters of a task view. ``"all"`` (or None) disables a filter."""
    model_config = ConfigDict(frozen=True)

    workstream_id: Optional[str] = Field(ALL)
    persona_id: Optional[str] = Field(ALL)
    statuses: FrozenSet[str] = Field(frozenset(TASK_STATUSES))

    @field_validator("statuses", mode="before")
    @classmethod
    def _normalize_statuses(cls, value: Iterable[str]) -> FrozenSet[str]:
        return frozenset(normalize_task_status(status) for status in value)

    @property
    def workstream_scope(self) -> Optional[str]:
        return None if self.workstream_id in (None, ALL) else self.workstream_id

    @property
    def persona_scope(self) -> Optional[str]:
        return None if self.persona_id in (None, ALL) else self.persona_id


class TaskSort(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: SortField = Field(SortField.CREATED_AT)
    direction: SortDirection = Field(SortDirection.DESC)

    def toggle(self, field: SortField) -> "TaskSort":
        """Clicking the active field flips direction; a new field starts ascending."""
        field = SortField(field)
        if field is self.field:
            flipped = SortDirection.DESC if self.direction is SortDirection.ASC else SortDirection.ASC
            return TaskSort(field=field, direction=flipped)
        return TaskSort(field=field, direction=SortDirection.ASC)


def _sort_key(field: SortField, workstream_names: Dict[str, str]) -> Callable[[TaskInDB], object]:
    if field is SortField.TITLE:
        return lambda task: task.title.lower()
    if field is SortField.STATUS:
        return lambda task: tag_rank(task.status, TASK_STATUS_OPTIONS)
    if field is SortField.PRIORITY:
        return lambda task: tag_rank(task.priority, PRIORITY_OPTIONS)
    if field is SortField.WORKSTREAM_NAME:
        return lambda task: (workstream_names.get(task.workstream_id) or task.workstream_name or "").lower()
    if field is SortField.CREATED_AT:
        return lambda task: task.created_at
    return lambda task: task.updated_at


def matches(task: TaskInDB, filters: TaskFilters, persona_by_workstream: Dict[str, str]) -> bool:
    workstream_scope = filters.workstream_scope
    if workstream_scope is not None and task.workstream_id != workstream_scope:
        return False
    persona_scope = filters.persona_scope
    if persona_scope is not None:
        owner = task.persona_id or persona_by_workstream.get(task.workstream_id)
        if owner != persona_scope:
            return False
    return normalize_task_status(task.status) in filters.statuses


def derive_view(
    tasks: Iterable[TaskInDB],
    filters: TaskFilters,
    sort: TaskSort,
    workstreams: Sequence[WorkstreamInDB] = (),
) -> List[TaskInDB]:
    """
    Filter then sort ``tasks`` into a new list; the input is left untouched.

    Filters are conjunctive. Tasks read from the persistence service carry
    their persona; ``workstreams`` fills it in for tasks that do not, and
    supplies current names for the workstream-name sort.
    """
    persona_by_workstream = {w.id: w.persona_id for w in workstreams}
    workstream_names = {w.id: w.name for w in workstreams}

    selected = [task for task in tasks if matches(task, filters, persona_by_workstream)]
    view = sorted(
        selected,
        key=_sort_key(sort.field, workstream_names),
        reverse=sort.direction is SortDirection.DESC,
    )
    logger.debug(f"Derived task view: {len(view)} task(s) by {sort.field.value} {sort.direction.value}")
    return view


def group_by_status(tasks: Iterable[TaskInDB], statuses: Iterable[str] = TASK_STATUSES) -> Dict[str, List[TaskInDB]]:
    """Board columns in workflow order, one per visible status."""
    visible = {normalize_task_status(status) for status in statuses}
    columns: Dict[str, List[TaskInDB]] = {tag: [] for tag in TASK_STATUSES if tag in visible}
    for task in tasks:
        status = normalize_task_status(task.status)
        if status in columns:
            columns[status].append(task)
    return columns
