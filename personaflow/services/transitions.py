# personaflow/services/transitions.py
from enum import Enum
from typing import Dict, Optional, Set

from loguru import logger
from pydantic import BaseModel, Field

from personaflow.core.exceptions import PersistenceError
from personaflow.core.normalizer import TASK_STATUS_OPTIONS, TASK_STATUSES, is_known_tag, normalize_task_status
from personaflow.core.workflow import WorkflowState
from personaflow.schemas.task import TaskInDB
from personaflow.services.hierarchy_store import HierarchyStore
from personaflow.services.task_view import TaskFilters


class TransitionPhase(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class TransitionResult(BaseModel):
    task_id: str
    phase: TransitionPhase
    from_status: Optional[str] = None
    to_status: Optional[str] = None
    task: Optional[TaskInDB] = Field(None, description="Local copy of the task after the transition settled")
    error: Optional[str] = None
    reason: Optional[str] = Field(None, description="Why a drop was ignored")


class TransitionController:
    """
    Optimistic status changes for tasks dragged between status columns.

    The local task moves to the target status before the backend answers; a
    success swaps in the backend's copy and refreshes the per-status counts,
    a failure restores the previous status and surfaces the error.
    """

    def __init__(self, store: HierarchyStore, scope: Optional[TaskFilters] = None):
        self.store = store
        self.scope = scope or TaskFilters()
        self.counts: Dict[str, int] = {status: 0 for status in TASK_STATUSES}
        self.state = WorkflowState.idle()
        self._pending: Set[str] = set()

    def is_pending(self, task_id: str) -> bool:
        return task_id in self._pending

    async def load(self) -> None:
        """Initial board load: tasks from the store plus scoped counts."""
        await self.store.load_tasks()
        await self.refresh_counts()

    async def set_scope(self, scope: TaskFilters) -> None:
        self.scope = scope
        await self.refresh_counts()

    async def refresh_counts(self) -> Dict[str, int]:
        try:
            self.counts = await self.store.persistence.get_task_counts_by_status(
                workstream_id=self.scope.workstream_scope,
                persona_id=self.scope.persona_scope,
            )
        except PersistenceError as e:
            # Counts are advisory; the board keeps showing the last known totals
            logger.error(f"Failed to load task counts: {e.message}")
        return self.counts

    def _ignored(self, task_id: str, reason: str, task: Optional[TaskInDB] = None) -> TransitionResult:
        logger.debug(f"Ignoring drop of task {task_id}: {reason}")
        return TransitionResult(
            task_id=task_id,
            phase=TransitionPhase.IDLE,
            from_status=task.status if task else None,
            task=task,
            reason=reason,
        )

    async def drop(self, task_id: str, target_status: Optional[str]) -> TransitionResult:
        task = self.store.get_task(task_id)
        if task is None:
            return self._ignored(task_id, "unknown task")
        if target_status is None or not is_known_tag(target_status, TASK_STATUS_OPTIONS):
            return self._ignored(task_id, "no valid drop target", task)
        if task_id in self._pending:
            return self._ignored(task_id, "a status change for this task is still pending", task)

        from_status = normalize_task_status(task.status)
        to_status = normalize_task_status(target_status)
        if from_status == to_status:
            return self._ignored(task_id, "dropped on its current status", task)

        # Pending: optimistic local update
        self._pending.add(task_id)
        ticket = self.store.issue(task_id)
        self.store.set_task_status(task_id, to_status)
        self.state = WorkflowState.loading()
        logger.info(f"Moving task {task_id} from '{from_status}' to '{to_status}'")

        try:
            updated = await self.store.persistence.update_task_status(task_id, to_status)
        except PersistenceError as e:
            return self._roll_back(task_id, ticket, from_status, to_status, e)
        finally:
            self._pending.discard(task_id)

        if self.store.is_current(task_id, ticket):
            self.store.apply_task(updated)
        else:
            logger.warning(f"Discarding stale status response for task {task_id}; a newer mutation was issued.")
        await self.refresh_counts()
        self.state = WorkflowState.loaded(updated)
        return TransitionResult(
            task_id=task_id,
            phase=TransitionPhase.COMMITTED,
            from_status=from_status,
            to_status=to_status,
            task=self.store.get_task(task_id),
        )

    def _roll_back(
        self, task_id: str, ticket: int, from_status: str, to_status: str, error: PersistenceError
    ) -> TransitionResult:
        message = f"Failed to update task status: {error.message}"
        if self.store.is_current(task_id, ticket):
            self.store.set_task_status(task_id, from_status)
        else:
            logger.warning(f"Not rolling back task {task_id}; a newer mutation was issued.")
        logger.warning(f"Rolled back task {task_id} to '{from_status}': {error.message}")
        self.state = WorkflowState.error(message)
        return TransitionResult(
            task_id=task_id,
            phase=TransitionPhase.ROLLED_BACK,
            from_status=from_status,
            to_status=to_status,
            task=self.store.get_task(task_id),
            error=message,
        )
