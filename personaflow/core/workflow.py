# personaflow/core/workflow.py
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field


class WorkflowStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    ERROR = "error"
    LOADED = "loaded"


class WorkflowState(BaseModel):
    """
    One explicit state value per workflow (loading a collection, deleting an
    entity, moving a task...). Replaces independent loading/error flags.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    status: WorkflowStatus = Field(WorkflowStatus.IDLE)
    message: Optional[str] = Field(None, description="Human readable error, set only for ERROR")
    data: Any = Field(None, description="Payload of the last successful run, set only for LOADED")

    @classmethod
    def idle(cls) -> "WorkflowState":
        return cls(status=WorkflowStatus.IDLE)

    @classmethod
    def loading(cls) -> "WorkflowState":
        return cls(status=WorkflowStatus.LOADING)

    @classmethod
    def error(cls, message: str) -> "WorkflowState":
        return cls(status=WorkflowStatus.ERROR, message=message)

    @classmethod
    def loaded(cls, data: Any = None) -> "WorkflowState":
        return cls(status=WorkflowStatus.LOADED, data=data)

    @property
    def is_busy(self) -> bool:
        return self.status is WorkflowStatus.LOADING
