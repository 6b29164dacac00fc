# personaflow/schemas/task.py
from datetime import datetime
from typing import Dict, Optional
from pydantic import BaseModel, ConfigDict, Field

from personaflow.schemas.common import (
    EntityID,
    OptionalPriorityTag,
    OptionalTaskStatusTag,
    PriorityTag,
    RequiredText,
    TaskStatusTag,
)


class TaskCreate(BaseModel):
    workstream_id: EntityID
    title: RequiredText = Field(..., max_length=300)
    description: Optional[str] = None
    status: TaskStatusTag = Field("todo")
    priority: PriorityTag = Field("medium")


class TaskUpdate(BaseModel):
    """Editable task fields. A task never moves to another workstream."""
    title: Optional[RequiredText] = Field(None, max_length=300)
    description: Optional[str] = None
    status: OptionalTaskStatusTag = None
    priority: OptionalPriorityTag = None


class TaskStatusUpdate(BaseModel):
    status: TaskStatusTag


class TaskInDB(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: EntityID
    workstream_id: EntityID
    title: str
    description: Optional[str] = None
    status: TaskStatusTag
    priority: PriorityTag
    created_at: datetime
    updated_at: datetime

    # Denormalized for display, resolved by join on read
    workstream_name: Optional[str] = None
    persona_id: Optional[str] = None
    persona_color: Optional[str] = None


class TaskCounts(BaseModel):
    counts: Dict[str, int] = Field(..., description="Task count per normalized status tag")
    workstream_id: Optional[str] = None
    persona_id: Optional[str] = None

