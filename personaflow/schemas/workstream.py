# personaflow/schemas/workstream.py
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from personaflow.schemas.common import EntityID, OptionalWorkstreamStatusTag, RequiredText, WorkstreamStatusTag


class WorkstreamCreate(BaseModel):
    persona_id: EntityID
    name: RequiredText = Field(..., max_length=200)
    description: Optional[str] = None
    status: WorkstreamStatusTag = Field("planning")


class WorkstreamUpdate(BaseModel):
    name: Optional[RequiredText] = Field(None, max_length=200)
    description: Optional[str] = None
    status: OptionalWorkstreamStatusTag = None


class WorkstreamInDB(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: EntityID
    persona_id: EntityID
    name: str
    description: Optional[str] = None
    status: WorkstreamStatusTag
    created_at: datetime
    updated_at: datetime

    # Denormalized for display, resolved by join on read
    persona_name: Optional[str] = None
    persona_color: Optional[str] = None
