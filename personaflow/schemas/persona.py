# personaflow/schemas/persona.py
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from personaflow.schemas.common import EntityID, HexColor, RequiredText


class PersonaBase(BaseModel):
    name: RequiredText = Field(..., max_length=100, description="Life area, e.g. 'Work' or 'Fitness'")
    description: Optional[str] = Field(None, description="Optional free text")
    color: Optional[HexColor] = Field(None, description="Display color; the configured default when omitted")
    is_active: bool = Field(True, description="Inactive personas cannot own new workstreams")


class PersonaCreate(PersonaBase):
    pass


class PersonaUpdate(BaseModel):
    name: Optional[RequiredText] = Field(None, max_length=100)
    description: Optional[str] = None
    color: Optional[HexColor] = None
    is_active: Optional[bool] = None


class PersonaInDB(PersonaBase):
    model_config = ConfigDict(from_attributes=True)

    id: EntityID
    color: str
    created_at: datetime
    updated_at: datetime
