# personaflow/schemas/dependency.py
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class EntityType(str, Enum):
    PERSONA = "persona"
    WORKSTREAM = "workstream"
    TASK = "task"


class DependencyReport(BaseModel):
    entity_type: EntityType
    entity_id: str
    has_dependencies: bool
    workstream_count: Optional[int] = Field(None, description="Workstreams owned; personas only")
    task_count: Optional[int] = Field(None, description="Tasks owned, transitively for personas")

    def describe(self) -> str:
        parts = []
        if self.workstream_count:
            parts.append(f"{self.workstream_count} workstream(s)")
        if self.task_count:
            parts.append(f"{self.task_count} task(s)")
        if not parts:
            return f"{self.entity_type.value} has no dependent entities"
        return f"{self.entity_type.value} owns " + " and ".join(parts)


class DeleteResult(BaseModel):
    message: str
    removed_workstreams: int = 0
    removed_tasks: int = 0
