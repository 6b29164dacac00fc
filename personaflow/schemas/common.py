from typing import Optional, TypeAlias
from pydantic import Field,BeforeValidator,StringConstraints
from typing_extensions import Annotated

from personaflow.core.normalizer import normalize_priority, normalize_task_status, normalize_workstream_status

EntityID:TypeAlias=Annotated[str,Field(...,min_length=1,max_length=64,description="Opaque unique identifier of a persona, workstream or task")]

HexColor:TypeAlias=Annotated[str,StringConstraints(pattern=r"^#(?:[0-9a-fA-F]{3}){1,2}$")]

# Names and titles: surrounding whitespace is dropped, nothing may remain blank
RequiredText:TypeAlias=Annotated[str,StringConstraints(strip_whitespace=True,min_length=1)]


def _keep_none(normalizer):
    return lambda value: None if value is None else normalizer(value)


# Raw values are canonicalized before any other validation runs
TaskStatusTag:TypeAlias=Annotated[str,BeforeValidator(normalize_task_status)]
PriorityTag:TypeAlias=Annotated[str,BeforeValidator(normalize_priority)]
WorkstreamStatusTag:TypeAlias=Annotated[str,BeforeValidator(normalize_workstream_status)]

# Partial updates: None means "leave unchanged", not "fall back to the default tag"
OptionalTaskStatusTag:TypeAlias=Annotated[Optional[str],BeforeValidator(_keep_none(normalize_task_status))]
OptionalPriorityTag:TypeAlias=Annotated[Optional[str],BeforeValidator(_keep_none(normalize_priority))]
OptionalWorkstreamStatusTag:TypeAlias=Annotated[Optional[str],BeforeValidator(_keep_none(normalize_workstream_status))]
