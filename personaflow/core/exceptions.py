# personaflow/core/exceptions.py
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from personaflow.schemas.dependency import DependencyReport


class HierarchyError(Exception):
    """Base class for every recoverable failure raised by the hierarchy core."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class EntityValidationError(HierarchyError):
    """A required field or relationship is missing. Raised before any backend call."""


class DependencyBlockedError(HierarchyError):
    """A delete was withheld because the entity still owns children."""

    def __init__(self, message: str, report: "DependencyReport"):
        super().__init__(message)
        self.report = report


class PersistenceError(HierarchyError):
    """The persistence service rejected a call."""


class EntityNotFoundError(PersistenceError):
    pass
