# personaflow/services/dependency_resolver.py
from loguru import logger

from personaflow.core.exceptions import DependencyBlockedError
from personaflow.schemas.dependency import DependencyReport, EntityType
from personaflow.services.persistence import PersistenceService


class DependencyResolver:
    """
    Read-only lookup of what a delete would take down with it.

    Persona: workstreams owned plus every task across them. Workstream: tasks
    owned. Tasks never have dependents and are answered without a backend call.
    """

    def __init__(self, persistence: PersistenceService):
        self.persistence = persistence

    async def resolve(self, entity_type: EntityType, entity_id: str) -> DependencyReport:
        entity_type = EntityType(entity_type)
        if entity_type is EntityType.PERSONA:
            report = await self.persistence.check_persona_dependencies(entity_id)
        elif entity_type is EntityType.WORKSTREAM:
            report = await self.persistence.check_workstream_dependencies(entity_id)
        else:
            report = DependencyReport(entity_type=EntityType.TASK, entity_id=entity_id, has_dependencies=False)
        logger.debug(f"Resolved dependencies for {entity_type.value} {entity_id}: {report.describe()}")
        return report

    async def confirm_delete(
        self, entity_type: EntityType, entity_id: str, acknowledged: bool = False
    ) -> DependencyReport:
        """
        Resolve dependencies and raise DependencyBlockedError while the delete
        still needs an explicit cascade acknowledgement.
        """
        report = await self.resolve(entity_type, entity_id)
        if requires_confirmation(report, acknowledged):
            logger.warning(
                f"Delete of {report.entity_type.value} {report.entity_id} withheld: {report.describe()}"
            )
            raise DependencyBlockedError(
                f"Deleting this {report.entity_type.value} also deletes what it owns "
                f"({report.describe()}). Confirm the cascade to continue.",
                report,
            )
        return report


def requires_confirmation(report: DependencyReport, acknowledged: bool = False) -> bool:
    """True while a delete must be withheld pending explicit cascade acknowledgement."""
    return report.has_dependencies and not acknowledged
