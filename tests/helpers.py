"""Persistence doubles for exercising failure and ordering paths."""

import asyncio

from personaflow.core.exceptions import PersistenceError
from personaflow.services.persistence import PersistenceService


class FailingStatusPersistence(PersistenceService):
    """Rejects every status update, like a backend that is down."""

    def __init__(self, session_factory, message: str = "database is locked"):
        super().__init__(session_factory)
        self.message = message
        self.status_calls = 0

    async def update_task_status(self, task_id, status):
        self.status_calls += 1
        raise PersistenceError(self.message)


class GatedPersistence(PersistenceService):
    """
    Applies updates immediately but holds each response until its gate is
    opened, so a test decides the order in which responses arrive.
    """

    def __init__(self, session_factory):
        super().__init__(session_factory)
        self.gates = []

    async def _hold(self, response):
        gate = asyncio.Event()
        self.gates.append(gate)
        await gate.wait()
        return response

    async def update_task(self, task_id, task_update):
        return await self._hold(await super().update_task(task_id, task_update))

    async def update_task_status(self, task_id, status):
        return await self._hold(await super().update_task_status(task_id, status))


class HeldFailingStatusPersistence(GatedPersistence):
    """Holds each status update on a gate, then rejects it without writing."""

    async def update_task_status(self, task_id, status):
        await self._hold(None)
        raise PersistenceError("connection reset")


class FlakyCountsPersistence(PersistenceService):
    """Serves counts until ``fail_counts`` is switched on."""

    def __init__(self, session_factory):
        super().__init__(session_factory)
        self.fail_counts = False

    async def get_task_counts_by_status(self, workstream_id=None, persona_id=None):
        if self.fail_counts:
            raise PersistenceError("Failed to load task counts: database is locked")
        return await super().get_task_counts_by_status(workstream_id=workstream_id, persona_id=persona_id)


class UnavailablePersistence(PersistenceService):
    """Persona listing and health pings fail, like a store of record that went away."""

    async def list_personas(self, active_only=False):
        raise PersistenceError("Failed to load personas: unable to open database file")

    async def ping(self):
        raise PersistenceError("Failed to reach database: unable to open database file")


async def wait_for_gates(persistence: GatedPersistence, count: int) -> None:
    while len(persistence.gates) < count:
        await asyncio.sleep(0)
