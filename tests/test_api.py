"""Tests for the HTTP command surface."""

import pytest

from personaflow.api.v1.deps import get_persistence
from personaflow.main import app
from tests.helpers import UnavailablePersistence


async def create_tree(client):
    persona = (await client.post("/v1/personas/", json={"name": "Work"})).json()
    workstream = (await client.post("/v1/workstreams/", json={"persona_id": persona["id"], "name": "Launch"})).json()
    task = (
        await client.post(
            "/v1/tasks/", json={"workstream_id": workstream["id"], "title": "Ship", "status": '"ToDo"'}
        )
    ).json()
    return persona, workstream, task


class TestHealth:
    async def test_health(self, client):
        response = await client.get("/v1/health/")
        assert response.status_code == 200
        assert response.text == "ok"

    async def test_health_reports_unreachable_database(self, client, session_factory):
        app.dependency_overrides[get_persistence] = lambda: UnavailablePersistence(session_factory)
        response = await client.get("/v1/health/")
        assert response.status_code == 503


class TestErrorMapping:
    async def test_persistence_failure_is_a_500_with_message(self, client, session_factory):
        app.dependency_overrides[get_persistence] = lambda: UnavailablePersistence(session_factory)
        response = await client.get("/v1/personas/")
        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to load personas: unable to open database file"


class TestBlankNames:
    @pytest.mark.parametrize("name", ["   ", "\t", "\n "])
    async def test_blank_persona_name_rejected(self, client, name):
        response = await client.post("/v1/personas/", json={"name": name})
        assert response.status_code == 422
        assert (await client.get("/v1/personas/")).json() == []

    async def test_blank_workstream_name_rejected(self, client):
        persona = (await client.post("/v1/personas/", json={"name": "Work"})).json()
        response = await client.post("/v1/workstreams/", json={"persona_id": persona["id"], "name": "  "})
        assert response.status_code == 422
        assert (await client.get("/v1/workstreams/")).json() == []

    async def test_blank_task_title_rejected(self, client):
        _, workstream, task = await create_tree(client)
        response = await client.post("/v1/tasks/", json={"workstream_id": workstream["id"], "title": "\t"})
        assert response.status_code == 422
        assert [t["id"] for t in (await client.get("/v1/tasks/")).json()] == [task["id"]]

    async def test_blank_names_rejected_on_update(self, client):
        persona, workstream, task = await create_tree(client)
        assert (await client.put(f"/v1/personas/{persona['id']}", json={"name": " "})).status_code == 422
        assert (await client.put(f"/v1/workstreams/{workstream['id']}", json={"name": " "})).status_code == 422
        assert (await client.put(f"/v1/tasks/{task['id']}", json={"title": " "})).status_code == 422
        assert (await client.get(f"/v1/personas/{persona['id']}")).json()["name"] == "Work"

    async def test_names_are_stripped(self, client):
        response = await client.post("/v1/personas/", json={"name": "  Fitness  "})
        assert response.status_code == 201
        assert response.json()["name"] == "Fitness"


class TestPersonaRoutes:
    async def test_create_and_list(self, client):
        response = await client.post("/v1/personas/", json={"name": "Work", "color": "#abcdef"})
        assert response.status_code == 201
        body = response.json()
        assert body["color"] == "#abcdef"

        listed = (await client.get("/v1/personas/")).json()
        assert [p["id"] for p in listed] == [body["id"]]

    async def test_empty_name_rejected(self, client):
        response = await client.post("/v1/personas/", json={"name": ""})
        assert response.status_code == 422

    async def test_unknown_persona(self, client):
        response = await client.get("/v1/personas/missing")
        assert response.status_code == 404

    async def test_delete_requires_acknowledgement(self, client):
        persona, workstream, task = await create_tree(client)

        deps = (await client.get(f"/v1/personas/{persona['id']}/dependencies")).json()
        assert deps["has_dependencies"] is True
        assert deps["workstream_count"] == 1
        assert deps["task_count"] == 1

        blocked = await client.delete(f"/v1/personas/{persona['id']}")
        assert blocked.status_code == 409
        assert blocked.json()["detail"]["dependencies"]["task_count"] == 1

        deleted = await client.delete(f"/v1/personas/{persona['id']}", params={"acknowledge_cascade": True})
        assert deleted.status_code == 200
        assert deleted.json()["removed_tasks"] == 1
        assert (await client.get("/v1/tasks/")).json() == []


class TestTaskRoutes:
    async def test_status_is_normalized_on_create(self, client):
        _, workstream, task = await create_tree(client)
        assert task["status"] == "todo"
        assert task["workstream_name"] == "Launch"

    async def test_status_patch_and_counts(self, client):
        _, workstream, task = await create_tree(client)
        response = await client.patch(f"/v1/tasks/{task['id']}/status", json={"status": "In Progress"})
        assert response.status_code == 200
        assert response.json()["status"] == "inprogress"

        counts = (await client.get("/v1/tasks/counts", params={"workstream_id": workstream["id"]})).json()
        assert counts["counts"]["inprogress"] == 1
        assert counts["workstream_id"] == workstream["id"]

    async def test_kanban_status_filter(self, client):
        _, workstream, task = await create_tree(client)
        board = (await client.get("/v1/tasks/kanban", params={"statuses": ["done"]})).json()
        assert board == []
        board = (await client.get("/v1/tasks/kanban", params={"statuses": ["todo", "done"]})).json()
        assert [t["id"] for t in board] == [task["id"]]

    async def test_workstream_delete_gate(self, client):
        _, workstream, _ = await create_tree(client)
        assert (await client.delete(f"/v1/workstreams/{workstream['id']}")).status_code == 409
        response = await client.delete(f"/v1/workstreams/{workstream['id']}?acknowledge_cascade=true")
        assert response.status_code == 200

    async def test_task_delete_is_unconditional(self, client):
        _, _, task = await create_tree(client)
        response = await client.delete(f"/v1/tasks/{task['id']}")
        assert response.status_code == 200
        assert (await client.get(f"/v1/tasks/{task['id']}")).status_code == 404
