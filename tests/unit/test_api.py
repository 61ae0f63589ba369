# tests/unit/test_api.py
"""
HTTP API tests.

The app runs with its real lifecycle against a temporary database; the
embedded worker is disabled and the LLM client is scripted.
"""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from formiq.api import create_app
from formiq.background.lifecycle import ServerLifecycle
from formiq.workflow import workflow_id_for

from .fakes import USER_ID

INTAKE = {
    "goal": "  Launch an EP  ",
    "commitment": "moderate",
    "familiarity": "some_experience",
    "workStyle": "flexible_or_varies",
}


@pytest.fixture
def client(config, ai_service):
    lifecycle = ServerLifecycle(config, ai_service=ai_service)
    with TestClient(create_app(lifecycle=lifecycle)) as client:
        yield client


def _start_project(client) -> dict:
    response = client.post("/projects/start", json=INTAKE)
    assert response.status_code == 200
    return response.json()


class TestHealth:
    def test_index(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.text == "Welcome to the Project Intake API"

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}


class TestIntakeForms:
    """Static forms."""

    def test_project_intake_questions(self, client):
        form = client.get("/project-intake/questions").json()["form"]

        assert form["name"] == "project_intake"
        assert [q["id"] for q in form["questions"]] == [
            "goal",
            "time_commitment",
            "familiarity",
            "work_style",
        ]
        assert form["questions"][1]["questionType"] == "single_select"
        assert form["questions"][1]["options"][0] == {"value": "light", "label": "Light"}

    def test_intake_form_by_name(self, client):
        response = client.get("/intake-forms/project_intake")
        assert response.status_code == 200
        assert response.json()["form"]["kind"] == "project_intake"

    def test_unknown_intake_form(self, client):
        response = client.get("/intake-forms/nope")
        assert response.status_code == 404
        assert response.json() == {"message": "Intake form 'nope' not found"}


class TestCreateProject:
    """POST /projects."""

    def test_creates_draft_with_trimmed_title(self, client):
        response = client.post("/projects", json=INTAKE)

        assert response.status_code == 201
        body = response.json()
        assert body["title"] == "Launch an EP"
        assert body["status"] == "draft"
        assert body["userId"] == USER_ID
        assert body["workStyle"] == "flexible_or_varies"

    def test_with_intake_responses(self, client):
        response = client.post(
            "/projects",
            json={**INTAKE, "responses": [{"questionId": "work_style", "values": ["flexible"]}]},
        )
        assert response.status_code == 201
        assert response.json()["responses"][0]["answer"]["values"] == ["flexible"]

    def test_unknown_intake_question(self, client):
        response = client.post(
            "/projects", json={**INTAKE, "responses": [{"questionId": "nope", "values": []}]}
        )
        assert response.status_code == 400
        assert response.json()["issues"][0]["path"] == "responses.0.questionId"

    def test_missing_fields(self, client):
        response = client.post("/projects", json={"goal": "Launch an EP"})

        assert response.status_code == 400
        body = response.json()
        paths = {issue["path"] for issue in body["issues"]}
        assert paths == {"commitment", "familiarity", "workStyle"}
        assert "commitment" in body["message"]

    def test_blank_goal(self, client):
        response = client.post("/projects", json={**INTAKE, "goal": "   "})
        assert response.status_code == 400
        assert response.json()["issues"][0]["path"] == "goal"

    def test_invalid_enum(self, client):
        response = client.post("/projects", json={**INTAKE, "commitment": "always"})
        assert response.status_code == 400
        assert response.json()["issues"][0]["path"] == "commitment"

    def test_list_projects(self, client):
        client.post("/projects", json=INTAKE)
        client.post("/projects", json={**INTAKE, "goal": "Run a 10k"})

        projects = client.get("/projects").json()["projects"]
        assert {p["title"] for p in projects} == {"Launch an EP", "Run a 10k"}
        assert set(projects[0]) == {"id", "title", "status"}


class TestGetProject:
    def test_details(self, client):
        project_id = client.post("/projects", json=INTAKE).json()["id"]

        body = client.get(f"/projects/{project_id}").json()

        project = body["project"]
        assert project["id"] == project_id
        assert project["milestones"] == []
        assert project["focusForm"] is None
        assert project["promptExecutions"] == []

    def test_missing(self, client):
        response = client.get("/projects/nope")
        assert response.status_code == 404
        assert response.json() == {"message": "Project not found"}

    def test_other_users_project(self, client):
        project_id = client.post("/projects", json=INTAKE).json()["id"]
        response = client.get(f"/projects/{project_id}", headers={"X-User-Id": "other-user"})
        assert response.status_code == 404

    def test_focus_form_missing(self, client):
        project_id = client.post("/projects", json=INTAKE).json()["id"]
        response = client.get(f"/projects/{project_id}/focus-form")
        assert response.status_code == 404
        assert response.json() == {"message": "Focus form not found"}


class TestStartProject:
    """POST /projects/start."""

    def test_returns_focus_questions_and_workflow(self, client):
        body = _start_project(client)

        project_id = body["project"]["id"]
        assert body["status"] == "ok"
        assert body["goal"] == "Launch an EP"
        assert body["workflowId"] == workflow_id_for(project_id)
        questions = body["focusQuestions"]["questions"]
        assert [q["id"] for q in questions] == ["release_format", "genre"]

        focus_form = client.get(f"/projects/{project_id}/focus-form").json()["focusForm"]
        assert [i["question"] for i in focus_form["items"]] == [q["prompt"] for q in questions]
        assert all(i["answer"] is None for i in focus_form["items"])

    def test_focus_form_by_name(self, client):
        project_id = _start_project(client)["project"]["id"]
        name = client.get(f"/projects/{project_id}/focus-form").json()["focusForm"]["name"]

        assert client.get(f"/focus-questions/{name}").status_code == 200
        response = client.get(f"/focus-questions/{name}", headers={"X-User-Id": "other-user"})
        assert response.status_code == 404

    def test_generation_failure(self, client, llm_client):
        llm_client.scripts["focus_questions"] = ["not json", '{"questions": []}']

        response = client.post("/projects/start", json=INTAKE)

        assert response.status_code == 502
        body = response.json()
        assert body["message"] == "Generation failed"
        assert body["error"].startswith("Structured output invalid after retry")

    def test_invalid_intake(self, client, llm_client):
        response = client.post("/projects/start", json={**INTAKE, "familiarity": "expert"})
        assert response.status_code == 400
        assert llm_client.calls == []


class TestFocusResponses:
    """PUT /projects/{projectId}/focus-responses."""

    def _items(self, client, project_id):
        return client.get(f"/projects/{project_id}/focus-form").json()["focusForm"]["items"]

    def test_partial_answers_do_not_resume(self, client):
        project_id = _start_project(client)["project"]["id"]
        items = self._items(client, project_id)

        with patch(
            "formiq.api.routes.projects.start_or_resume_roadmap", new_callable=AsyncMock
        ) as mock_resume:
            response = client.put(
                f"/projects/{project_id}/focus-responses",
                json={"responses": [{"focusItemId": items[1]["id"], "answer": "Lo-fi"}]},
            )

        assert response.status_code == 200
        focus_form = response.json()["project"]["focusForm"]
        assert focus_form["items"][1]["answer"] == "Lo-fi"
        mock_resume.assert_not_called()

    def test_all_answers_resume_workflow(self, client):
        project_id = _start_project(client)["project"]["id"]
        items = self._items(client, project_id)

        with patch(
            "formiq.api.routes.projects.start_or_resume_roadmap", new_callable=AsyncMock
        ) as mock_resume:
            mock_resume.return_value.workflow_id = workflow_id_for(project_id)
            response = client.put(
                f"/projects/{project_id}/focus-responses",
                json={
                    "responses": [
                        {"focusItemId": items[0]["id"], "answer": ["Vinyl", "Streaming"]},
                        {"focusItemId": items[1]["id"], "answer": "Lo-fi"},
                    ]
                },
            )

        assert response.status_code == 200
        answers = [i["answer"] for i in response.json()["project"]["focusForm"]["items"]]
        assert answers == ['["Vinyl", "Streaming"]', "Lo-fi"]
        mock_resume.assert_awaited_once()
        assert mock_resume.await_args.args[1:] == (USER_ID, project_id)

    def test_foreign_item_rejected(self, client):
        first = _start_project(client)["project"]["id"]
        second = _start_project(client)["project"]["id"]
        foreign = self._items(client, second)[0]["id"]

        response = client.put(
            f"/projects/{first}/focus-responses",
            json={"responses": [{"focusItemId": foreign, "answer": "Vinyl"}]},
        )

        assert response.status_code == 400
        assert response.json()["issues"][0]["path"] == "responses.0.focusItemId"
        assert all(i["answer"] is None for i in self._items(client, first))

    def test_empty_responses(self, client):
        project_id = _start_project(client)["project"]["id"]
        response = client.put(f"/projects/{project_id}/focus-responses", json={"responses": []})
        assert response.status_code == 400
        assert response.json()["issues"][0]["path"] == "responses"

    def test_unknown_project(self, client):
        response = client.put(
            "/projects/nope/focus-responses",
            json={"responses": [{"focusItemId": "x", "answer": "y"}]},
        )
        assert response.status_code == 404
