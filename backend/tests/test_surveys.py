"""
Tests for surveys and survey responses.
"""
import pytest
from datetime import timedelta
from httpx import AsyncClient

from coalition.models.base import utcnow
from coalition.api.v1.survey_responses import missing_required

QUESTIONS = [
    {"id": "q1", "type": "multiple_choice", "text": "Primary service?", "options": ["Meals", "Housing"], "required": True},
    {"id": "q2", "type": "checkbox", "text": "Counties served", "options": ["Davidson", "Shelby"], "required": True},
    {"id": "q3", "type": "text", "text": "Comments"},
]


async def create_survey(client: AsyncClient, headers: dict, **overrides) -> dict:
    payload = {
        "title": "Annual Needs Survey",
        "description": "Tell us about your programs.",
        "questions": QUESTIONS,
        "is_published": True,
    }
    payload.update(overrides)
    response = await client.post("/api/surveys", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestSurveys:
    """Survey management and listing."""

    @pytest.mark.asyncio
    async def test_create_published_notifies_organizations(
        self, client: AsyncClient, admin_headers: dict, active_org, outbox
    ):
        data = await create_survey(client, admin_headers)
        assert data["is_active"] is True
        assert len(data["questions"]) == 3
        assert [m.to for m in outbox] == [active_org.email]

    @pytest.mark.asyncio
    async def test_choice_questions_need_options(self, client: AsyncClient, admin_headers: dict):
        response = await client.post(
            "/api/surveys",
            json={"title": "Broken", "questions": [{"id": "x", "type": "checkbox", "text": "Pick"}]},
            headers=admin_headers
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_public_list_hides_drafts(self, client: AsyncClient, admin_headers: dict):
        await create_survey(client, admin_headers, title="Published")
        draft = await create_survey(client, admin_headers, title="Draft", is_published=False)

        response = await client.get("/api/surveys")
        assert [s["title"] for s in response.json()] == ["Published"]

        response = await client.get("/api/surveys?is_published=false", headers=admin_headers)
        assert [s["title"] for s in response.json()] == ["Draft"]

        assert (await client.get(f"/api/surveys/{draft['id']}")).status_code == 404
        assert (await client.get(f"/api/surveys/{draft['id']}", headers=admin_headers)).status_code == 200

    @pytest.mark.asyncio
    async def test_active_list_ordering(self, client: AsyncClient, admin_headers: dict):
        now = utcnow()
        await create_survey(client, admin_headers, title="No deadline")
        await create_survey(client, admin_headers, title="Later", due_date=(now + timedelta(days=10)).isoformat())
        await create_survey(client, admin_headers, title="Sooner", due_date=(now + timedelta(days=2)).isoformat())
        await create_survey(client, admin_headers, title="Expired", due_date=(now - timedelta(days=1)).isoformat())
        await create_survey(client, admin_headers, title="Closed", is_active=False)

        response = await client.get("/api/surveys/active/list")
        assert [s["title"] for s in response.json()] == ["Sooner", "Later", "No deadline"]

    @pytest.mark.asyncio
    async def test_publish_and_close(
        self, client: AsyncClient, admin_headers: dict, active_org, outbox
    ):
        draft = await create_survey(client, admin_headers, is_published=False, is_active=False)
        assert outbox == []

        response = await client.patch(f"/api/surveys/{draft['id']}/publish", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["is_published"] is True
        assert response.json()["is_active"] is True
        assert len(outbox) == 1

        response = await client.patch(f"/api/surveys/{draft['id']}/close", headers=admin_headers)
        assert response.json()["is_active"] is False

    @pytest.mark.asyncio
    async def test_update_keeps_questions(self, client: AsyncClient, admin_headers: dict):
        survey = await create_survey(client, admin_headers)
        response = await client.put(
            f"/api/surveys/{survey['id']}",
            json={"title": "Renamed", "questions": None},
            headers=admin_headers
        )
        assert response.json()["title"] == "Renamed"
        assert len(response.json()["questions"]) == 3

    @pytest.mark.asyncio
    async def test_delete_removes_responses(
        self, client: AsyncClient, admin_headers: dict, org_headers: dict
    ):
        survey = await create_survey(client, admin_headers)
        await client.post(
            "/api/survey-responses",
            json={"survey_id": survey["id"], "responses": {"q1": "Meals", "q2": ["Shelby"]}},
            headers=org_headers
        )
        response = await client.delete(f"/api/surveys/{survey['id']}", headers=admin_headers)
        assert response.status_code == 204

        response = await client.get("/api/survey-responses", headers=admin_headers)
        assert response.json() == []


class TestSurveyResponses:
    """Submitting and managing survey responses."""

    @pytest.mark.asyncio
    async def test_organization_submits(
        self, client: AsyncClient, admin_headers: dict, org_headers: dict, active_org
    ):
        survey = await create_survey(client, admin_headers)
        response = await client.post(
            "/api/survey-responses",
            json={"survey_id": survey["id"], "responses": {"q1": "Meals", "q2": ["Davidson"]}},
            headers=org_headers
        )
        assert response.status_code == 201
        data = response.json()
        assert data["organization_id"] == active_org.id
        assert data["survey_title"] == "Annual Needs Survey"
        assert data["organization_name"] == active_org.name

        response = await client.get(f"/api/survey-responses/survey/{survey['id']}", headers=admin_headers)
        assert [r["id"] for r in response.json()] == [data["id"]]

    @pytest.mark.asyncio
    async def test_missing_required_answers(
        self, client: AsyncClient, admin_headers: dict, org_headers: dict
    ):
        survey = await create_survey(client, admin_headers)
        response = await client.post(
            "/api/survey-responses",
            json={"survey_id": survey["id"], "responses": {"q1": "Meals", "q2": []}},
            headers=org_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Missing answers for required questions: q2"

    @pytest.mark.asyncio
    async def test_invalid_json_string(
        self, client: AsyncClient, admin_headers: dict, org_headers: dict
    ):
        survey = await create_survey(client, admin_headers)
        response = await client.post(
            "/api/survey-responses",
            json={"survey_id": survey["id"], "responses": "not json"},
            headers=org_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid responses format"

    @pytest.mark.asyncio
    async def test_one_response_per_organization(
        self, client: AsyncClient, admin_headers: dict, org_headers: dict
    ):
        survey = await create_survey(client, admin_headers)
        body = {"survey_id": survey["id"], "responses": {"q1": "Meals", "q2": ["Shelby"]}}
        assert (await client.post("/api/survey-responses", json=body, headers=org_headers)).status_code == 201
        response = await client.post("/api/survey-responses", json=body, headers=org_headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_closed_survey_rejected(
        self, client: AsyncClient, admin_headers: dict, org_headers: dict
    ):
        survey = await create_survey(client, admin_headers, is_active=False)
        response = await client.post(
            "/api/survey-responses",
            json={"survey_id": survey["id"], "responses": {"q1": "Meals", "q2": ["Shelby"]}},
            headers=org_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Survey is not available for responses"

    @pytest.mark.asyncio
    async def test_cannot_submit_for_other_organization(
        self, client: AsyncClient, admin_headers: dict, org_headers: dict, other_org
    ):
        survey = await create_survey(client, admin_headers)
        response = await client.post(
            "/api/survey-responses",
            json={
                "survey_id": survey["id"],
                "organization_id": other_org.id,
                "responses": {"q1": "Meals", "q2": ["Shelby"]},
            },
            headers=org_headers
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_submits_on_behalf(
        self, client: AsyncClient, admin_headers: dict, other_org
    ):
        survey = await create_survey(client, admin_headers)
        body = {"survey_id": survey["id"], "responses": {"q1": "Housing", "q2": ["Shelby"]}}

        response = await client.post("/api/survey-responses", json=body, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "organization_id is required"

        body["organization_id"] = other_org.id
        response = await client.post("/api/survey-responses", json=body, headers=admin_headers)
        assert response.status_code == 201
        assert response.json()["organization_id"] == other_org.id

    @pytest.mark.asyncio
    async def test_update_own_response(
        self, client: AsyncClient, admin_headers: dict, org_headers: dict, other_org_headers: dict
    ):
        survey = await create_survey(client, admin_headers)
        created = await client.post(
            "/api/survey-responses",
            json={"survey_id": survey["id"], "responses": {"q1": "Meals", "q2": ["Shelby"]}},
            headers=org_headers
        )
        response_id = created.json()["id"]

        response = await client.put(
            f"/api/survey-responses/{response_id}",
            json={"responses": {"q1": "Housing", "q2": ["Davidson"], "q3": "Updated"}},
            headers=org_headers
        )
        assert response.status_code == 200
        assert response.json()["responses"]["q1"] == "Housing"

        response = await client.put(
            f"/api/survey-responses/{response_id}",
            json={"responses": {"q3": "Dropped required answers"}},
            headers=org_headers
        )
        assert response.status_code == 400

        response = await client.get(f"/api/survey-responses/{response_id}", headers=other_org_headers)
        assert response.status_code == 403

        response = await client.delete(f"/api/survey-responses/{response_id}", headers=admin_headers)
        assert response.status_code == 204


class TestRequiredAnswers:
    """Required-question checks."""

    def test_blank_values_count_as_missing(self):
        answers = {"q1": "", "q2": ["Shelby"]}
        assert missing_required(QUESTIONS, answers) == ["q1"]

    def test_optional_questions_ignored(self):
        answers = {"q1": "Meals", "q2": ["Shelby"]}
        assert missing_required(QUESTIONS, answers) == []

    def test_no_questions(self):
        assert missing_required(None, {}) == []
