"""
答卷API端点测试

验证提交、查询、更新答卷接口的状态码映射和 camelCase 输出。
"""
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from app.config.dependency_injection import get_db, get_response_service
from app.main import app
from app.services.response_service import ResponseService

from conftest import FIXED_NOW, fixed_clock

QUESTIONS = [
    {"id": "q_name", "title": "Nombre", "type": "TEXT", "required": True, "order": 0},
    {"id": "q_email", "title": "Correo", "type": "EMAIL", "required": False, "order": 1},
]


@pytest.fixture(scope="function")
def client(session_factory) -> Generator[TestClient, None, None]:
    """创建测试客户端，数据库会话指向测试数据库"""
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_response_service] = lambda: ResponseService(clock=fixed_clock)
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def submit(client, survey_id, payload, headers=None):
    return client.post(f"/api/v1/surveys/{survey_id}/responses", json=payload, headers=headers)


def test_submit_returns_201_with_camel_case_data(client, make_survey):
    survey = make_survey(questions=QUESTIONS)
    response = submit(
        client,
        survey.id,
        {
            "email": "ana@example.com",
            "fullName": "Ana Pérez",
            "ships": 4,
            "isComplete": True,
            "answers": [
                {"questionId": "q_name", "value": "Ana"},
                {"questionId": "q_email", "value": ""},
            ],
        },
        headers={"User-Agent": "pytest-agent", "X-Forwarded-For": "203.0.113.5, 10.0.0.1"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["code"] == 201
    assert body["message"] == "success"
    data = body["data"]
    assert data["responseId"]
    assert data["isComplete"] is True
    assert data["completedAt"] is not None
    assert data["answers"] == [
        {"questionId": "q_name", "value": "Ana"},
        {"questionId": "q_email", "value": None},
    ]

    listing = client.get(f"/api/v1/surveys/{survey.id}/responses").json()["data"]
    assert [q["id"] for q in listing["questions"]] == ["q_name", "q_email"]
    assert len(listing["responses"]) == 1
    stored = listing["responses"][0]
    assert stored["id"] == data["responseId"]
    assert stored["fullName"] == "Ana Pérez"
    assert stored["ships"] == 4
    assert stored["ipAddress"] == "203.0.113.5"
    assert stored["userAgent"] == "pytest-agent"


def test_required_missing_returns_400(client, make_survey):
    survey = make_survey(questions=QUESTIONS)
    response = submit(client, survey.id, {"answers": [{"questionId": "q_email", "value": "a@b.co"}]})
    assert response.status_code == 400
    assert response.json()["detail"] == "La pregunta 'Nombre' es requerida y no fue respondida."


def test_invalid_email_returns_400(client, make_survey):
    survey = make_survey(questions=QUESTIONS)
    response = submit(
        client,
        survey.id,
        {"answers": [{"questionId": "q_name", "value": "Ana"}, {"questionId": "q_email", "value": "nope"}]},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "El formato de email para 'Correo' es inválido."


def test_unknown_survey_returns_404(client):
    response = submit(client, "missing", {"answers": []})
    assert response.status_code == 404
    assert response.json()["detail"] == "Encuesta no encontrada o no válida."


def test_draft_survey_returns_403(client, make_survey):
    from app.models.survey import SurveyStatus

    survey = make_survey(questions=QUESTIONS, status=SurveyStatus.DRAFT)
    response = submit(client, survey.id, {"answers": [{"questionId": "q_name", "value": "Ana"}]})
    assert response.status_code == 403
    assert response.json()["detail"] == "Esta encuesta no está activa para recibir respuestas."


def test_duplicate_returns_409(client, make_survey):
    survey = make_survey(questions=QUESTIONS, allow_multiple_responses=False)
    payload = {"userId": "u-1", "isComplete": True, "answers": [{"questionId": "q_name", "value": "Ana"}]}
    assert submit(client, survey.id, payload).status_code == 201
    response = submit(client, survey.id, payload)
    assert response.status_code == 409


def test_patch_completes_draft(client, make_survey):
    survey = make_survey(questions=QUESTIONS)
    created = submit(client, survey.id, {"answers": [{"questionId": "q_name", "value": "Ana"}]}).json()["data"]
    assert created["isComplete"] is False

    response = client.patch(
        f"/api/v1/survey-responses/{created['responseId']}",
        json={"answers": [{"questionId": "q_email", "value": "ana@example.com"}], "isComplete": True},
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["isComplete"] is True
    assert {a["questionId"] for a in data["answers"]} == {"q_name", "q_email"}

    report = client.get(f"/api/v1/surveys/{survey.id}/analytics").json()["data"]
    assert report["totals"]["totalStarts"] == 1
    assert report["totals"]["totalCompletions"] == 1


def test_patch_unknown_response_returns_404(client):
    response = client.patch("/api/v1/survey-responses/missing", json={"answers": []})
    assert response.status_code == 404


def test_list_responses_filters_by_date(client, make_survey):
    survey = make_survey(questions=QUESTIONS)
    submit(client, survey.id, {"answers": [{"questionId": "q_name", "value": "Ana"}]})

    day = FIXED_NOW.date().isoformat()
    inside = client.get(
        f"/api/v1/surveys/{survey.id}/responses",
        params={"date_from": f"{day}T00:00:00", "date_to": f"{day}T23:59:59"},
    )
    assert len(inside.json()["data"]["responses"]) == 1
    after = client.get(
        f"/api/v1/surveys/{survey.id}/responses",
        params={"date_from": f"{day}T13:00:00"},
    )
    assert after.json()["data"]["responses"] == []


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
