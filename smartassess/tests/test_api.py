"""
API tests for the SmartAssess HTTP surface.

These tests run the FastAPI application with in-memory repositories and a
scorer whose HTTP call is mocked.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from smartassess.assessments.evaluation.dependencies import build_memory_components
from smartassess.main import create_app
from smartassess.tests.factories import json_reply, make_question, make_scorer, make_test, scorer_settings

API = "/api/v1"
TEACHER = {"X-User-Id": "teacher-1"}
STUDENT = {"X-User-Id": "student-1"}

QUESTIONS = [
    make_question("mc1", "easy", 2, question_type="multiple-choice", correct_answer="A"),
    make_question("mc2", "easy", 2, question_type="multiple-choice", correct_answer="B"),
    make_question("sa1", "medium", 4, question_type="short-answer", correct_answer="Inertia"),
    make_question("la1", "hard", 6, question_type="long-answer"),
]


@pytest.fixture
def components():
    components = build_memory_components(
        scorer_settings(),
        scorer=make_scorer([json_reply(3, "Good"), json_reply(5, "Thorough")])
    )
    for question in QUESTIONS:
        asyncio.run(components.questions.save(question))
    asyncio.run(components.tests.save(make_test(QUESTIONS)))
    asyncio.run(components.tests.save(make_test(QUESTIONS[:2], test_id="quiz", show_results_immediately=True)))
    return components


@pytest.fixture
def client(components):
    app = create_app(scorer_settings(), components=components)
    with TestClient(app) as test_client:
        yield test_client


def submit(client, test_id="test-1", headers=STUDENT, answers=None):
    answers = answers if answers is not None else [
        {"question_id": "mc1", "answer_text": "A"},
        {"question_id": "mc2", "answer_text": "C"},
        {"question_id": "sa1", "answer_text": "An object keeps its motion"},
        {"question_id": "la1", "answer_text": "Long discussion of momentum"},
    ]
    return client.post(f"{API}/submissions", json={"test_id": test_id, "answers": answers}, headers=headers)


def test_health(client):
    response = client.get(f"{API}/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_missing_user_header_is_rejected(client):
    response = client.post(f"{API}/submissions", json={"test_id": "test-1", "answers": []})
    assert response.status_code == 401


def test_compose_test(client):
    response = client.post(f"{API}/tests/compose", json={
        "subject_id": "physics",
        "total_marks": 10,
        "easy_percentage": 40,
        "medium_percentage": 40,
        "hard_percentage": 20
    }, headers=TEACHER)

    assert response.status_code == 200
    data = response.json()["data"]
    assert [q["question"]["question_id"] for q in data["questions"]] == ["mc1", "mc2", "sa1"]
    assert data["distribution"]["total"] == 8
    assert data["targets"] == {"easy": 4, "medium": 4, "hard": 2, "total": 10}


def test_compose_errors(client):
    response = client.post(f"{API}/tests/compose", json={
        "subject_id": "physics", "total_marks": 10,
        "easy_percentage": 40, "medium_percentage": 40, "hard_percentage": 20,
        "chapters": ["Thermodynamics"]
    }, headers=TEACHER)
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "not_found"

    response = client.post(f"{API}/tests/compose", json={
        "subject_id": "physics", "total_marks": 1,
        "easy_percentage": 100, "medium_percentage": 0, "hard_percentage": 0
    }, headers=TEACHER)
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "no_suitable_questions"

    response = client.post(f"{API}/tests/compose", json={
        "subject_id": "physics", "total_marks": 10,
        "easy_percentage": 140, "medium_percentage": 0, "hard_percentage": 0
    }, headers=TEACHER)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "validation_error"


def test_create_submission_hides_total_unless_results_visible(client):
    response = submit(client)
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["auto_graded"] is False
    assert data["show_results"] is False
    assert "total_marks_obtained" not in data["submission"]
    assert data["submission"]["status"] == "submitted"

    response = submit(client, test_id="quiz", answers=[{"question_id": "mc1", "answer_text": "a"}])
    data = response.json()["data"]
    assert data["auto_graded"] is True
    assert data["submission"]["status"] == "evaluated"
    assert data["submission"]["total_marks_obtained"] == 2


def test_duplicate_submission_conflicts(client):
    assert submit(client).status_code == 201
    response = submit(client)
    assert response.status_code == 409
    assert response.json()["error"]["message"] == "Submission already exists"


def test_manual_evaluation(client):
    submission_id = submit(client).json()["data"]["submission"]["submission_id"]

    response = client.put(f"{API}/submissions/{submission_id}/evaluate", json={
        "answers": [
            {"question_id": "sa1", "marks_obtained": 9},
            {"question_id": "la1", "marks_obtained": 5},
        ]
    }, headers=TEACHER)
    assert response.status_code == 400

    response = client.put(f"{API}/submissions/{submission_id}/evaluate", json={
        "answers": [
            {"question_id": "sa1", "marks_obtained": 3, "remarks": "Fine"},
            {"question_id": "la1", "marks_obtained": 5},
        ]
    }, headers=TEACHER)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "evaluated"
    assert data["total_marks_obtained"] == 10
    assert data["evaluated_by"] == "teacher-1"


def test_ai_evaluation_and_guard(client):
    submission_id = submit(client).json()["data"]["submission"]["submission_id"]

    response = client.put(f"{API}/submissions/{submission_id}/ai-evaluate", headers=TEACHER)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["summary"] == {"evaluated": 2, "fallback": 0, "total_marks_obtained": 10}
    assert data["submission"]["status"] == "evaluated"

    response = client.put(f"{API}/submissions/{submission_id}/ai-evaluate", headers=TEACHER)
    assert response.status_code == 409
    error = response.json()["error"]
    assert error["code"] == "already_evaluated"
    assert error["details"]["total_marks_obtained"] == 10


def test_single_answer_evaluation(client):
    submission_id = submit(client).json()["data"]["submission"]["submission_id"]

    response = client.post(
        f"{API}/submissions/{submission_id}/evaluate-answer",
        json={"question_id": "sa1"}, headers=TEACHER
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["marks_obtained"] == 3
    assert data["feedback"] == "Good"
    assert data["status"] == "submitted"
    assert data["total_marks_obtained"] == 5

    response = client.post(
        f"{API}/submissions/unknown/evaluate-answer",
        json={"question_id": "sa1"}, headers=TEACHER
    )
    assert response.status_code == 404


def test_analytics(client):
    response = client.get(f"{API}/analytics/tests/test-1", headers=TEACHER)
    assert response.status_code == 200
    assert response.json()["analytics"] is None
    assert response.json()["message"] == "No submissions evaluated yet"

    submission_id = submit(client).json()["data"]["submission"]["submission_id"]
    client.put(f"{API}/submissions/{submission_id}/ai-evaluate", headers=TEACHER)

    response = client.get(f"{API}/analytics/tests/test-1", headers=TEACHER)
    analytics = response.json()["analytics"]
    assert analytics["total_submissions"] == 1
    assert analytics["average_score"] == 10

    response = client.get(f"{API}/analytics/tests/test-1/students/student-1", headers=TEACHER)
    assert response.status_code == 200
    report = response.json()["data"]
    assert report["rank"] == 1
    assert report["total_marks_obtained"] == 10

    response = client.get(f"{API}/analytics/tests/test-1/students/nobody", headers=TEACHER)
    assert response.status_code == 404
