import os
import tempfile
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

# Configure before the application modules read their settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="peereval-logs-")
os.environ["SECRET_KEY"] = "test-secret"

import pytest
from fastapi.testclient import TestClient

from peereval.db.base import Base
from peereval.db.session import SessionLocal, engine
from peereval.main import app

PASSWORD = "Passw0rd!"


@pytest.fixture
def client():
    Base.metadata.drop_all(bind=engine)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_user(client):
    def _make(email: str, role: str = "student", name: str = None, password: str = PASSWORD):
        name = name or email.split("@")[0]
        res = client.post(
            "/api/auth/register",
            json={"email": email, "password": password, "role": role, "name": name},
        )
        assert res.status_code == 200, res.text

        res = client.post("/api/auth/login", json={"email": email, "password": password})
        assert res.status_code == 200, res.text
        body = res.json()
        return SimpleNamespace(
            id=body["user"]["id"],
            email=email,
            name=name,
            role=role,
            headers=auth_headers(body["access_token"]),
        )

    return _make


@pytest.fixture
def make_project(client, make_user):
    """Instructor plus project plus students who have accepted their invites."""

    def _make(student_count: int = 2, instructor_email: str = "prof@example.com"):
        instructor = make_user(instructor_email, role="instructor", name="Prof Ada")
        res = client.post(
            "/api/projects/create",
            json={"title": "Capstone", "description": "Final year project", "instructorId": instructor.id},
            headers=instructor.headers,
        )
        assert res.status_code == 200, res.text
        project = res.json()["project"]

        students = []
        for index in range(1, student_count + 1):
            student = make_user(f"s{index}@example.com", name=f"Student {index}")
            res = client.post(
                "/api/invites/send",
                json={"projectId": project["id"], "studentEmail": student.email, "instructorId": instructor.id},
                headers=instructor.headers,
            )
            assert res.status_code == 200, res.text
            res = client.post(
                "/api/invites/respond",
                json={"inviteId": res.json()["invite"]["id"], "status": "accepted", "studentId": student.id},
                headers=student.headers,
            )
            assert res.status_code == 200, res.text
            students.append(student)

        return SimpleNamespace(instructor=instructor, project=project, students=students)

    return _make


@pytest.fixture
def make_survey(client, make_project):
    """A project whose students form one team, with a survey assigned to it."""

    def _make(student_count: int = 2, deadline: datetime = None, criteria=None):
        ctx = make_project(student_count)
        res = client.post(
            "/api/teams/create",
            json={"projectId": ctx.project["id"], "studentIds": [s.id for s in ctx.students]},
            headers=ctx.instructor.headers,
        )
        assert res.status_code == 200, res.text
        ctx.team = res.json()["team"]

        if deadline is None:
            deadline = datetime.now(timezone.utc) + timedelta(hours=1)
        if criteria is None:
            criteria = [
                {"label": "Teamwork"},
                {"label": "Communication", "minRating": 1, "maxRating": 10},
            ]
        res = client.post(
            "/api/surveys/assign",
            json={
                "projectId": ctx.project["id"],
                "creatorId": ctx.instructor.id,
                "title": "Sprint 1 review",
                "description": "Rate each teammate",
                "deadline": deadline.isoformat(),
                "criteria": criteria,
            },
            headers=ctx.instructor.headers,
        )
        assert res.status_code == 201, res.text
        body = res.json()
        ctx.survey = body["survey"]
        ctx.assignment = body["assignment"]
        ctx.criteria = body["survey"]["criteria"]
        return ctx

    return _make


@pytest.fixture
def submit(client):
    """Submit one respondent's ratings; ``ratings`` maps target id to a rating used for every criterion."""

    def _submit(ctx, respondent, ratings: dict, text: str = "Solid work"):
        answers = {
            str(target_id): {
                str(c["id"]): {"text": text, "rating": rating} for c in ctx.criteria
            }
            for target_id, rating in ratings.items()
        }
        return client.post(
            "/api/surveys/submit",
            json={
                "assignmentId": ctx.assignment["id"],
                "respondentId": respondent.id,
                "projectId": ctx.project["id"],
                "answers": answers,
            },
            headers=respondent.headers,
        )

    return _submit
