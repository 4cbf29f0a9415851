import os

# Point the app at a private in-memory database before it is imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("ENV", "dev")

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from quiz_api import models, services
from quiz_api.auth import create_token
from quiz_api.database import engine, create_db_and_tables, drop_db_and_tables
from quiz_api.main import app


@pytest.fixture(autouse=True)
def reset_db():
    """Ensure fresh tables for every test."""
    drop_db_and_tables()
    create_db_and_tables()
    yield


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def session():
    with Session(engine) as s:
        yield s


@pytest.fixture
def make_user():
    """Create a user directly and return `(user_id, auth_headers)`."""
    def _make(username: str, role: str = models.ROLE_USER):
        with Session(engine) as s:
            user = services.AuthService(s).register(username, 'secret123', role=role)
            token = create_token(user)
            user_id = user.id
        return user_id, {'Authorization': f'Bearer {token}'}
    return _make


@pytest.fixture
def make_quiz(client):
    """Create a quiz through the API with one question per correct index.

    Returns `(quiz_id, [question_ids])`.
    """
    def _make(headers, correct_indices=(1, 0, 2), title='General knowledge', is_public=True):
        r = client.post('/api/quizzes', json={'title': title, 'is_public': is_public}, headers=headers)
        assert r.status_code == 201, r.text
        quiz_id = r.json()['data']['id']
        question_ids = []
        for n, idx in enumerate(correct_indices):
            q = client.post(
                f'/api/quizzes/{quiz_id}/questions',
                json={
                    'question_text': f'Question number {n + 1}?',
                    'options': ['alpha', 'beta', 'gamma'],
                    'correct_answer_index': idx,
                },
                headers=headers,
            )
            assert q.status_code == 201, q.text
            question_ids.append(q.json()['data']['id'])
        return quiz_id, question_ids
    return _make
