import itertools
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select, func

from db import Store
from main import create_app
from models import User

_emails = itertools.count(1)

@pytest.fixture
def store(tmp_path):
    # file-backed SQLite so every session sees the same data; FK pragma set by Store
    s = Store(f"sqlite:///{tmp_path / 'test.db'}").open()
    s.create_schema()
    yield s
    s.close()

@pytest.fixture
def client(store):
    return TestClient(create_app(store))

@pytest.fixture
def make_user(store):
    def _make(name="Owner"):
        with store.session() as db, db.begin():
            u = User(name=name, email=f"user{next(_emails)}@example.com")
            db.add(u)
            db.flush()
            return u.id
    return _make

@pytest.fixture
def owner(make_user):
    return make_user("Owner")

@pytest.fixture
def other(make_user):
    return make_user("Other")

@pytest.fixture
def count_rows(store):
    def _count(model, *where):
        with store.session() as db:
            return db.execute(select(func.count()).select_from(model).where(*where)).scalar_one()
    return _count

def auth(user_id):
    return {"X-User-Id": str(user_id)}

def form_payload(title="Team Feedback", questions=None):
    return {
        "title": title,
        "description": "How did we do?",
        "questions": questions if questions is not None else [
            {"question_text": "Your name", "question_type": "text", "is_required": True, "order_index": 0},
            {"question_text": "What did you like?", "question_type": "checkbox", "is_required": False,
             "order_index": 1, "options": [
                 {"option_text": "Talks", "order_index": 0},
                 {"option_text": "Food", "order_index": 1},
             ]},
        ],
    }

@pytest.fixture
def make_form(client):
    """Create a form through the API; optionally publish it."""
    def _make(user_id, payload=None, public=False):
        r = client.post("/api/v1/feedback/create", json=payload or form_payload(), headers=auth(user_id))
        assert r.status_code == 201, r.text
        form_id = r.json()["form_id"]
        if public:
            p = client.patch(f"/api/v1/feedback/{form_id}", json={"is_public": True}, headers=auth(user_id))
            assert p.status_code == 200, p.text
        return form_id
    return _make

@pytest.fixture
def detail(client):
    def _detail(form_id, user_id):
        r = client.get(f"/api/v1/feedback/detail/{form_id}", headers=auth(user_id))
        assert r.status_code == 200, r.text
        return r.json()["form"]
    return _detail
