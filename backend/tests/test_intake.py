from types import SimpleNamespace

import pytest
from sqlalchemy.exc import SQLAlchemyError

import crud
import intake
from conftest import auth, form_payload
from errors import InternalError, ValidationFailed
from models import Response, Answer
from schemas import AnswerIn

KINDS = form_payload(questions=[
    {"question_text": "Name", "question_type": "text", "is_required": True, "order_index": 0},
    {"question_text": "Email", "question_type": "email", "is_required": False, "order_index": 1},
    {"question_text": "Age", "question_type": "number", "is_required": False, "order_index": 2},
    {"question_text": "When", "question_type": "date", "is_required": False, "order_index": 3},
    {"question_text": "Site", "question_type": "url", "is_required": False, "order_index": 4},
    {"question_text": "Pick", "question_type": "checkbox", "is_required": False, "order_index": 5,
     "options": [{"option_text": "A", "order_index": 0}, {"option_text": "B", "order_index": 1}]},
])

def _questions(client, fid):
    return {q["question_text"]: q for q in client.get(f"/api/v1/feedback/{fid}").json()["form"]["questions"]}

def test_submit_full_response(client, owner, make_form, count_rows):
    fid = make_form(owner, KINDS, public=True)
    qs = _questions(client, fid)
    pick = qs["Pick"]
    r = client.post(f"/api/v1/response/{fid}", json={"answers": [
        {"question_id": qs["Name"]["id"], "answer_text": "Ann"},
        {"question_id": qs["Email"]["id"], "answer_text": "ann@example.com"},
        {"question_id": qs["Age"]["id"], "answer_text": "41"},
        {"question_id": qs["When"]["id"], "answer_text": "2026-10-19"},
        {"question_id": qs["Site"]["id"], "answer_text": "https://example.com/x"},
        {"question_id": pick["id"], "option_id": pick["options"][0]["id"]},
        {"question_id": pick["id"], "option_id": pick["options"][1]["id"]},
    ]})
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["success"] is True and isinstance(body["response_id"], int)
    assert count_rows(Response) == 1
    assert count_rows(Answer, Answer.response_id == body["response_id"]) == 7

def test_missing_required_answer_commits_nothing(client, owner, make_form, count_rows):
    fid = make_form(owner, KINDS, public=True)
    qs = _questions(client, fid)
    r = client.post(f"/api/v1/response/{fid}", json={"answers": [
        {"question_id": qs["Age"]["id"], "answer_text": "30"},
    ]})
    assert r.status_code == 400
    assert str(qs["Name"]["id"]) in r.json()["message"]

    # blank text does not satisfy a required question either
    r = client.post(f"/api/v1/response/{fid}", json={"answers": [
        {"question_id": qs["Name"]["id"], "answer_text": "   "},
    ]})
    assert r.status_code == 400

    assert count_rows(Response) == 0 and count_rows(Answer) == 0
    lst = client.get(f"/api/v1/response/all/{fid}", headers=auth(owner)).json()
    assert lst["responses"] == [] and lst["pagination"]["total"] == 0

def test_private_form_rejects_as_not_found(client, owner, make_form):
    fid = make_form(owner)  # private by default
    qid = client.get(f"/api/v1/feedback/detail/{fid}", headers=auth(owner)).json()["form"]["questions"][0]["id"]
    answers = {"answers": [{"question_id": qid, "answer_text": "x"}]}

    private = client.post(f"/api/v1/response/{fid}", json=answers)
    missing = client.post("/api/v1/response/999999", json=answers)
    assert private.status_code == missing.status_code == 404
    assert private.json() == missing.json() == {"success": False, "message": "Form not found"}

def test_closed_form_rejects_distinctly(client, owner, make_form, count_rows):
    fid = make_form(owner, public=True)
    qid = _questions(client, fid)["Your name"]["id"]
    client.patch(f"/api/v1/feedback/{fid}", json={"closed": True}, headers=auth(owner))

    r = client.post(f"/api/v1/response/{fid}", json={"answers": [{"question_id": qid, "answer_text": "x"}]})
    assert r.status_code == 403
    assert r.json()["message"] == "Form is closed"
    assert count_rows(Response) == 0

def test_answer_for_foreign_question_rejected(client, owner, make_form, count_rows):
    fid = make_form(owner, public=True)
    other_fid = make_form(owner, form_payload(title="Other"), public=True)
    mine = _questions(client, fid)["Your name"]["id"]
    foreign = _questions(client, other_fid)["Your name"]["id"]

    r = client.post(f"/api/v1/response/{fid}", json={"answers": [
        {"question_id": mine, "answer_text": "me"},
        {"question_id": foreign, "answer_text": "sneaky"},
    ]})
    assert r.status_code == 400
    assert f"Question {foreign} does not exist in this form." == r.json()["message"]
    assert count_rows(Response) == 0

def test_answer_without_value_rejected(client, owner, make_form):
    fid = make_form(owner, public=True)
    qs = _questions(client, fid)
    r = client.post(f"/api/v1/response/{fid}", json={"answers": [
        {"question_id": qs["Your name"]["id"], "answer_text": "me"},
        {"question_id": qs["What did you like?"]["id"]},
    ]})
    assert r.status_code == 400
    assert r.json()["message"] == "Each answer must have at least answer_text or option_id."

def test_empty_answer_list_is_invalid_input(client, owner, make_form):
    fid = make_form(owner, public=True)
    r = client.post(f"/api/v1/response/{fid}", json={"answers": []})
    assert r.status_code == 400
    assert r.json()["message"] == "Invalid input"

@pytest.mark.parametrize("kind,value", [
    ("Email", "not-an-email"),
    ("Email", "a@b..c"),
    ("Email", "ann@exa..mple..com"),
    ("Age", "1_000"),
    ("Age", "forty"),
    ("When", "19/10/2026"),
    ("Site", "ftp://example.com"),
])
def test_answer_kind_constraints(client, owner, make_form, kind, value):
    fid = make_form(owner, KINDS, public=True)
    qs = _questions(client, fid)
    r = client.post(f"/api/v1/response/{fid}", json={"answers": [
        {"question_id": qs["Name"]["id"], "answer_text": "Ann"},
        {"question_id": qs[kind]["id"], "answer_text": value},
    ]})
    assert r.status_code == 400, r.text

def test_checkbox_option_must_belong_to_question(client, owner, make_form):
    fid = make_form(owner, KINDS, public=True)
    other_fid = make_form(owner, public=True)
    qs = _questions(client, fid)
    foreign_option = _questions(client, other_fid)["What did you like?"]["options"][0]["id"]

    base = {"question_id": qs["Name"]["id"], "answer_text": "Ann"}
    r = client.post(f"/api/v1/response/{fid}", json={"answers": [
        base, {"question_id": qs["Pick"]["id"], "option_id": foreign_option},
    ]})
    assert r.status_code == 400

    # free text on a checkbox question
    r = client.post(f"/api/v1/response/{fid}", json={"answers": [
        base, {"question_id": qs["Pick"]["id"], "answer_text": "A"},
    ]})
    assert r.status_code == 400

    # an option on a text question
    r = client.post(f"/api/v1/response/{fid}", json={"answers": [
        {"question_id": qs["Name"]["id"], "answer_text": "Ann", "option_id": qs["Pick"]["options"][0]["id"]},
    ]})
    assert r.status_code == 400

def test_storage_failure_rolls_back_submission(store, client, owner, make_form, monkeypatch, count_rows):
    fid = make_form(owner, KINDS, public=True)
    qs = _questions(client, fid)
    real_insert = crud.insert_answer
    calls = {"n": 0}

    def flaky_insert(db, *args):
        calls["n"] += 1
        if calls["n"] == 2:
            raise SQLAlchemyError("connection lost")
        return real_insert(db, *args)

    monkeypatch.setattr(crud, "insert_answer", flaky_insert)
    answers = [
        AnswerIn(question_id=qs["Name"]["id"], answer_text="Ann"),
        AnswerIn(question_id=qs["Age"]["id"], answer_text="3"),
    ]
    with store.session() as db:
        with pytest.raises(InternalError):
            intake.submit_response(db, fid, answers)
    assert count_rows(Response) == 0 and count_rows(Answer) == 0

    calls["n"] = 0
    r = client.post(f"/api/v1/response/{fid}", json={"answers": [a.model_dump() for a in answers]})
    assert r.status_code == 500
    assert r.json() == {"success": False, "message": "Internal server error"}

def test_validate_answers_without_database():
    questions = [
        SimpleNamespace(id=1, is_required=True, question_type="text"),
        SimpleNamespace(id=2, is_required=False, question_type="checkbox"),
    ]
    options = {2: {10, 11}}
    intake.validate_answers(questions, options, [
        AnswerIn(question_id=1, answer_text="hi"),
        AnswerIn(question_id=2, option_id=11),
    ])
    with pytest.raises(ValidationFailed, match=r"Required question \(1\)"):
        intake.validate_answers(questions, options, [AnswerIn(question_id=2, option_id=10)])
    with pytest.raises(ValidationFailed):
        intake.validate_answers(questions, options, [
            AnswerIn(question_id=1, answer_text="hi"),
            AnswerIn(question_id=2, option_id=12),
        ])
