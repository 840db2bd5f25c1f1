"""Decide what a viewer may see of a form and assemble that view."""
import logging
from typing import Optional, Sequence

from sqlalchemy.orm import Session

import crud
from db import transaction
from errors import Result, ok, NotFound
from models import Form, Question, CHECKBOX
from ownership import Ownership, resolve_form, require_form_owner

logger = logging.getLogger(__name__)


def option_payload(o) -> dict:
    return {"id": o.id, "option_text": o.option_text, "order_index": o.order_index}


def question_payload(q: Question, options: Sequence = ()) -> dict:
    return {
        "id": q.id,
        "form_id": q.form_id,
        "question_text": q.question_text,
        "question_type": q.question_type,
        "is_required": q.is_required,
        "order_index": q.order_index,
        "created_at": q.created_at,
        "options": [option_payload(o) for o in options] if q.question_type == CHECKBOX else [],
    }


def questions_tree(db: Session, form_id: int) -> list[dict]:
    """Questions ascending by order_index, each with its ordered options.

    Options are fetched in one query for all checkbox questions.
    """
    questions = crud.list_questions(db, form_id)
    checkbox_ids = [q.id for q in questions if q.question_type == CHECKBOX]
    by_question: dict[int, list] = {qid: [] for qid in checkbox_ids}
    for o in crud.list_options(db, checkbox_ids):
        by_question[o.question_id].append(o)
    return [question_payload(q, by_question.get(q.id, ())) for q in questions]


def view_form(db: Session, form_id: int, viewer_id: Optional[int]) -> Result:
    """Public/submission view of a form for an optional viewer.

    Closed forms reveal only that they are closed. Private forms look
    absent to everyone but their owner.

    Raises:
        NotFound: form absent, or private and the viewer is not the owner.
    """
    with transaction(db):
        status, form = resolve_form(db, form_id, viewer_id)
        if form is None:
            raise NotFound("Form not found")
        if form.closed:
            return ok("Form is closed", form={"id": form.id, "closed": True})
        if not form.is_public and status is not Ownership.OWNER:
            raise NotFound("Form not found")
        return ok("Form fetched successfully", form={
            "id": form.id,
            "title": form.title,
            "description": form.description,
            "is_public": form.is_public,
            "created_at": form.created_at,
            "questions": questions_tree(db, form.id),
        })


def form_detail(db: Session, form_id: int, owner_id: int) -> Result:
    """Owner-only authoring view, with the raw closed/is_public flags."""
    with transaction(db):
        form = require_form_owner(db, form_id, owner_id)
        return ok("Form fetched successfully", form=detail_payload(db, form))


def detail_payload(db: Session, form: Form) -> dict:
    return {
        "id": form.id,
        "title": form.title,
        "description": form.description,
        "is_public": form.is_public,
        "closed": form.closed,
        "created_at": form.created_at,
        "updated_at": form.updated_at,
        "questions": questions_tree(db, form.id),
    }
