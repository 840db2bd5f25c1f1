"""Form authoring: create, patch and delete forms and their questions.

Each operation runs in a single transaction on the caller's session; any
failure rolls the whole operation back.
"""
import logging

from sqlalchemy.orm import Session

import crud
from access import question_payload, detail_payload
from db import transaction
from errors import Result, ok, NotFound, ValidationFailed
from models import CHECKBOX
from ownership import require_question_owner
from reconcile import present_fields, apply_changes, diff_options
from schemas import FormCreate, FormPatch, QuestionPatch

logger = logging.getLogger(__name__)


def create_form(db: Session, owner_id: int, payload: FormCreate) -> Result:
    """Create a form with its questions and checkbox options.

    Args:
        db (Session): DB session, not yet in a transaction.
        owner_id (int): Authenticated owner.
        payload (FormCreate): title, description, questions[].

    Returns:
        Result: payload {"form_id": int}.
    """
    with transaction(db):
        # a form with no questions starts closed
        form = crud.insert_form(db, owner_id, payload.title.strip(), payload.description,
                                closed=not payload.questions)
        n_options = 0
        for q in payload.questions:
            question = crud.insert_question(
                db, form.id, q.question_text, q.question_type, q.is_required, q.order_index
            )
            if q.question_type == CHECKBOX and q.options:
                for opt in q.options:
                    crud.insert_option(db, question.id, opt.option_text, opt.order_index)
                    n_options += 1
        form_id = form.id
    logger.info("Form %s created by user %s (%d questions, %d options)",
                form_id, owner_id, len(payload.questions), n_options)
    return ok("Form created successfully", form_id=form_id)


def list_forms(db: Session, owner_id: int) -> Result:
    with transaction(db):
        rows = crud.list_forms_with_counts(db, owner_id)
    forms = [{
        "id": r.id,
        "title": r.title,
        "description": r.description,
        "created_at": r.created_at,
        "closed": r.closed,
        "is_public": r.is_public,
        "response_count": int(r.response_count),
    } for r in rows]
    return ok("Forms fetched successfully", forms=forms)


def patch_form(db: Session, form_id: int, owner_id: int, payload: FormPatch) -> Result:
    """Update only the supplied form fields.

    Raises:
        ValidationFailed: nothing supplied.
        NotFound: form absent or owned by someone else.
    """
    changes = present_fields(payload)
    if not changes:
        raise ValidationFailed("At least one field must be provided")
    if "title" in changes:
        changes["title"] = changes["title"].strip()
        if not changes["title"]:
            raise ValidationFailed("Title cannot be blank")
    with transaction(db):
        if crud.update_owned_form(db, form_id, owner_id, changes) == 0:
            raise NotFound("Form not found")
        form = crud.get_form(db, form_id)
        data = detail_payload(db, form)
    logger.info("Form %s updated (%s)", form_id, ", ".join(sorted(changes)))
    return ok("Form updated", form=data)


def delete_form(db: Session, form_id: int, owner_id: int) -> Result:
    with transaction(db):
        if crud.delete_owned_form(db, form_id, owner_id) == 0:
            raise NotFound("Form not found")
    logger.info("Form %s deleted by user %s", form_id, owner_id)
    return ok("Form deleted successfully")


def patch_question(db: Session, question_id: int, requester_id: int, payload: QuestionPatch) -> Result:
    """Partially update a question and reconcile its options.

    For checkbox questions a supplied `options` list replaces the stored
    membership: unknown entries are inserted, matching ids updated in
    place, and stored options missing from the list deleted. Surviving
    options keep their ids so answers referencing them stay joinable.

    Raises:
        ValidationFailed: nothing supplied.
        NotFound: no such question.
        Forbidden: the question belongs to another owner's form.
    """
    changes = present_fields(payload, exclude=("options",))
    if not changes and payload.options is None:
        raise ValidationFailed("At least one field must be provided to update a question")
    with transaction(db):
        question = require_question_owner(db, question_id, requester_id, "modify")
        if changes:
            apply_changes(question, changes)
            db.flush()

        if question.question_type == CHECKBOX and payload.options is not None:
            stored = {o.id: o for o in crud.list_options(db, [question.id])}
            diff = diff_options(stored, payload.options)
            for oid, opt in diff.updates.items():
                crud.update_option(db, stored[oid], opt.option_text, opt.order_index)
            for opt in diff.inserts:
                crud.insert_option(db, question.id, opt.option_text, opt.order_index)
            crud.delete_options(db, diff.deletes)
            logger.info("Question %s options reconciled: +%d ~%d -%d", question.id,
                        len(diff.inserts), len(diff.updates), len(diff.deletes))

        options = crud.list_options(db, [question.id]) if question.question_type == CHECKBOX else []
        data = question_payload(question, options)
    return ok("Question updated", question=data)


def delete_question(db: Session, question_id: int, requester_id: int) -> Result:
    """Delete a question; close its form when no questions remain.

    Raises:
        NotFound: no such question.
        Forbidden: the question belongs to another owner's form.
    """
    with transaction(db):
        question = require_question_owner(db, question_id, requester_id, "delete")
        form_id = question.form_id
        if crud.delete_question(db, question_id) == 0:
            raise NotFound("Question not found")
        remaining = crud.count_questions(db, form_id)
        if remaining == 0:
            crud.set_form_closed(db, form_id, True)
    if remaining == 0:
        logger.info("Form %s closed: last question %s deleted", form_id, question_id)
    else:
        logger.info("Question %s deleted from form %s", question_id, form_id)
    return ok("Question deleted successfully", form_closed=remaining == 0)
