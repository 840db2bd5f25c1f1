"""Resolve who owns a question or form, decided in one place.

Patch and delete paths call these instead of joining ad hoc, so
"not found" versus "not yours" is settled consistently.
"""
from __future__ import annotations
import enum
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

import crud
from errors import NotFound, Forbidden
from models import Form, Question


class Ownership(enum.Enum):
    OWNER = "owner"
    NOT_OWNER = "not_owner"
    NOT_FOUND = "not_found"


@dataclass
class QuestionOwnership:
    status: Ownership
    question: Optional[Question] = None


def resolve_question(db: Session, question_id: int, requester_id: int) -> QuestionOwnership:
    row = crud.get_question_with_owner(db, question_id)
    if row is None:
        return QuestionOwnership(Ownership.NOT_FOUND)
    question, owner_id = row
    if owner_id != requester_id:
        return QuestionOwnership(Ownership.NOT_OWNER, question)
    return QuestionOwnership(Ownership.OWNER, question)


def require_question_owner(db: Session, question_id: int, requester_id: int, action: str = "modify") -> Question:
    """Return the question if `requester_id` owns its form.

    Raises:
        NotFound: no such question.
        Forbidden: the question belongs to another owner's form.
    """
    found = resolve_question(db, question_id, requester_id)
    if found.status is Ownership.NOT_FOUND:
        raise NotFound("Question not found")
    if found.status is Ownership.NOT_OWNER:
        raise Forbidden(f"Unauthorized to {action} this question")
    return found.question


def resolve_form(db: Session, form_id: int, requester_id: Optional[int]) -> tuple[Ownership, Optional[Form]]:
    form = crud.get_form(db, form_id)
    if form is None:
        return Ownership.NOT_FOUND, None
    if requester_id is None or form.user_id != requester_id:
        return Ownership.NOT_OWNER, form
    return Ownership.OWNER, form


def require_form_owner(db: Session, form_id: int, requester_id: int) -> Form:
    """Return the form if owned by `requester_id`.

    Unowned forms are reported exactly like missing ones.
    """
    status, form = resolve_form(db, form_id, requester_id)
    if status is not Ownership.OWNER:
        raise NotFound("Form not found")
    return form
