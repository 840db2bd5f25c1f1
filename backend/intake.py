"""Validate and store a respondent's submission to a public form."""
import logging
import math
from datetime import date
from typing import Optional, Sequence
from urllib.parse import urlparse

from pydantic import EmailStr, TypeAdapter, ValidationError
from sqlalchemy.orm import Session

import crud
from db import transaction
from errors import Result, ok, NotFound, FormClosed, ValidationFailed
from models import CHECKBOX
from schemas import AnswerIn

logger = logging.getLogger(__name__)

_EMAIL = TypeAdapter(EmailStr)


def _has_text(value: Optional[str]) -> bool:
    return value is not None and value.strip() != ""


def _has_value(answer: AnswerIn) -> bool:
    return _has_text(answer.answer_text) or answer.option_id is not None


def _is_email(value: str) -> bool:
    try:
        _EMAIL.validate_python(value)
    except ValidationError:
        return False
    return True


def _is_number(value: str) -> bool:
    # float() also accepts digit-group underscores ("1_000")
    if "_" in value:
        return False
    try:
        return math.isfinite(float(value))
    except ValueError:
        return False


def _is_date(value: str) -> bool:
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def _is_url(value: str) -> bool:
    parts = urlparse(value)
    return parts.scheme in ("http", "https") and bool(parts.netloc)


_TEXT_CHECKS = {
    "email": (_is_email, "a valid email address"),
    "number": (_is_number, "a number"),
    "date": (_is_date, "a date (YYYY-MM-DD)"),
    "url": (_is_url, "an http(s) URL"),
}


def check_answer_kind(question, answer: AnswerIn, option_ids: set) -> Optional[str]:
    """Return an error message if `answer` does not fit the question's kind, else None."""
    if question.question_type == CHECKBOX:
        if answer.option_id is None:
            return f"Question {question.id} expects an option_id."
        if answer.option_id not in option_ids:
            return f"Option {answer.option_id} does not belong to question {question.id}."
        return None
    if answer.option_id is not None:
        return f"Question {question.id} does not accept options."
    if not _has_text(answer.answer_text):
        return f"Question {question.id} expects answer_text."
    check = _TEXT_CHECKS.get(question.question_type)
    if check and not check[0](answer.answer_text.strip()):
        return f"Answer to question {question.id} must be {check[1]}."
    return None


def validate_answers(questions: Sequence, options_by_question: dict, answers: Sequence[AnswerIn]) -> None:
    """Check a submission against the form's live questions.

    Raises:
        ValidationFailed: a required question is unanswered, an answer
            targets a question outside the form, carries neither text nor
            option, or does not fit its question's kind.
    """
    question_map = {q.id: q for q in questions}
    answered = {a.question_id for a in answers if _has_value(a)}

    for qid, q in question_map.items():
        if q.is_required and qid not in answered:
            raise ValidationFailed(f"Required question ({qid}) is missing or incomplete.")

    for a in answers:
        question = question_map.get(a.question_id)
        if question is None:
            raise ValidationFailed(f"Question {a.question_id} does not exist in this form.")
        if not _has_value(a):
            raise ValidationFailed("Each answer must have at least answer_text or option_id.")
        problem = check_answer_kind(question, a, options_by_question.get(question.id, set()))
        if problem:
            raise ValidationFailed(problem)


def submit_response(db: Session, form_id: int, answers: Sequence[AnswerIn]) -> Result:
    """Store one response and its answers, or nothing at all.

    Raises:
        NotFound: form absent or not public.
        FormClosed: form no longer accepts responses.
        ValidationFailed: see `validate_answers`.
    """
    with transaction(db):
        form = crud.get_form(db, form_id)
        if form is None or not form.is_public:
            raise NotFound("Form not found")
        if form.closed:
            raise FormClosed("Form is closed")

        questions = crud.list_questions(db, form_id)
        options_by_question: dict[int, set] = {}
        for o in crud.list_options(db, [q.id for q in questions if q.question_type == CHECKBOX]):
            options_by_question.setdefault(o.question_id, set()).add(o.id)

        try:
            validate_answers(questions, options_by_question, answers)
        except ValidationFailed as exc:
            logger.warning("Submission to form %s rejected: %s", form_id, exc.message)
            raise

        response = crud.insert_response(db, form_id)
        for a in answers:
            text = a.answer_text if _has_text(a.answer_text) else None
            crud.insert_answer(db, response.id, a.question_id, text, a.option_id)
        response_id = response.id
    logger.info("Response %s stored for form %s (%d answers)", response_id, form_id, len(answers))
    return ok("Response submitted successfully", response_id=response_id)
