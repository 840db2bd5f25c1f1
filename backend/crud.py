"""Row-level persistence primitives.

Every function takes the caller's `Session` so several of them can share
one transaction. No business rules live here.
"""
from typing import Optional, Sequence

from sqlalchemy import select, update, delete, func
from sqlalchemy.orm import Session

from models import User, Form, Question, Option, Response, Answer


# ------------------------
# Users
# ------------------------
def insert_user(db: Session, name: str, email: str) -> User:
    row = User(name=name, email=email)
    db.add(row)
    db.flush()
    return row

def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.get(User, user_id)

def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.execute(select(User).where(User.email == email)).scalar_one_or_none()


# ------------------------
# Forms
# ------------------------
def insert_form(db: Session, user_id: int, title: str, description: Optional[str],
                closed: bool = False) -> Form:
    row = Form(user_id=user_id, title=title, description=description, closed=closed, is_public=False)
    db.add(row)
    db.flush()
    return row

def get_form(db: Session, form_id: int) -> Optional[Form]:
    return db.get(Form, form_id)

def get_owned_form(db: Session, form_id: int, user_id: int) -> Optional[Form]:
    return db.execute(
        select(Form).where(Form.id == form_id, Form.user_id == user_id)
    ).scalar_one_or_none()

def update_owned_form(db: Session, form_id: int, user_id: int, values: dict) -> int:
    """Update the given columns of a form the user owns; return rows affected."""
    result = db.execute(
        update(Form)
        .where(Form.id == form_id, Form.user_id == user_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount

def set_form_closed(db: Session, form_id: int, closed: bool = True) -> None:
    db.execute(
        update(Form).where(Form.id == form_id).values(closed=closed)
        .execution_options(synchronize_session=False)
    )

def delete_owned_form(db: Session, form_id: int, user_id: int) -> int:
    result = db.execute(
        delete(Form).where(Form.id == form_id, Form.user_id == user_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount

def list_forms_with_counts(db: Session, user_id: int) -> list:
    q = (
        select(
            Form.id, Form.title, Form.description, Form.created_at, Form.closed, Form.is_public,
            func.count(Response.id).label("response_count"),
        )
        .join(Response, Response.form_id == Form.id, isouter=True)
        .where(Form.user_id == user_id)
        .group_by(Form.id)
        .order_by(Form.created_at.desc(), Form.id.desc())
    )
    return db.execute(q).all()


# ------------------------
# Questions
# ------------------------
def insert_question(db: Session, form_id: int, question_text: str, question_type: str,
                    is_required: bool, order_index: int) -> Question:
    row = Question(form_id=form_id, question_text=question_text, question_type=question_type,
                   is_required=is_required, order_index=order_index)
    db.add(row)
    db.flush()
    return row

def get_question_with_owner(db: Session, question_id: int):
    """Return (question, owner_user_id) or None, joining Question to its Form."""
    return db.execute(
        select(Question, Form.user_id)
        .join(Form, Form.id == Question.form_id)
        .where(Question.id == question_id)
    ).first()

def list_questions(db: Session, form_id: int) -> Sequence[Question]:
    return db.execute(
        select(Question).where(Question.form_id == form_id)
        .order_by(Question.order_index, Question.id)
    ).scalars().all()

def count_questions(db: Session, form_id: int) -> int:
    return db.execute(
        select(func.count()).select_from(Question).where(Question.form_id == form_id)
    ).scalar_one()

def delete_question(db: Session, question_id: int) -> int:
    result = db.execute(
        delete(Question).where(Question.id == question_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


# ------------------------
# Options
# ------------------------
def insert_option(db: Session, question_id: int, option_text: str, order_index: int) -> Option:
    row = Option(question_id=question_id, option_text=option_text, order_index=order_index)
    db.add(row)
    db.flush()
    return row

def list_options(db: Session, question_ids: Sequence[int]) -> Sequence[Option]:
    if not question_ids:
        return []
    return db.execute(
        select(Option).where(Option.question_id.in_(question_ids))
        .order_by(Option.question_id, Option.order_index, Option.id)
    ).scalars().all()

def update_option(db: Session, row: Option, option_text: str, order_index: int) -> Option:
    row.option_text = option_text
    row.order_index = order_index
    db.flush()
    return row

def delete_options(db: Session, option_ids: Sequence[int]) -> int:
    if not option_ids:
        return 0
    result = db.execute(
        delete(Option).where(Option.id.in_(option_ids))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


# ------------------------
# Responses / answers
# ------------------------
def insert_response(db: Session, form_id: int) -> Response:
    row = Response(form_id=form_id)
    db.add(row)
    db.flush()
    return row

def insert_answer(db: Session, response_id: int, question_id: int,
                  answer_text: Optional[str], option_id: Optional[int]) -> Answer:
    row = Answer(response_id=response_id, question_id=question_id,
                 answer_text=answer_text, option_id=option_id)
    db.add(row)
    db.flush()
    return row

def count_responses(db: Session, form_id: int) -> int:
    return db.execute(
        select(func.count()).select_from(Response).where(Response.form_id == form_id)
    ).scalar_one()

def page_responses(db: Session, form_id: int, limit: int, offset: int) -> list:
    return db.execute(
        select(Response.id, Response.created_at)
        .where(Response.form_id == form_id)
        .order_by(Response.created_at.desc(), Response.id.desc())
        .limit(limit).offset(offset)
    ).all()

def answers_for_responses(db: Session, response_ids: Sequence[int]) -> list:
    if not response_ids:
        return []
    return db.execute(
        select(Answer.response_id, Answer.question_id, Answer.answer_text,
               Answer.option_id, Option.option_text)
        .join(Option, Option.id == Answer.option_id, isouter=True)
        .where(Answer.response_id.in_(response_ids))
        .order_by(Answer.response_id, Answer.id)
    ).all()

def answer_export_query(form_id: int):
    """Select statement for the flat per-answer export of a form."""
    return (
        select(Response.id.label("response_id"), Response.created_at,
               Question.id.label("question_id"), Question.question_text.label("question"),
               Question.question_type, Answer.answer_text, Answer.option_id, Option.option_text)
        .join(Answer, Answer.response_id == Response.id)
        .join(Question, Question.id == Answer.question_id)
        .join(Option, Option.id == Answer.option_id, isouter=True)
        .where(Response.form_id == form_id)
        .order_by(Response.created_at, Response.id, Question.order_index, Answer.id)
    )
