"""Owner-side reads of collected responses: paginated listing and CSV export."""
import logging
import math

import pandas as pd
from sqlalchemy.orm import Session

import crud
from db import transaction
from errors import Result, ok
from ownership import require_form_owner

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = ["response_id", "created_at", "question_id", "question", "question_type",
                  "answer_text", "option_id", "option_text"]


def group_answers(responses, answer_rows) -> list[dict]:
    """Reassemble flat answer rows into one entry per response.

    Keeps the order of `responses` and, within each response, the order of
    `answer_rows`. Rows for responses outside the page are dropped.
    """
    by_id = {
        r.id: {"id": r.id, "created_at": r.created_at, "answers": []}
        for r in responses
    }
    for a in answer_rows:
        entry = by_id.get(a.response_id)
        if entry is None:
            continue
        entry["answers"].append({
            "question_id": a.question_id,
            "answer_text": a.answer_text,
            "option_id": a.option_id,
            "option_text": a.option_text if a.option_id is not None else None,
        })
    return list(by_id.values())


def list_responses(db: Session, form_id: int, owner_id: int, page: int, limit: int) -> Result:
    """One page of a form's responses, newest first.

    Args:
        db (Session): DB session.
        form_id (int): Form whose responses to list.
        owner_id (int): Requester; must own the form.
        page (int): 1-based page number.
        limit (int): Page size.

    Returns:
        Result: {"responses": [...], "pagination": {page, limit, total, totalPages, count}}

    Raises:
        NotFound: form absent or not owned by the requester.
    """
    with transaction(db):
        require_form_owner(db, form_id, owner_id)
        total = crud.count_responses(db, form_id)
        rows = crud.page_responses(db, form_id, limit, (page - 1) * limit)
        answer_rows = crud.answers_for_responses(db, [r.id for r in rows])
    items = group_answers(rows, answer_rows)
    pagination = {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": math.ceil(total / limit),
        "count": len(items),
    }
    message = "Responses fetched" if items else "No responses yet"
    return ok(message, responses=items, pagination=pagination)


def export_responses_csv(db: Session, form_id: int, owner_id: int) -> str:
    """Export every answer of a form as CSV text (one row per answer).

    Raises:
        NotFound: form absent or not owned by the requester.
    """
    with transaction(db):
        require_form_owner(db, form_id, owner_id)
        df = pd.read_sql(crud.answer_export_query(form_id), db.connection())
    df = df.reindex(columns=EXPORT_COLUMNS)
    # option_id is NULL for text answers; keep it integral instead of float
    df["option_id"] = df["option_id"].astype("Int64")
    logger.info("Exported %d answer rows for form %s", len(df), form_id)
    return df.to_csv(index=False)
