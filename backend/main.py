import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, FastAPI, Depends, HTTPException, Query, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

import access
import authoring
import intake
import responses
import users
from db import Store, get_db
from errors import FormError
from logging_setup import configure_logging
from schemas import *
from security import USER_HEADER, current_user, optional_user
from settings import DATABASE_URL, ORIGINS, DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT

logger = logging.getLogger(__name__)
router = APIRouter()

@asynccontextmanager
async def lifespan(app: FastAPI):
    store: Store = app.state.store
    store.open()
    store.create_schema()
    try:
        yield
    finally:
        store.close()

async def form_error_handler(request: Request, exc: FormError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_result().to_dict())

async def http_error_handler(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code,
                        content={"success": False, "message": str(exc.detail)},
                        headers=exc.headers)

async def invalid_input_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={
        "success": False,
        "message": "Invalid input",
        "errors": jsonable_encoder(exc.errors()),
    })

@router.get("/")
def root():
    return {"message": "Api is running"}

@router.get("/health")
def health():
    """Basic readiness probe.

    Returns:
        dict: {"ok": True}
    """
    return {"ok": True}

# ------------------------
# Users
# ------------------------
@router.post("/api/v1/user/create", status_code=201)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    """Register an identity record.

    Raises:
        StateError: 409 if the email is taken.
    """
    return users.register_user(db, payload).to_dict()

@router.get("/api/v1/user")
def me(user_id: int = Depends(current_user), db: Session = Depends(get_db)):
    return users.get_profile(db, user_id).to_dict()

# ------------------------
# Forms (owner)
# ------------------------
@router.get("/api/v1/feedback/all")
def list_forms(user_id: int = Depends(current_user), db: Session = Depends(get_db)):
    """List the caller's forms, newest first, with response counts."""
    return authoring.list_forms(db, user_id).to_dict()

@router.post("/api/v1/feedback/create", status_code=201)
def create_form(payload: FormCreate, user_id: int = Depends(current_user), db: Session = Depends(get_db)):
    """Create a form with its questions and options in one transaction.

    Args:
        payload (FormCreate): title, description?, questions[].
        user_id (int): Authenticated owner.
        db (Session): DB session.

    Returns:
        dict: {"success": True, "message": ..., "form_id": int}
    """
    return authoring.create_form(db, user_id, payload).to_dict()

@router.get("/api/v1/feedback/detail/{form_id}")
def form_detail(form_id: int, user_id: int = Depends(current_user), db: Session = Depends(get_db)):
    """Owner authoring view including closed/is_public.

    Raises:
        NotFound: 404 if the form is absent or not the caller's.
    """
    return access.form_detail(db, form_id, user_id).to_dict()

@router.get("/api/v1/feedback/{form_id}")
def view_form(form_id: int, viewer_id: Optional[int] = Depends(optional_user), db: Session = Depends(get_db)):
    """Submission view of a form for an optional viewer.

    Raises:
        NotFound: 404 if the form is absent, or private and not the viewer's.
    """
    return access.view_form(db, form_id, viewer_id).to_dict()

@router.patch("/api/v1/feedback/{form_id}")
def patch_form(form_id: int, payload: FormPatch, user_id: int = Depends(current_user),
               db: Session = Depends(get_db)):
    return authoring.patch_form(db, form_id, user_id, payload).to_dict()

@router.delete("/api/v1/feedback/{form_id}")
def delete_form(form_id: int, user_id: int = Depends(current_user), db: Session = Depends(get_db)):
    """Hard-delete a form and everything under it (via FKs).

    Raises:
        NotFound: 404 if the form is absent or not the caller's.
    """
    return authoring.delete_form(db, form_id, user_id).to_dict()

# ------------------------
# Questions
# ------------------------
@router.patch("/api/v1/question/{question_id}")
def patch_question(question_id: int, payload: QuestionPatch, user_id: int = Depends(current_user),
                   db: Session = Depends(get_db)):
    """Partially update a question; a supplied options list replaces the stored set.

    Raises:
        NotFound: 404 if the question does not exist.
        Forbidden: 403 if it belongs to another owner's form.
    """
    return authoring.patch_question(db, question_id, user_id, payload).to_dict()

@router.delete("/api/v1/question/{question_id}")
def delete_question(question_id: int, user_id: int = Depends(current_user), db: Session = Depends(get_db)):
    """Delete a question; the form closes when its last question goes.

    Raises:
        NotFound: 404 if the question does not exist.
        Forbidden: 403 if it belongs to another owner's form.
    """
    return authoring.delete_question(db, question_id, user_id).to_dict()

# ------------------------
# Responses
# ------------------------
@router.post("/api/v1/response/{form_id}", status_code=201)
def submit_response(form_id: int, payload: ResponseSubmit, db: Session = Depends(get_db)):
    """Submit an anonymous response to a public, open form.

    Args:
        form_id (int): Target form.
        payload (ResponseSubmit): answers[] (at least one).
        db (Session): DB session.

    Returns:
        dict: {"success": True, "message": ..., "response_id": int}

    Raises:
        NotFound: 404 if the form is absent or private.
        FormClosed: 403 if the form is closed.
        ValidationFailed: 400 for missing required or malformed answers.
    """
    return intake.submit_response(db, form_id, payload.answers).to_dict()

@router.get("/api/v1/response/all/{form_id}")
def list_responses(form_id: int,
                   page: int = Query(default=1, ge=1),
                   limit: int = Query(default=DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
                   user_id: int = Depends(current_user), db: Session = Depends(get_db)):
    """Paginated responses, newest first, with option labels resolved."""
    return responses.list_responses(db, form_id, user_id, page, limit).to_dict()

@router.get("/api/v1/response/all/{form_id}/export.csv")
def export_csv(form_id: int, user_id: int = Depends(current_user), db: Session = Depends(get_db)):
    """Export a form's answers as CSV (one row per answer).

    Returns:
        Response: text/csv attachment `form_<id>_responses.csv`.
    """
    content = responses.export_responses_csv(db, form_id, user_id)
    return Response(content=content.encode("utf-8"), media_type="text/csv",
                    headers={"Content-Disposition": f"attachment; filename=form_{form_id}_responses.csv"})

def create_app(store: Optional[Store] = None) -> FastAPI:
    """Build the API around an explicit store handle.

    Args:
        store (Store|None): Store to serve from; defaults to one on DATABASE_URL.
            It is opened on startup and closed on shutdown.

    Returns:
        FastAPI: The configured application.
    """
    configure_logging()
    app = FastAPI(title="Feedback Forms API", lifespan=lifespan)
    app.state.store = store or Store(DATABASE_URL)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["Content-Type", "Authorization", USER_HEADER],
    )
    app.add_exception_handler(FormError, form_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, invalid_input_handler)
    app.include_router(router)
    return app

app = create_app()
