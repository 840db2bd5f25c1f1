"""Identity records for form owners (no credentials are stored here)."""
import logging

from sqlalchemy.orm import Session

import crud
from db import transaction
from errors import Result, ok, NotFound, StateError
from schemas import UserCreate

logger = logging.getLogger(__name__)


def user_payload(u) -> dict:
    return {"id": u.id, "name": u.name, "email": u.email, "created_at": u.created_at}


def register_user(db: Session, payload: UserCreate) -> Result:
    email = payload.email.strip().lower()
    with transaction(db):
        if crud.get_user_by_email(db, email) is not None:
            raise StateError("User already exists")
        user = crud.insert_user(db, payload.name.strip(), email)
        db.refresh(user)
        data = user_payload(user)
    logger.info("User %s registered", data["id"])
    return ok("User created successfully", user=data)


def get_profile(db: Session, user_id: int) -> Result:
    with transaction(db):
        user = crud.get_user(db, user_id)
        if user is None:
            raise NotFound("User not found")
        data = user_payload(user)
    return ok("User fetched successfully", user=data)
