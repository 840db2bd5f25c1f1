from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

import crud
from db import get_db, transaction

# Token verification happens upstream; the verified user id arrives in this header.
USER_HEADER = "X-User-Id"


def _lookup(db: Session, raw: Optional[str]) -> Optional[int]:
    if not raw or not raw.strip().isdigit():
        return None
    user_id = int(raw.strip())
    with transaction(db):
        user = crud.get_user(db, user_id)
    return user.id if user else None


def current_user(x_user_id: Optional[str] = Header(default=None, alias=USER_HEADER),
                 db: Session = Depends(get_db)) -> int:
    """Require an authenticated caller.

    Returns:
        int: The caller's user id.

    Raises:
        HTTPException: 401 if the header is missing or names no known user.
    """
    user_id = _lookup(db, x_user_id)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user_id


def optional_user(x_user_id: Optional[str] = Header(default=None, alias=USER_HEADER),
                  db: Session = Depends(get_db)) -> Optional[int]:
    """Caller's user id, or None for anonymous (unknown ids count as anonymous)."""
    return _lookup(db, x_user_id)
