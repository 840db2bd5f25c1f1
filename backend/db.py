import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from errors import InternalError

Base = declarative_base()
logger = logging.getLogger(__name__)


def _set_sqlite_pragma(dbapi_conn, connection_record):
    # ensure ON DELETE CASCADE is respected at DB level
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Store:
    """Handle on the relational store.

    Constructed with a URL, opened once at process start and closed on
    shutdown. Sessions are handed out per operation.
    """

    def __init__(self, url: str):
        self.url = url
        self.engine: Optional[Engine] = None
        self._sessions: Optional[sessionmaker] = None

    def open(self) -> "Store":
        if self.engine is not None:
            return self
        kwargs: dict = {"pool_pre_ping": True}
        if self.url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in self.url:
                # in-memory: all sessions share one connection
                kwargs["poolclass"] = StaticPool
        elif self.url.startswith("postgresql"):
            kwargs["isolation_level"] = "READ COMMITTED"
        self.engine = create_engine(self.url, **kwargs)
        if self.url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_sqlite_pragma)
        self._sessions = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)
        logger.info("Store opened (%s)", self.engine.url.render_as_string(hide_password=True))
        return self

    def create_schema(self) -> None:
        # models must be imported so their tables are registered on Base
        import models  # noqa: F401

        Base.metadata.create_all(bind=self._require_engine())

    def session(self) -> Session:
        self._require_engine()
        return self._sessions()

    def close(self) -> None:
        if self.engine is None:
            return
        self.engine.dispose()
        self.engine = None
        self._sessions = None
        logger.info("Store closed")

    def _require_engine(self) -> Engine:
        if self.engine is None:
            raise RuntimeError("Store is not open")
        return self.engine


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """Run a block as one transaction on `db`.

    Commits on normal exit and rolls back on any exception. Storage
    failures are re-raised as `InternalError`; domain errors pass through
    unchanged once the rollback is done.
    """
    try:
        with db.begin():
            yield db
    except SQLAlchemyError as exc:
        logger.error("Transaction rolled back", exc_info=True)
        raise InternalError() from exc


def get_db(request: Request):
    db = request.app.state.store.session()
    try:
        yield db
    finally:
        db.close()
