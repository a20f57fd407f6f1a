import logging
import sqlite3
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from lk_documents.config import settings
from lk_documents.errors import (
    PermanentPersistenceError,
    PersistenceError,
    TransientPersistenceError,
)

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def _set_sqlite_pragmas(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine(db_path: Path | None = None):
    path = db_path or settings.db_path
    engine = create_engine(
        f"sqlite:///{path}",
        connect_args={"check_same_thread": False},
    )
    event.listen(engine, "connect", _set_sqlite_pragmas)
    return engine


engine = get_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


# Operational errors that clear up on their own; everything else (missing
# tables or columns, malformed SQL) is a schema problem and stays permanent.
_TRANSIENT_MARKERS = (
    "database is locked",
    "database is busy",
    "database table is locked",
    "disk i/o error",
    "unable to open database",
    "deadlock",
    "could not serialize",
    "server closed the connection",
    "lost connection",
    "connection reset",
    "timed out",
)


def classify_db_error(exc: sa_exc.SQLAlchemyError) -> PersistenceError:
    """Map a SQLAlchemy failure onto the retryable/non-retryable split."""
    detail = str(getattr(exc, "orig", None) or exc)
    if isinstance(exc, (sa_exc.TimeoutError, sa_exc.DisconnectionError)):
        return TransientPersistenceError(detail)
    if getattr(exc, "connection_invalidated", False):
        return TransientPersistenceError(detail)
    if isinstance(exc, sa_exc.OperationalError):
        message = detail.lower()
        if any(marker in message for marker in _TRANSIENT_MARKERS):
            return TransientPersistenceError(detail)
    return PermanentPersistenceError(detail)


class UnitOfWork:
    """One session, one transaction: commit on success, roll back otherwise."""

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self._session_factory = session_factory
        self.session: Session | None = None

    def __enter__(self) -> "UnitOfWork":
        self.session = self._session_factory()
        return self

    def __exit__(self, exc_type, exc, tb):
        try:
            if exc_type is None:
                try:
                    self.session.commit()
                except sa_exc.SQLAlchemyError as commit_exc:
                    self.session.rollback()
                    raise classify_db_error(commit_exc) from commit_exc
            else:
                self.session.rollback()
                if isinstance(exc, sa_exc.SQLAlchemyError):
                    raise classify_db_error(exc) from exc
        finally:
            self.session.close()
        return False


SCHEMA_SQL = """\
-- ============================================================
-- DOCUMENTS
-- ============================================================
CREATE TABLE IF NOT EXISTS document (
    doc_id          INTEGER PRIMARY KEY AUTOINCREMENT,
    status          TEXT,
    doc_type        TEXT NOT NULL CHECK(doc_type IN ('LP_INTRODUCE_GOODS')),
    import_request  INTEGER NOT NULL DEFAULT 0,
    owner_inn       TEXT,
    participant_inn TEXT,
    producer_inn    TEXT,
    production_date TEXT NOT NULL,
    production_type TEXT,
    reg_date        TEXT NOT NULL,
    reg_number      TEXT
);

-- ============================================================
-- DESCRIPTIONS (at most one per document)
-- ============================================================
CREATE TABLE IF NOT EXISTS description (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    participant_inn TEXT NOT NULL CHECK(length(participant_inn) > 0),
    doc_id          INTEGER UNIQUE REFERENCES document(doc_id)
);

-- ============================================================
-- PRODUCTS
-- ============================================================
CREATE TABLE IF NOT EXISTS product (
    id                        INTEGER PRIMARY KEY AUTOINCREMENT,
    certificate_document      TEXT,
    certificate_document_date TEXT,
    owner_inn                 TEXT,
    production_date           TEXT,
    tnved_code                TEXT,
    uit_code                  TEXT,
    uitu_code                 TEXT,
    doc_id                    INTEGER REFERENCES document(doc_id)
);

CREATE INDEX IF NOT EXISTS idx_product_doc ON product(doc_id);
"""


def init_db(db_path: Path | None = None):
    path = db_path or settings.db_path
    conn = sqlite3.connect(str(path))
    try:
        conn.executescript(SCHEMA_SQL)
    finally:
        conn.close()
    logger.info("Schema ready at %s", path)
