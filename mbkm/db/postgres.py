from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, Session
from contextlib import contextmanager
from mbkm.core.config import get_settings
from mbkm.core.logging import get_logger

settings = get_settings()
logger = get_logger(__name__)


def _engine_options(url: str) -> dict:
    options = {"echo": settings.db_echo}
    if url.startswith("sqlite"):
        # TestClient runs the app in a worker thread
        options["connect_args"] = {"check_same_thread": False}
    else:
        # pool_size=5: maintain 5 connections ready
        # max_overflow=10: allow 10 extra connections under load
        options.update(pool_size=5, max_overflow=10, pool_pre_ping=True)
    return options


engine = create_engine(settings.sqlalchemy_url, **_engine_options(settings.sqlalchemy_url))

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_db_session():
    """
    Context manager for database sessions. One block is one transaction.
    Usage:
        with get_db_session() as db:
            db.execute(text("SELECT * FROM users"))
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def test_postgres_connection() -> bool:
    """
    Test if the database is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        with get_db_session() as db:
            result = db.execute(text("SELECT 1 as test"))
            row = result.fetchone()
            return row[0] == 1
    except Exception as e:
        logger.warning("Database connection failed: %s", e)
        return False


def rows_to_dicts(result) -> list:
    columns = list(result.keys())
    return [dict(zip(columns, row)) for row in result.fetchall()]


def fetch_one(db: Session, sql: str, params: dict = None):
    """Run a query inside an open session and return the first row as a dict (or None)."""
    result = db.execute(text(sql), params or {})
    row = result.fetchone()
    if row is None:
        return None
    return dict(zip(result.keys(), row))


def fetch_all(db: Session, sql: str, params: dict = None) -> list:
    """Run a query inside an open session and return all rows as dicts."""
    return rows_to_dicts(db.execute(text(sql), params or {}))
