# storefront/database.py
import logging
import time
from contextlib import contextmanager
from typing import Annotated, Callable, Iterator, TypeVar

from fastapi import Path, Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from storefront.config import Settings

logger = logging.getLogger(__name__)

Base = declarative_base()

# Largest value an INTEGER column holds on every supported backend
DB_INT_MAX = 2**31 - 1
# Path parameter for a primary key; out-of-range ids are a 400, not a driver error
RowId = Annotated[int, Path(ge=1, le=DB_INT_MAX)]

T = TypeVar("T")


def normalize_url(url: str) -> str:
    # Managed Postgres providers still hand out postgres:// URLs, SQLAlchemy needs postgresql://
    if url and url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


class Database:
    """Owns the engine (connection pool) and the session factory.

    One instance is built per application and attached to ``app.state.db``;
    request handlers borrow a session through :func:`get_db`.
    """

    def __init__(self, url: str, timeout_seconds: int = 10, pool_size: int = 5):
        self.url = normalize_url(url)
        self.timeout_seconds = timeout_seconds

        engine_kwargs = {}
        if self.url.startswith("sqlite"):
            # SQLite busy timeout doubles as the per-statement bound
            connect_args = {"check_same_thread": False, "timeout": timeout_seconds}
        else:
            connect_args = {"options": f"-c statement_timeout={timeout_seconds * 1000}"}
            engine_kwargs.update(pool_size=pool_size, pool_timeout=timeout_seconds, pool_pre_ping=True)

        self.engine: Engine = create_engine(self.url, connect_args=connect_args, **engine_kwargs)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(settings.DATABASE_URL, settings.DB_TIMEOUT_SECONDS, settings.DB_POOL_SIZE)

    @property
    def is_sqlite(self) -> bool:
        return self.engine.dialect.name == "sqlite"

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Borrow a session for work outside a request; always returned to the pool."""
        db = self.SessionLocal()
        try:
            yield db
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def init_db(self):
        # Import models so every table is registered on Base.metadata
        from storefront.models import cart, log, order, product, refresh_token, users  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def ping(self) -> bool:
        with self.engine.connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1

    def dispose(self):
        self.engine.dispose()


def get_db(request: Request):
    db = request.app.state.db.SessionLocal()
    try:
        yield db
    finally:
        db.close()


def run_with_retry(db: Session, func: Callable[[], T], *, attempts: int = 3, backoff_base: float = 0.05) -> T:
    """
    Execute a unit of work, retrying on lock-related OperationalError.

    The session is rolled back before every retry so the unit re-reads
    committed state. The last failure propagates to the caller.
    """
    for attempt in range(attempts):
        try:
            return func()
        except OperationalError as exc:
            db.rollback()
            if attempt >= attempts - 1:
                raise
            logger.warning("Retrying after database contention (attempt %s/%s): %s",
                           attempt + 1, attempts, exc.orig)
            time.sleep(backoff_base * (2 ** attempt))
    raise RuntimeError("run_with_retry called with attempts < 1")
