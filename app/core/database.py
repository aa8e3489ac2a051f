"""Database configuration and session management."""
import logging
from contextlib import contextmanager
from threading import Lock
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.core.config import settings

logger = logging.getLogger(__name__)

# Base class for models
Base = declarative_base()


class Database:
    """
    Owns the engine and session factory for one database URL.

    The engine is created on first use. Concurrent first callers wait on the
    same lock, so only one of them builds the connection pool.
    """

    def __init__(self, url: str, echo: bool = False, **engine_kwargs):
        self.url = url
        self.echo = echo
        self.engine_kwargs = engine_kwargs
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None
        self._lock = Lock()

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            with self._lock:
                if self._engine is None:
                    self._engine = self._create_engine()
        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        if self._session_factory is None:
            engine = self.engine
            with self._lock:
                if self._session_factory is None:
                    self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        return self._session_factory

    def _create_engine(self) -> Engine:
        kwargs = dict(self.engine_kwargs)
        if self.url.startswith("sqlite"):
            # SQLite requires check_same_thread=False for FastAPI
            kwargs.setdefault("connect_args", {"check_same_thread": False})
        else:
            kwargs.setdefault("pool_pre_ping", True)   # Verify connections before use
            kwargs.setdefault("pool_recycle", 300)     # Recycle connections every 5 minutes
            kwargs.setdefault("pool_timeout", 30)      # Wait up to 30s for a connection from pool
        logger.info("Creating database engine for %s", self.url.split("://", 1)[0])
        return create_engine(self.url, echo=self.echo, **kwargs)

    def session(self) -> Session:
        """Open a new ORM session."""
        return self.session_factory()

    def dispose(self) -> None:
        """Release pooled connections; the next caller re-initializes."""
        with self._lock:
            if self._engine is not None:
                self._engine.dispose()
            self._engine = None
            self._session_factory = None


database = Database(settings.DATABASE_URL, echo=settings.ENVIRONMENT == "development")


def get_db() -> Generator[Session, None, None]:
    """
    Dependency to get database session.

    Usage:
        @app.get("/items/")
        def read_items(db: Session = Depends(get_db)):
            return db.query(Item).all()
    """
    db = database.session()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope(db_handle: Optional[Database] = None) -> Generator[Session, None, None]:
    """Session for use outside of a request (jobs, scripts)."""
    db = (db_handle or database).session()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
