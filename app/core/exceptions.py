"""Application error taxonomy."""
import logging
from contextlib import contextmanager
from typing import Generator, Optional, Type

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors that map to a client-facing JSON response."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """Missing or invalid input."""

    status_code = 400
    code = "validation_error"


class PermissionDeniedError(AppError):
    status_code = 403
    code = "forbidden"


class NotFoundError(AppError):
    """Row absent, or owned by someone else. The two are not distinguished."""

    status_code = 404
    code = "not_found"


class StoreError(AppError):
    """Connection failure, query failure or constraint violation."""

    status_code = 500
    code = "store_error"


class FetchError(StoreError):
    code = "fetch_error"


@contextmanager
def store_errors(
    message: str,
    db: Optional[Session] = None,
    error_cls: Type[StoreError] = StoreError,
) -> Generator[None, None, None]:
    """
    Translate SQLAlchemy failures into a StoreError carrying a generic message.

    The underlying exception is logged here and chained, never shown to the client.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        if db is not None:
            db.rollback()
        logger.exception("%s", message)
        raise error_cls(message) from exc
