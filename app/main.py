"""Study Buddy notifications service."""
import logging
import uuid

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from starlette.exceptions import HTTPException

from app.core.config import settings
from app.core.database import database
from app.core.exceptions import AppError
from app.core.limiter import limiter
from app.api import notifications, scheduled_tasks, sessions

logger = logging.getLogger(__name__)

RETRIABLE_STATUSES = {408, 409, 425, 429}

app = FastAPI(
    title="Study Buddy Notifications API",
    description="Notifications, session reminders and delivery dispatch for Study Buddy",
    version="1.0.0",
)
app.state.limiter = limiter


def error_response(request: Request, status_code: int, code: str, message: str) -> JSONResponse:
    """
    The one error shape every failure uses.

    `error` carries the client-facing message; `message` repeats it for
    clients written against the older {code, message} envelope.
    """
    request_id = getattr(request.state, "request_id", "unknown")
    return JSONResponse(
        status_code=status_code,
        content={
            "error": message,
            "code": code,
            "message": message,
            "retriable": status_code >= 500 or status_code in RETRIABLE_STATUSES,
            "request_id": request_id,
        },
        headers={"X-Request-Id": request_id},
    )


@app.middleware("http")
async def assign_request_id(request: Request, call_next):
    request.state.request_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex
    response = await call_next(request)
    response.headers["X-Request-Id"] = request.state.request_id
    return response


@app.exception_handler(AppError)
async def handle_app_error(request: Request, exc: AppError):
    return error_response(request, exc.status_code, exc.code, exc.message)


@app.exception_handler(HTTPException)
async def handle_http_exception(request: Request, exc: HTTPException):
    response = error_response(request, exc.status_code, f"http_{exc.status_code}", str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError):
    # Malformed input is a client error like any other ValidationError: 400.
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
    return error_response(request, status.HTTP_400_BAD_REQUEST, "validation_error", "Request validation failed")


@app.exception_handler(RateLimitExceeded)
async def handle_rate_limit(request: Request, exc: RateLimitExceeded):
    return error_response(request, status.HTTP_429_TOO_MANY_REQUESTS, "rate_limited", "Too many requests")


@app.exception_handler(Exception)
async def handle_unexpected(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error", "Unexpected server error")


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-Request-Id", "X-Dispatcher-Key"],
)

app.include_router(notifications.router)
app.include_router(scheduled_tasks.router)   # reminder batch triggers
app.include_router(sessions.router)


@app.get("/")
def root():
    return {
        "service": "studybuddy-notifications",
        "status": "running",
        "environment": settings.ENVIRONMENT,
    }


@app.get("/health")
def health():
    """Liveness plus a real round trip to the database."""
    db = database.session()
    try:
        db.execute(text("SELECT 1"))
    except Exception as exc:
        logger.warning("Health check could not reach the database: %s", exc)
        return JSONResponse(status_code=503, content={"status": "degraded", "database": "unreachable"})
    finally:
        db.close()
    return {"status": "healthy", "database": "connected"}
