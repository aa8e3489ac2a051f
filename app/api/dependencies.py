"""API dependencies for authentication and authorization."""
import secrets
from typing import Annotated, Optional
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.security import decode_access_token
from app.models.user import User
from app.repositories.user_repository import UserRepository

# Security schemes
security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)

DISPATCHER_PRINCIPAL = "dispatcher"


def _user_from_token(token: str, db: Session) -> User:
    payload = decode_access_token(token)

    user_id = payload.get("sub")
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials"
        )

    user = UserRepository(db).get_active_by_id(str(user_id))
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive"
        )
    return user


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: Annotated[Session, Depends(get_db)]
) -> User:
    """
    Dependency to get current authenticated user.

    Extracts JWT from Bearer token, validates it, and retrieves user.

    Raises:
        HTTPException: If token invalid or user not found
    """
    return _user_from_token(credentials.credentials, db)


def get_dispatcher_caller(
    db: Annotated[Session, Depends(get_db)],
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(optional_security)],
    x_dispatcher_key: Annotated[Optional[str], Header()] = None,
) -> str:
    """
    Dependency for dispatcher-only routes (pending poll, mark-sent, batch triggers).

    With DISPATCHER_API_KEY configured the caller must present it in
    X-Dispatcher-Key and end-user tokens are refused. Without it, any
    authenticated user is accepted.

    Returns:
        "dispatcher" for the service credential, else the user id
    """
    if settings.DISPATCHER_API_KEY:
        if x_dispatcher_key and secrets.compare_digest(x_dispatcher_key, settings.DISPATCHER_API_KEY):
            return DISPATCHER_PRINCIPAL
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid dispatcher credentials"
        )

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _user_from_token(credentials.credentials, db).id


# Common dependencies
CurrentUser = Annotated[User, Depends(get_current_user)]
DispatcherCaller = Annotated[str, Depends(get_dispatcher_caller)]
DbSession = Annotated[Session, Depends(get_db)]
