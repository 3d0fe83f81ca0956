from typing import Optional

import structlog
from fastapi import Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel
from .jwt_handler import verify_access_token

logger = structlog.get_logger(__name__)

# Defines the expected header format (Bearer <token>)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


class CurrentUser(BaseModel):
    """Identity carried by a verified access token."""
    id: int
    email: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def _user_from_token(token: Optional[str]) -> Optional[CurrentUser]:
    if not token:
        return None
    payload = verify_access_token(token)
    if payload is None or payload.get("sub") is None:
        return None
    try:
        return CurrentUser(
            id=int(payload["sub"]),
            email=payload.get("email", ""),
            role=payload.get("role", "user"),
        )
    except ValueError:
        return None


async def get_current_user(request: Request, token: str = Depends(oauth2_scheme)) -> CurrentUser:
    """Dependency to validate the JWT and return the caller's identity."""
    user = _user_from_token(token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Store in request state for downstream use (like rate limiting)
    request.state.user_id = user.id
    return user


async def get_optional_user(request: Request, token: str = Depends(oauth2_scheme)) -> Optional[CurrentUser]:
    """Like get_current_user, but a missing or invalid token means a guest."""
    user = _user_from_token(token)
    if token and user is None:
        logger.info("invalid_token_treated_as_guest", path=request.url.path)
    if user is not None:
        request.state.user_id = user.id
    return user


async def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return user
