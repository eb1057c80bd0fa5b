"""Request-scoped dependencies shared by the API routers."""

from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from predictions.schemas.users import User
from predictions.services.errors import (
    AuthorizationError,
    GameError,
    NotFoundError,
    RuleViolationError,
    StateConflictError,
)
from predictions.utils.db_async import get_session


async def get_current_user(
    x_user_id: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(get_session),
) -> User:
    """Resolve the acting user from the ``X-User-Id`` header set by the auth layer."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        user_id = int(x_user_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Not authenticated")

    async with db.begin():
        user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


async def get_current_user_id(user: User = Depends(get_current_user)) -> int:
    return user.id  # type: ignore[return-value]


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Forbidden")
    return user


async def require_admin_id(user: User = Depends(require_admin)) -> int:
    return user.id  # type: ignore[return-value]


def to_http_exception(exc: GameError) -> HTTPException:
    # RuleViolationError subclasses StateConflictError, so it is checked first
    if isinstance(exc, NotFoundError):
        status = 404
    elif isinstance(exc, AuthorizationError):
        status = 403
    elif isinstance(exc, RuleViolationError):
        status = 400
    elif isinstance(exc, StateConflictError):
        status = 409
    else:
        status = 400
    return HTTPException(status_code=status, detail=exc.message)
