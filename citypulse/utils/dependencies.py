"""
FastAPI dependencies for authentication and authorization.
"""

from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.principal import Organizer, Principal, PrincipalKind, User
from ..utils.auth import verify_token
from ..services.principal_service import PrincipalService


# HTTP Bearer token scheme
security = HTTPBearer()


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Principal:
    """
    Resolve the account behind the bearer token.

    Raises:
        HTTPException: If the token is invalid or the account no longer exists
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    token_data = verify_token(credentials.credentials)
    if token_data is None:
        raise credentials_exception

    try:
        principal_id = UUID(token_data.principal_id)
        kind = PrincipalKind(token_data.kind)
    except ValueError:
        raise credentials_exception

    principal = await PrincipalService(db).get_by_id(principal_id, kind)
    if principal is None:
        raise credentials_exception

    return principal


async def get_current_user(
    principal: Principal = Depends(get_current_principal)
) -> User:
    """Require an attendee account."""
    if principal.kind != PrincipalKind.USER:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account required"
        )
    return principal


async def get_current_organizer(
    principal: Principal = Depends(get_current_principal)
) -> Organizer:
    """Require an organizer account."""
    if principal.kind != PrincipalKind.ORGANIZER:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Organizer account required"
        )
    return principal
