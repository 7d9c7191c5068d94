"""
Password hashing and access tokens.

Tokens identify a principal by id (``sub``) and kind (``user`` or
``organizer``); the kind decides which routes the bearer may call.
"""

from datetime import timedelta
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, ValidationError

from ..config import settings
from .clock import utcnow

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class TokenData(BaseModel):
    """Claims carried by an access token."""
    principal_id: str
    kind: str


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(
    principal_id: str,
    kind: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Issue a signed token for a user or organizer.

    Args:
        principal_id: Account id, stored in the ``sub`` claim
        kind: Account kind, ``user`` or ``organizer``
        expires_delta: Lifetime; ``ACCESS_TOKEN_EXPIRE_MINUTES`` when omitted
    """
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {"sub": str(principal_id), "kind": kind, "exp": utcnow() + lifetime}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: str) -> Optional[TokenData]:
    """Decoded claims, or None for a bad signature, an expired token or missing claims."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return TokenData(principal_id=payload["sub"], kind=payload["kind"])
    except (JWTError, KeyError, ValidationError):
        return None
