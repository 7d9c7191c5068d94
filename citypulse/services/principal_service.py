"""
Principal service for attendee and organizer accounts.
"""

import logging
from typing import Optional, Type
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.principal import Organizer, Principal, PrincipalKind, User
from ..schemas.auth import (
    OrganizerProfileUpdate,
    OrganizerRegistration,
    UserProfileUpdate,
    UserRegistration,
)
from ..utils.exceptions import AuthenticationError, DuplicateResourceError, PrincipalNotFoundError
from ..utils.logging_config import log_business_event, log_security_event
from .cascade_service import CascadeService

logger = logging.getLogger(__name__)

_MODELS = {
    PrincipalKind.USER: User,
    PrincipalKind.ORGANIZER: Organizer,
}


class PrincipalService:
    """Service class for account registration, login and profile changes."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def _model_for(kind: PrincipalKind) -> Type[Principal]:
        return _MODELS[kind]

    async def get_by_id(self, principal_id: UUID, kind: PrincipalKind) -> Optional[Principal]:
        """Get an account of the given kind by ID."""
        model = self._model_for(kind)
        result = await self.db.execute(select(model).where(model.id == principal_id))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str, kind: PrincipalKind) -> Optional[Principal]:
        """Get an account of the given kind by email."""
        model = self._model_for(kind)
        result = await self.db.execute(
            select(model).where(model.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def _register(self, principal: Principal, password: str) -> Principal:
        if await self.get_by_email(principal.email, principal.kind):
            raise DuplicateResourceError(
                f"{principal.kind.value.capitalize()} already exists",
                details={"email": principal.email},
            )

        principal.set_password(password)

        try:
            self.db.add(principal)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise DuplicateResourceError(
                f"{principal.kind.value.capitalize()} already exists",
                details={"email": principal.email},
            )

        await self.db.refresh(principal)
        logger.info(f"Registered {principal.kind.value} {principal.id}")
        return principal

    async def register_user(self, data: UserRegistration) -> User:
        """
        Create a new attendee account.

        Raises:
            DuplicateResourceError: If a user with this email already exists
        """
        user = User(
            name=data.name,
            email=data.email.lower(),
            phone=data.phone,
            city=data.city,
        )
        return await self._register(user, data.password)

    async def register_organizer(self, data: OrganizerRegistration) -> Organizer:
        """
        Create a new organizer account.

        Raises:
            DuplicateResourceError: If an organizer with this email already exists
        """
        organizer = Organizer(
            name=data.name,
            email=data.email.lower(),
            organization_name=data.organization_name,
            phone=data.phone,
            city=data.city,
        )
        return await self._register(organizer, data.password)

    async def authenticate(self, email: str, password: str, kind: PrincipalKind) -> Principal:
        """
        Check credentials for an account of the given kind.

        Raises:
            AuthenticationError: If the email is unknown or the password is wrong
        """
        principal = await self.get_by_email(email, kind)
        if principal is None or not principal.verify_password(password):
            log_security_event("login_failed", {"kind": kind.value})
            raise AuthenticationError("Invalid credentials")
        return principal

    async def update_profile(
        self,
        principal: Principal,
        update_data: UserProfileUpdate | OrganizerProfileUpdate,
    ) -> Principal:
        """
        Apply a partial profile update.

        Only fields present in the request are written; a new password is
        re-hashed rather than stored.
        """
        update_dict = update_data.model_dump(exclude_unset=True, exclude_none=True)
        password = update_dict.pop("password", None)

        new_email = update_dict.get("email")
        if new_email:
            new_email = new_email.lower()
            update_dict["email"] = new_email
            if new_email != principal.email:
                existing = await self.get_by_email(new_email, principal.kind)
                if existing is not None:
                    raise DuplicateResourceError(
                        "Email already registered",
                        details={"email": new_email},
                    )

        for field, value in update_dict.items():
            setattr(principal, field, value)
        if password:
            principal.set_password(password)

        await self.db.commit()
        await self.db.refresh(principal)
        return principal

    async def delete_user(self, user_id: UUID) -> None:
        """
        Remove an attendee account.

        Bookings made by the user are kept; they keep pointing at the
        removed account.
        """
        user = await self.get_by_id(user_id, PrincipalKind.USER)
        if user is None:
            raise PrincipalNotFoundError(str(user_id), kind="user")

        await self.db.delete(user)
        await self.db.commit()

        log_business_event("user_deleted", {"user_id": str(user_id)}, principal_id=str(user_id))

    async def delete_organizer(self, organizer_id: UUID) -> None:
        """Remove an organizer together with its events, bookings and coupons."""
        await CascadeService(self.db).delete_organizer(organizer_id)
