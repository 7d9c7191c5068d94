"""
Principal models: attendees and organizers share one identity table.
"""

import enum
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from sqlalchemy import Enum, JSON, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from ..utils.auth import get_password_hash, verify_password

if TYPE_CHECKING:
    from .event import Event


class PrincipalKind(str, enum.Enum):
    """Discriminator for the kinds of account that can act on the platform."""
    USER = "user"
    ORGANIZER = "organizer"


class Principal(Base):
    """Shared identity and profile record for every account kind."""

    __tablename__ = "principals"

    kind: Mapped[PrincipalKind] = mapped_column(
        Enum(PrincipalKind, values_callable=lambda kinds: [k.value for k in kinds]),
        nullable=False,
        index=True
    )

    # Identification and authentication
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # Profile information
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    profile_image: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    __table_args__ = (
        UniqueConstraint("kind", "email", name="uq_principals_kind_email"),
    )

    __mapper_args__ = {
        "polymorphic_on": "kind",
    }

    def set_password(self, password: str) -> None:
        """Hash and set the principal's password."""
        self.password_hash = get_password_hash(password)

    def verify_password(self, password: str) -> bool:
        """Verify a password against the stored hash."""
        return verify_password(password, self.password_hash)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={self.id}, email='{self.email}')>"


class User(Principal):
    """Attendee account: books tickets and writes reviews."""

    __mapper_args__ = {
        "polymorphic_identity": PrincipalKind.USER,
    }


class Organizer(Principal):
    """Organizer account: owns events and coupons."""

    organization_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    contact: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    logo: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    social_links: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)

    events: Mapped[List["Event"]] = relationship(
        "Event",
        back_populates="organizer",
        passive_deletes="all"
    )

    __mapper_args__ = {
        "polymorphic_identity": PrincipalKind.ORGANIZER,
    }
