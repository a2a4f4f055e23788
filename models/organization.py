from __future__ import annotations

import typing
from datetime import datetime

from sqlalchemy import ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from main import db

from . import BaseModel, naive_utcnow

if typing.TYPE_CHECKING:
    from .event import Event
    from .user import User

__all__ = [
    "ORGANIZATION_ROLES",
    "Organization",
    "OrganizationMember",
]

# Reviewers can read and rate proposals but not change them
ORGANIZATION_ROLES = ["OWNER", "MEMBER", "REVIEWER"]


class Organization(BaseModel):
    __tablename__ = "organization"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column()
    created: Mapped[datetime] = mapped_column(default=naive_utcnow)
    modified: Mapped[datetime] = mapped_column(default=naive_utcnow, onupdate=naive_utcnow)

    members: Mapped[list[OrganizationMember]] = relationship(
        back_populates="organization", cascade="all, delete-orphan"
    )
    events: Mapped[list[Event]] = relationship(back_populates="organization")

    def __init__(self, name: str):
        self.name = name

    def __repr__(self):
        return f"<Organization {self.id}: {self.name}>"


class OrganizationMember(BaseModel):
    __tablename__ = "organization_member"

    organization_id: Mapped[int] = mapped_column(ForeignKey("organization.id"), primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id"), primary_key=True)
    role: Mapped[str] = mapped_column(default="MEMBER")

    organization: Mapped[Organization] = relationship(back_populates="members")
    user: Mapped[User] = relationship(back_populates="memberships")

    def __init__(self, organization: Organization, user: User, role: str = "MEMBER"):
        if role not in ORGANIZATION_ROLES:
            raise ValueError(f"{role!r} is not a valid organization role")

        self.organization = organization
        self.user = user
        self.role = role

    @classmethod
    def get(cls, organization_id, user_id) -> OrganizationMember | None:
        return db.session.get(cls, (organization_id, user_id))
