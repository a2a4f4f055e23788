from __future__ import annotations

import typing
from datetime import datetime

from sqlalchemy import ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from main import db

from . import BaseModel, naive_utcnow

if typing.TYPE_CHECKING:
    from .cfp import Proposal
    from .organization import Organization
    from .user import User

__all__ = [
    "EVENT_TYPES",
    "EVENT_VISIBILITIES",
    "Event",
    "EventCategory",
    "EventFormat",
    "is_cfp_open",
]

EVENT_TYPES = ["CONFERENCE", "MEETUP"]
EVENT_VISIBILITIES = ["PUBLIC", "PRIVATE"]


def is_cfp_open(event_type, cfp_start, cfp_end, now=None) -> bool:
    """Whether submissions are accepted at `now` (naive UTC, defaults to the current time).

    Conferences have a fixed window and are closed unless both bounds are set.
    Meetups are open-ended: a missing bound doesn't restrict that side.
    """
    if now is None:
        now = naive_utcnow()

    if event_type == "MEETUP":
        if cfp_start is not None and now < cfp_start:
            return False
        if cfp_end is not None and now > cfp_end:
            return False
        return True

    if cfp_start is None or cfp_end is None:
        return False

    return cfp_start <= now <= cfp_end


class Event(BaseModel):
    __tablename__ = "event"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column()
    type: Mapped[str] = mapped_column(default="CONFERENCE")
    visibility: Mapped[str] = mapped_column(default="PRIVATE")
    description: Mapped[str | None]
    address: Mapped[str | None]
    website: Mapped[str | None]
    contact: Mapped[str | None]

    cfp_start: Mapped[datetime | None]
    cfp_end: Mapped[datetime | None]
    max_proposals: Mapped[int | None]
    formats_required: Mapped[bool] = mapped_column(default=False)
    categories_required: Mapped[bool] = mapped_column(default=False)

    # An event belongs to its creator, and to the members of its organization if it has one
    creator_id: Mapped[int | None] = mapped_column(ForeignKey("user.id"))
    organization_id: Mapped[int | None] = mapped_column(ForeignKey("organization.id"))

    created: Mapped[datetime] = mapped_column(default=naive_utcnow)
    modified: Mapped[datetime] = mapped_column(default=naive_utcnow, onupdate=naive_utcnow)

    creator: Mapped[User | None] = relationship()
    organization: Mapped[Organization | None] = relationship(back_populates="events")
    formats: Mapped[list[EventFormat]] = relationship(
        back_populates="event", cascade="all, delete-orphan", order_by="EventFormat.id"
    )
    categories: Mapped[list[EventCategory]] = relationship(
        back_populates="event", cascade="all, delete-orphan", order_by="EventCategory.id"
    )
    proposals: Mapped[list[Proposal]] = relationship(
        back_populates="event", cascade="all, delete-orphan", lazy="dynamic"
    )

    def __init__(self, name: str, type: str = "CONFERENCE", creator: User | None = None):
        if type not in EVENT_TYPES:
            raise ValueError(f"{type!r} is not a valid event type")

        self.name = name
        self.type = type
        self.creator = creator

    def __repr__(self):
        return f"<Event {self.id}: {self.name}>"

    @classmethod
    def get(cls, event_id) -> Event | None:
        return db.session.get(cls, event_id)

    @property
    def is_cfp_open(self) -> bool:
        return is_cfp_open(self.type, self.cfp_start, self.cfp_end)


class EventFormat(BaseModel):
    __tablename__ = "event_format"

    id: Mapped[int] = mapped_column(primary_key=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("event.id"))
    name: Mapped[str] = mapped_column()
    description: Mapped[str | None]

    event: Mapped[Event] = relationship(back_populates="formats")

    def __init__(self, event: Event, name: str, description: str | None = None):
        self.event = event
        self.name = name
        self.description = description


class EventCategory(BaseModel):
    __tablename__ = "event_category"

    id: Mapped[int] = mapped_column(primary_key=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("event.id"))
    name: Mapped[str] = mapped_column()
    description: Mapped[str | None]

    event: Mapped[Event] = relationship(back_populates="categories")

    def __init__(self, event: Event, name: str, description: str | None = None):
        self.event = event
        self.name = name
        self.description = description
