from __future__ import annotations

import typing
from datetime import datetime

from sqlalchemy import Column, ForeignKey, Integer, Table, UniqueConstraint, select
from sqlalchemy.orm import Mapped, mapped_column, relationship

from main import db

from . import BaseModel, naive_utcnow

if typing.TYPE_CHECKING:
    from .event import Event, EventCategory, EventFormat
    from .talk import Talk
    from .user import User

__all__ = [
    "MAX_RATING",
    "MESSAGE_CHANNELS",
    "MIN_RATING",
    "PROPOSAL_STATUSES",
    "RATING_FEELINGS",
    "Message",
    "Proposal",
    "ProposalCategory",
    "ProposalFormat",
    "ProposalSpeaker",
    "Rating",
]

PROPOSAL_STATUSES = ["SUBMITTED", "ACCEPTED", "REJECTED", "CONFIRMED", "DECLINED"]
RATING_FEELINGS = ["POSITIVE", "NEGATIVE", "NEUTRAL", "NO_OPINION"]
MESSAGE_CHANNELS = ["ORGANIZER", "SPEAKER"]

MIN_RATING = 0
MAX_RATING = 5

# Fields copied from the talk when it's submitted
SNAPSHOT_FIELDS = ("title", "abstract", "level", "language", "references")


ProposalSpeaker = Table(
    "proposal_speaker",
    BaseModel.metadata,
    Column("proposal_id", Integer, ForeignKey("proposal.id"), primary_key=True),
    Column("user_id", Integer, ForeignKey("user.id"), primary_key=True, index=True),
)

ProposalFormat = Table(
    "proposal_format",
    BaseModel.metadata,
    Column("proposal_id", Integer, ForeignKey("proposal.id"), primary_key=True),
    Column("format_id", Integer, ForeignKey("event_format.id"), primary_key=True),
)

ProposalCategory = Table(
    "proposal_category",
    BaseModel.metadata,
    Column("proposal_id", Integer, ForeignKey("proposal.id"), primary_key=True),
    Column("category_id", Integer, ForeignKey("event_category.id"), primary_key=True),
)


class Proposal(BaseModel):
    __tablename__ = "proposal"
    __table_args__ = (UniqueConstraint("talk_id", "event_id"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    talk_id: Mapped[int | None] = mapped_column(ForeignKey("talk.id"))
    event_id: Mapped[int] = mapped_column(ForeignKey("event.id"), index=True)
    status: Mapped[str] = mapped_column(default="SUBMITTED")

    # A copy of the talk at the time it was submitted
    title: Mapped[str] = mapped_column()
    abstract: Mapped[str | None]
    level: Mapped[str | None]
    language: Mapped[str | None]
    references: Mapped[str | None]

    comments: Mapped[str | None]

    created: Mapped[datetime] = mapped_column(default=naive_utcnow)
    modified: Mapped[datetime] = mapped_column(default=naive_utcnow, onupdate=naive_utcnow)

    talk: Mapped[Talk | None] = relationship(back_populates="proposals")
    event: Mapped[Event] = relationship(back_populates="proposals")
    speakers: Mapped[list[User]] = relationship(secondary=ProposalSpeaker, order_by="User.id")
    formats: Mapped[list[EventFormat]] = relationship(
        secondary=ProposalFormat, order_by="EventFormat.id"
    )
    categories: Mapped[list[EventCategory]] = relationship(
        secondary=ProposalCategory, order_by="EventCategory.id"
    )
    ratings: Mapped[list[Rating]] = relationship(
        back_populates="proposal", cascade="all, delete-orphan", order_by="Rating.id"
    )
    messages: Mapped[list[Message]] = relationship(
        back_populates="proposal", cascade="all, delete-orphan", order_by="Message.id"
    )

    def __init__(self, talk: Talk, event: Event):
        self.talk = talk
        self.event = event
        self.status = "SUBMITTED"
        self.copy_talk(talk)

    def __repr__(self):
        return f"<Proposal {self.id}: {self.title}>"

    def copy_talk(self, talk: Talk):
        for field in SNAPSHOT_FIELDS:
            setattr(self, field, getattr(talk, field))
        self.speakers = list(talk.speakers)

    @classmethod
    def for_user_and_event(cls, user, event) -> list[Proposal]:
        """The proposals for an event on which the user is a speaker"""
        return list(
            db.session.scalars(
                select(cls)
                .join(ProposalSpeaker)
                .where(ProposalSpeaker.c.user_id == user.id, cls.event_id == event.id)
                .order_by(cls.id)
            )
        )

    @classmethod
    def for_talk_and_event(cls, talk_id, event_id) -> Proposal | None:
        return db.session.execute(
            select(cls).where(cls.talk_id == talk_id, cls.event_id == event_id)
        ).scalar_one_or_none()

    def get_user_rating(self, user) -> Rating | None:
        for rating in self.ratings:
            if rating.user_id == user.id:
                return rating
        return None

    def rating_stats(self) -> dict:
        scores = [r.rating for r in self.ratings if r.rating is not None]
        feelings = [r.feeling for r in self.ratings]
        return {
            "average": sum(scores) / len(scores) if scores else None,
            "count": len(scores),
            "loves": feelings.count("POSITIVE"),
            "hates": feelings.count("NEGATIVE"),
            "noopinion": feelings.count("NO_OPINION"),
        }


class Rating(BaseModel):
    __tablename__ = "rating"
    __table_args__ = (UniqueConstraint("user_id", "proposal_id"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id"))
    proposal_id: Mapped[int] = mapped_column(ForeignKey("proposal.id"), index=True)

    # Either may be null, but not both: no opinion at all is stored as no row
    rating: Mapped[int | None]
    feeling: Mapped[str | None]

    created: Mapped[datetime] = mapped_column(default=naive_utcnow)
    modified: Mapped[datetime] = mapped_column(default=naive_utcnow, onupdate=naive_utcnow)

    user: Mapped[User] = relationship(back_populates="ratings")
    proposal: Mapped[Proposal] = relationship(back_populates="ratings")

    def __init__(self, user: User, proposal: Proposal, rating=None, feeling=None):
        self.user = user
        self.proposal = proposal
        self.rating = rating
        self.feeling = feeling

    def __repr__(self):
        return f"<Rating {self.user_id}/{self.proposal_id}: {self.rating} {self.feeling}>"

    @classmethod
    def get(cls, user, proposal) -> Rating | None:
        return db.session.execute(
            select(cls).where(cls.user_id == user.id, cls.proposal_id == proposal.id)
        ).scalar_one_or_none()


class Message(BaseModel):
    __tablename__ = "message"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id"))
    proposal_id: Mapped[int] = mapped_column(ForeignKey("proposal.id"), index=True)
    channel: Mapped[str] = mapped_column(default="ORGANIZER")
    message: Mapped[str] = mapped_column()

    created: Mapped[datetime] = mapped_column(default=naive_utcnow)
    modified: Mapped[datetime] = mapped_column(default=naive_utcnow, onupdate=naive_utcnow)

    user: Mapped[User] = relationship(back_populates="messages")
    proposal: Mapped[Proposal] = relationship(back_populates="messages")

    def __init__(self, user: User, proposal: Proposal, message: str, channel: str = "ORGANIZER"):
        if channel not in MESSAGE_CHANNELS:
            raise ValueError(f"{channel!r} is not a valid message channel")

        self.user = user
        self.proposal = proposal
        self.message = message
        self.channel = channel

    def __repr__(self):
        return f"<Message {self.id} on proposal {self.proposal_id}>"

    @classmethod
    def for_proposal(cls, proposal, channel) -> list[Message]:
        return list(
            db.session.scalars(
                select(cls)
                .where(cls.proposal_id == proposal.id, cls.channel == channel)
                .order_by(cls.created, cls.id)
            )
        )

    @classmethod
    def get_for_author(cls, message_id, proposal, user) -> Message | None:
        """A message on this proposal, only if the user wrote it"""
        return db.session.execute(
            select(cls).where(
                cls.id == message_id,
                cls.proposal_id == proposal.id,
                cls.user_id == user.id,
            )
        ).scalar_one_or_none()
